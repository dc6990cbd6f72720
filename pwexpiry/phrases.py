"""Fixed phrase tables for the notification mails, one bundle per supported locale.

Placeholders used in the strings:
    {company} {link} {name} {date} {time} {days} {day_word}
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pwexpiry.config import ConfigurationError
from pwexpiry.models import Audience, TemplateVariant

V = TemplateVariant


class Locale(str, Enum):
    DE_DE = "de-DE"
    EN_US = "en-US"
    FR_FR = "fr-FR"


@dataclass(frozen=True)
class PhraseBundle:
    subjects: Mapping[Audience, Mapping[TemplateVariant, str]]
    bodies: Mapping[TemplateVariant, str]
    instructions: Mapping[Audience, str]
    greeting: str
    policy_period: str
    closing: str
    signature: str
    day_word: str
    days_word: str
    weekdays: tuple[str, ...]
    months: tuple[str, ...]
    date_pattern: str

    def days(self, count: int) -> str:
        return self.day_word if abs(count) == 1 else self.days_word

    def format_date(self, value: datetime) -> str:
        return self.date_pattern.format(
            weekday=self.weekdays[value.weekday()],
            day=value.day,
            month=self.months[value.month - 1],
            year=value.year,
        )

    @staticmethod
    def format_time(value: datetime) -> str:
        return value.strftime("%H:%M")


_DE = PhraseBundle(
    subjects={
        Audience.EXTERNAL: {
            V.NEW_USER: "Handlungsbedarf: Für Ihr {company}-Konto gilt nun eine Kennwortrichtlinie",
            V.EXPIRED: "Das Kennwort Ihres {company}-Kontos ist abgelaufen",
            V.TODAY: "Das Kennwort Ihres {company}-Kontos läuft heute ab",
            V.TOMORROW: "Das Kennwort Ihres {company}-Kontos läuft morgen ab",
            V.IN_FEW_DAYS: "Das Kennwort Ihres {company}-Kontos läuft in {days} {day_word} ab",
        },
        Audience.INTERNAL: {
            V.NEW_USER: "Handlungsbedarf: Neue Kennwortrichtlinie für Ihr Windows-Konto",
            V.EXPIRED: "Ihr Windows-Kennwort ist abgelaufen",
            V.TODAY: "Ihr Windows-Kennwort läuft heute ab",
            V.TOMORROW: "Ihr Windows-Kennwort läuft morgen ab",
            V.IN_FEW_DAYS: "Ihr Windows-Kennwort läuft in {days} {day_word} ab",
        },
    },
    bodies={
        V.NEW_USER: (
            "Für Ihr Konto gilt ab sofort eine Kennwortrichtlinie. Ihr aktuelles Kennwort "
            "läuft am {date} um {time} Uhr ab. Bitte vergeben Sie bis dahin ein neues Kennwort."
        ),
        V.EXPIRED: (
            "Ihr Kennwort ist abgelaufen. Sie müssen es ändern, bevor Sie sich wieder anmelden können."
        ),
        V.TODAY: "Ihr Kennwort läuft heute um {time} Uhr ab.",
        V.TOMORROW: "Ihr Kennwort läuft morgen, am {date}, um {time} Uhr ab.",
        V.IN_FEW_DAYS: "Ihr Kennwort läuft in {days} {day_word} ab, am {date} um {time} Uhr.",
    },
    instructions={
        Audience.INTERNAL: (
            "Drücken Sie dazu an Ihrem Arbeitsplatz Strg+Alt+Entf und wählen Sie \"Kennwort ändern\"."
        ),
        Audience.EXTERNAL: "Sie können es jederzeit über das Self-Service-Portal ändern: {link}",
    },
    greeting="Hallo {name},",
    policy_period="Gemäß unserer Kennwortrichtlinie muss das Kennwort alle {days} Tage geändert werden.",
    closing="Mit freundlichen Grüßen",
    signature="Ihre {company} IT",
    day_word="Tag",
    days_word="Tagen",
    weekdays=("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"),
    months=(
        "Januar", "Februar", "März", "April", "Mai", "Juni",
        "Juli", "August", "September", "Oktober", "November", "Dezember",
    ),
    date_pattern="{weekday}, {day}. {month} {year}",
)

_EN = PhraseBundle(
    subjects={
        Audience.EXTERNAL: {
            V.NEW_USER: "Action required: a password policy now applies to your {company} account",
            V.EXPIRED: "Your {company} account password has expired",
            V.TODAY: "Your {company} account password expires today",
            V.TOMORROW: "Your {company} account password expires tomorrow",
            V.IN_FEW_DAYS: "Your {company} account password expires in {days} {day_word}",
        },
        Audience.INTERNAL: {
            V.NEW_USER: "Action required: new password policy for your Windows account",
            V.EXPIRED: "Your Windows password has expired",
            V.TODAY: "Your Windows password expires today",
            V.TOMORROW: "Your Windows password expires tomorrow",
            V.IN_FEW_DAYS: "Your Windows password expires in {days} {day_word}",
        },
    },
    bodies={
        V.NEW_USER: (
            "A password policy has been applied to your account. Your current password "
            "will expire on {date} at {time}. Please choose a new password before then."
        ),
        V.EXPIRED: "Your password has expired. You have to change it before you can sign in again.",
        V.TODAY: "Your password expires today at {time}.",
        V.TOMORROW: "Your password expires tomorrow, {date}, at {time}.",
        V.IN_FEW_DAYS: "Your password expires in {days} {day_word}, on {date} at {time}.",
    },
    instructions={
        Audience.INTERNAL: (
            "To change it, press Ctrl+Alt+Del on your workstation and choose \"Change a password\"."
        ),
        Audience.EXTERNAL: "You can change it at any time using the self-service portal: {link}",
    },
    greeting="Hello {name},",
    policy_period="Under our password policy, passwords must be changed every {days} days.",
    closing="Kind regards,",
    signature="Your {company} IT team",
    day_word="day",
    days_word="days",
    weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    months=(
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    date_pattern="{weekday}, {month} {day}, {year}",
)

_FR = PhraseBundle(
    subjects={
        Audience.EXTERNAL: {
            V.NEW_USER: (
                "Action requise : une politique de mot de passe s'applique désormais "
                "à votre compte {company}"
            ),
            V.EXPIRED: "Le mot de passe de votre compte {company} a expiré",
            V.TODAY: "Le mot de passe de votre compte {company} expire aujourd'hui",
            V.TOMORROW: "Le mot de passe de votre compte {company} expire demain",
            V.IN_FEW_DAYS: "Le mot de passe de votre compte {company} expire dans {days} {day_word}",
        },
        Audience.INTERNAL: {
            V.NEW_USER: "Action requise : nouvelle politique de mot de passe pour votre compte Windows",
            V.EXPIRED: "Votre mot de passe Windows a expiré",
            V.TODAY: "Votre mot de passe Windows expire aujourd'hui",
            V.TOMORROW: "Votre mot de passe Windows expire demain",
            V.IN_FEW_DAYS: "Votre mot de passe Windows expire dans {days} {day_word}",
        },
    },
    bodies={
        V.NEW_USER: (
            "Une politique de mot de passe s'applique désormais à votre compte. Votre mot de "
            "passe actuel expirera le {date} à {time}. Merci d'en choisir un nouveau avant cette date."
        ),
        V.EXPIRED: (
            "Votre mot de passe a expiré. Vous devez le changer avant de pouvoir vous reconnecter."
        ),
        V.TODAY: "Votre mot de passe expire aujourd'hui à {time}.",
        V.TOMORROW: "Votre mot de passe expire demain, le {date}, à {time}.",
        V.IN_FEW_DAYS: "Votre mot de passe expire dans {days} {day_word}, le {date} à {time}.",
    },
    instructions={
        Audience.INTERNAL: (
            "Pour le changer, appuyez sur Ctrl+Alt+Suppr sur votre poste et choisissez "
            "« Modifier un mot de passe »."
        ),
        Audience.EXTERNAL: "Vous pouvez le changer à tout moment via le portail libre-service : {link}",
    },
    greeting="Bonjour {name},",
    policy_period="Selon notre politique, le mot de passe doit être changé tous les {days} jours.",
    closing="Cordialement,",
    signature="L'équipe informatique {company}",
    day_word="jour",
    days_word="jours",
    weekdays=("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"),
    months=(
        "janvier", "février", "mars", "avril", "mai", "juin",
        "juillet", "août", "septembre", "octobre", "novembre", "décembre",
    ),
    date_pattern="{weekday} {day} {month} {year}",
)

BUNDLES: Mapping[Locale, PhraseBundle] = MappingProxyType({
    Locale.DE_DE: _DE,
    Locale.EN_US: _EN,
    Locale.FR_FR: _FR,
})


def _check_bundles() -> None:
    """Every locale needs a complete bundle; a gap here is a programming error."""
    for loc in Locale:
        bundle = BUNDLES.get(loc)
        if bundle is None:
            raise RuntimeError(f"No phrase bundle for locale {loc.value}")
        for audience in Audience:
            missing = set(TemplateVariant) - set(bundle.subjects.get(audience, {}))
            if missing:
                raise RuntimeError(
                    f"Locale {loc.value}: no {audience.value} subject for {sorted(m.value for m in missing)}"
                )
            if audience not in bundle.instructions:
                raise RuntimeError(f"Locale {loc.value}: no {audience.value} instructions")
        missing = set(TemplateVariant) - set(bundle.bodies)
        if missing:
            raise RuntimeError(f"Locale {loc.value}: no body for {sorted(m.value for m in missing)}")
        if len(bundle.weekdays) != 7 or len(bundle.months) != 12:
            raise RuntimeError(f"Locale {loc.value}: incomplete weekday/month names")


_check_bundles()


def parse_locales(tags: list[str]) -> list[Locale]:
    """Map configured locale tags onto Locale, rejecting unknown ones up front."""
    known = {loc.value.lower(): loc for loc in Locale}
    result: list[Locale] = []
    for tag in tags:
        loc = known.get(tag.strip().lower())
        if loc is None:
            raise ConfigurationError(
                f"Unsupported locale {tag!r}; supported: {', '.join(l.value for l in Locale)}"
            )
        if loc not in result:
            result.append(loc)
    if not result:
        raise ConfigurationError("At least one locale must be configured")
    return result
