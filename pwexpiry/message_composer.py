"""Build the subject and body of a password notification mail."""

import html
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from email.utils import parseaddr

from pwexpiry.models import Audience, EvaluatedAccount, TemplateVariant
from pwexpiry.phrases import BUNDLES, Locale, PhraseBundle

_FONT_STYLE = "font-family: Arial, sans-serif; font-size: 10pt;"
_HTML_DIVIDER = '<hr style="border: none; border-top: 1px solid #ddd; margin: 16px 0;">\n'
_TEXT_DIVIDER = "\n" + "-" * 40 + "\n\n"


@dataclass
class ComposedMessage:
    subject: str
    body: str
    template: TemplateVariant
    audience: Audience
    is_html: bool = True


def classify_audience(email: str, internal_domain: str) -> Audience:
    """Internal iff the address domain equals the configured internal domain."""
    _, addr = parseaddr(email)
    domain = addr.rpartition("@")[2].strip().lower()
    if internal_domain and domain == internal_domain.strip().lower():
        return Audience.INTERNAL
    return Audience.EXTERNAL


def select_template(evaluated: EvaluatedAccount, now: datetime) -> TemplateVariant:
    """Pick the variant by priority: new user, expired, today, tomorrow, later."""
    if evaluated.is_new_user_no_expiration:
        return TemplateVariant.NEW_USER

    expires_on = evaluated.expires_on
    if evaluated.record.password_expired or (expires_on is not None and expires_on <= now):
        return TemplateVariant.EXPIRED

    if expires_on is None:
        raise ValueError(f"No expiry date for {evaluated.record.sam_account_name}")

    next_midnight = datetime.combine(now.date() + timedelta(days=1), time.min)
    if expires_on < next_midnight:
        return TemplateVariant.TODAY
    if expires_on < next_midnight + timedelta(days=1):
        return TemplateVariant.TOMORROW
    return TemplateVariant.IN_FEW_DAYS


def compose_message(
    evaluated: EvaluatedAccount,
    variant: TemplateVariant,
    locales: list[Locale],
    audience: Audience,
    *,
    company: str,
    link: str,
    now: datetime,
    deadline: datetime | None = None,
    as_html: bool = True,
) -> ComposedMessage:
    """Render the mail for one account.

    The subject comes from the first locale only; the body holds one block per
    locale, separated by a divider. *deadline* replaces the account's expiry
    date (new users get a forced deadline instead of a computed one).
    """
    if not locales:
        raise ValueError("At least one locale is required")

    when = deadline or evaluated.expires_on
    days = evaluated.days_before_expire_rounded
    if days is None and when is not None:
        days = max(0, round((when - now).total_seconds() / 86400))

    first = BUNDLES[locales[0]]
    subject = first.subjects[audience][variant].format(
        company=company,
        days=days,
        day_word=first.days(days or 0),
    )

    blocks = [
        _render_block(
            BUNDLES[loc],
            evaluated,
            variant,
            audience,
            when=when,
            days=days,
            company=company,
            link=link,
            as_html=as_html,
        )
        for loc in locales
    ]

    if as_html:
        body = f'<div style="{_FONT_STYLE}">\n' + _HTML_DIVIDER.join(blocks) + "</div>\n"
    else:
        body = _TEXT_DIVIDER.join(blocks)

    return ComposedMessage(
        subject=subject,
        body=body,
        template=variant,
        audience=audience,
        is_html=as_html,
    )


def _render_block(
    bundle: PhraseBundle,
    evaluated: EvaluatedAccount,
    variant: TemplateVariant,
    audience: Audience,
    *,
    when: datetime | None,
    days: int | None,
    company: str,
    link: str,
    as_html: bool,
) -> str:
    esc = html.escape if as_html else str

    values = {
        "company": esc(company),
        "name": esc(evaluated.record.greeting_name),
        "date": bundle.format_date(when) if when else "",
        "time": bundle.format_time(when) if when else "",
        "days": days if days is not None else "",
        "day_word": bundle.days(days or 0),
        "link": f'<a href="{html.escape(link, quote=True)}">{html.escape(link)}</a>' if as_html else link,
    }

    paragraphs = [
        bundle.greeting.format(**values),
        bundle.bodies[variant].format(**values),
        bundle.instructions[audience].format(**values),
    ]

    max_age = evaluated.policy_max_age_days
    if max_age:
        paragraphs.append(bundle.policy_period.format(days=int(max_age)))

    closing = bundle.closing
    signature = bundle.signature.format(**values)

    if as_html:
        parts = [f"<p>{p}</p>" for p in paragraphs]
        parts.append(f"<p>{closing}<br>{signature}</p>")
        return "\n".join(parts) + "\n"

    return "\n\n".join(paragraphs + [f"{closing}\n{signature}"]) + "\n"
