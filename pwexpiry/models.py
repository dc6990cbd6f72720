from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class OutcomeStatus(str, Enum):
    """Per-account outcome tag, as written to the CSV report."""

    NOTIFIED = "Notified"
    NOT_NOTIFIED = "NotNotified"
    INVALID_EMAIL = "InvalidEmail"
    NO_POLICY = "NoPolicy"
    NO_EXPIRY_DATE = "NoExpiryDate"
    NOT_EXPIRED = "NotExpired"
    EXPIRING = "Expiring"
    NEW_USER = "NewUser"
    NEW_USER_NOT_NOTIFIED = "NewUserNotNotified"
    NEW_USER_ALREADY_NOTIFIED = "NewUserAlreadyNotified"
    FAILED = "Failed"


class TemplateVariant(str, Enum):
    NEW_USER = "NewUser"
    EXPIRED = "Expired"
    TODAY = "Today"
    TOMORROW = "Tomorrow"
    IN_FEW_DAYS = "InFewDays"


class Audience(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


@dataclass
class PasswordPolicy:
    name: str
    max_password_age_days: float | None = None


@dataclass
class AccountRecord:
    """An enabled directory account as returned by the PowerShell enumeration.

    ``raw_expiry`` is ``msDS-UserPasswordExpiryTimeComputed`` (a Windows
    FILETIME: 100ns ticks since 1601-01-01 UTC), passed through unparsed.
    """

    sam_account_name: str
    display_name: str
    email: str | None
    password_never_expires: bool = False
    password_expired: bool = False
    cannot_change_password: bool = False
    raw_expiry: int | str | None = None
    policy: PasswordPolicy | None = None

    @property
    def greeting_name(self) -> str:
        return self.display_name or self.sam_account_name


@dataclass
class EvaluatedAccount:
    """Per-run expiration state of one account. Nothing here is persisted."""

    record: AccountRecord
    days_before_expire: timedelta | None = None
    days_before_expire_rounded: int | None = None
    expires_on: datetime | None = None
    is_new_user_no_expiration: bool = False

    @property
    def has_policy(self) -> bool:
        return self.record.policy is not None

    @property
    def has_expiry(self) -> bool:
        return self.days_before_expire is not None

    @property
    def policy_max_age_days(self) -> float | None:
        if self.record.policy is None:
            return None
        return self.record.policy.max_password_age_days


@dataclass
class NotificationOutcome:
    sam_account_name: str
    display_name: str
    email: str
    status: OutcomeStatus
    reason: OutcomeStatus
    timestamp: datetime
    template: TemplateVariant | None = None
    audience: Audience | None = None
    expires_on: datetime | None = None
    days_before_expire: int | None = None
    subject: str = ""


@dataclass
class RunStatistics:
    total_checked: int = 0
    not_in_group: int = 0
    invalid_email: int = 0
    new_user: int = 0
    not_expired: int = 0
    notified: int = 0
    not_notified: int = 0

    def summary_lines(self) -> list[str]:
        rows = [
            ("Accounts checked", self.total_checked),
            ("Not in group filter", self.not_in_group),
            ("Invalid email address", self.invalid_email),
            ("New users (policy pending)", self.new_user),
            ("Not expiring yet", self.not_expired),
            ("Notified", self.notified),
            ("Not notified", self.not_notified),
        ]
        return [f"{label + ':':<28} {value}" for label, value in rows]


@dataclass
class Decision:
    """ConditionFilter verdict for one account."""

    should_notify: bool
    reason: OutcomeStatus
    clear_never_expires: bool = False
    deadline: datetime | None = None
