"""Decide per account whether a notification should go out this run."""

from datetime import datetime, timedelta
from email.utils import parseaddr

from pwexpiry.config import ConditionMode, Settings
from pwexpiry.ledger import OnboardingLedger
from pwexpiry.models import Decision, EvaluatedAccount, OutcomeStatus


def has_valid_email(address: str | None) -> bool:
    if not address:
        return False
    _, addr = parseaddr(address)
    local, sep, domain = addr.partition("@")
    return bool(local and sep and "." in domain)


def decide(
    evaluated: EvaluatedAccount,
    cfg: Settings,
    ledger: OnboardingLedger,
    now: datetime,
) -> Decision:
    """Return the Decision for one evaluated account.

    Order: email check, then the new-user path, then the configured
    condition mode. Policy-pending accounts never reach the condition modes.
    """
    if not has_valid_email(evaluated.record.email):
        return Decision(False, OutcomeStatus.INVALID_EMAIL)

    if evaluated.is_new_user_no_expiration:
        return _decide_new_user(evaluated, cfg, ledger, now)

    if not evaluated.has_policy:
        return Decision(False, OutcomeStatus.NO_POLICY)

    if not evaluated.has_expiry:
        return Decision(False, OutcomeStatus.NO_EXPIRY_DATE)

    if cfg.condition_mode is ConditionMode.DAYS_BEFORE_EXPIRE:
        days = evaluated.days_before_expire.total_seconds() / 86400
        if days <= cfg.days_before_expire:
            return Decision(True, OutcomeStatus.EXPIRING)
        return Decision(False, OutcomeStatus.NOT_EXPIRED)

    if cfg.condition_mode is ConditionMode.DAYS_INTERVAL:
        if evaluated.days_before_expire_rounded in cfg.interval_days:
            return Decision(True, OutcomeStatus.EXPIRING)
        return Decision(False, OutcomeStatus.NOT_EXPIRED)

    # ALL_WITH_POLICY: any account with a computed expiry
    return Decision(True, OutcomeStatus.EXPIRING)


def _decide_new_user(
    evaluated: EvaluatedAccount,
    cfg: Settings,
    ledger: OnboardingLedger,
    now: datetime,
) -> Decision:
    account_id = evaluated.record.sam_account_name

    if ledger.contains(account_id):
        deadline = ledger.expiry_for(account_id)
        return Decision(
            False,
            OutcomeStatus.NEW_USER_ALREADY_NOTIFIED,
            clear_never_expires=deadline is not None and deadline <= now,
            deadline=deadline,
        )

    if not cfg.notify_new_users:
        return Decision(False, OutcomeStatus.NEW_USER_NOT_NOTIFIED)

    deadline = now + timedelta(days=cfg.new_user_expiry_days)
    return Decision(True, OutcomeStatus.NEW_USER, deadline=deadline)
