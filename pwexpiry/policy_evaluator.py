"""Compute the per-run expiration state of an account from its raw AD attributes."""

import logging
from datetime import datetime, timedelta, timezone

from pwexpiry.models import AccountRecord, EvaluatedAccount

logger = logging.getLogger(__name__)

_FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

# msDS-UserPasswordExpiryTimeComputed sentinels meaning "does not expire"
_NEVER = {0, 0x7FFFFFFFFFFFFFFF}


def decode_filetime(raw: int | str) -> datetime:
    """Decode a Windows FILETIME into a naive local datetime.

    Raises ValueError for sentinel or unparseable values.
    """
    ticks = int(raw)
    if ticks in _NEVER or ticks < 0:
        raise ValueError(f"FILETIME {ticks} has no expiry date")
    utc = _FILETIME_EPOCH + timedelta(microseconds=ticks // 10)
    return utc.astimezone().replace(tzinfo=None)


def evaluate_account(record: AccountRecord, now: datetime) -> EvaluatedAccount:
    """Build the EvaluatedAccount for *record* as of *now* (naive local time).

    Exactly one of these holds on the result: no policy applies, the account
    is a policy-pending new user, or an expiry was computed. A malformed
    timestamp leaves the expiry fields empty (logged, never raised).
    """
    evaluated = EvaluatedAccount(record=record)

    if record.policy is None:
        return evaluated

    if record.password_never_expires:
        evaluated.is_new_user_no_expiration = True
        return evaluated

    if record.raw_expiry is None or record.raw_expiry == "":
        logger.warning("No password expiry timestamp for %s", record.sam_account_name)
        return evaluated

    try:
        expires_on = decode_filetime(record.raw_expiry)
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(
            "Could not decode password expiry %r for %s: %s",
            record.raw_expiry,
            record.sam_account_name,
            e,
        )
        return evaluated

    delta = expires_on - now
    evaluated.expires_on = expires_on
    evaluated.days_before_expire = delta
    evaluated.days_before_expire_rounded = round(delta.total_seconds() / 86400)
    return evaluated
