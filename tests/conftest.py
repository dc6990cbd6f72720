"""Shared fixtures for the notification tests."""

from datetime import datetime, timedelta, timezone

import pytest

from pwexpiry.config import Settings
from pwexpiry.ledger import OnboardingLedger
from pwexpiry.models import AccountRecord, PasswordPolicy

_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

# Monday afternoon, well away from any DST switch
NOW = datetime(2025, 3, 10, 14, 0)


def to_filetime(local: datetime) -> int:
    """Encode a naive local datetime as a Windows FILETIME (exact integer math)."""
    delta = local.astimezone(timezone.utc) - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


def make_account(
    name: str = "jdoe",
    *,
    email: str | None = "jdoe@example.com",
    expires_in: timedelta | None = timedelta(days=10),
    policy: PasswordPolicy | None = PasswordPolicy("FGPP-Users", 90),
    **flags,
) -> AccountRecord:
    return AccountRecord(
        sam_account_name=name,
        display_name=name.title(),
        email=email,
        raw_expiry=to_filetime(NOW + expires_in) if expires_in is not None else None,
        policy=policy,
        **flags,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_settings(tmp_path):
    """Factory for isolated Settings (no .env, ledger and logs under tmp_path)."""

    def _make(**overrides) -> Settings:
        values = dict(
            run_mode="live",
            smtp_host="smtp.test",
            smtp_port=25,
            mail_from="IT <it@example.com>",
            locales="en-US",
            internal_domain="example.com",
            company_name="Contoso",
            password_change_url="https://reset.example.com",
            condition_mode="days_before_expire",
            days_before_expire=14,
            ledger_dir=str(tmp_path / "state"),
            log_dir=str(tmp_path / "logs"),
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def ledger(tmp_path):
    with OnboardingLedger(tmp_path / "state" / "new_users.txt") as led:
        yield led
