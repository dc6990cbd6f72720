"""Tests for the onboarding ledger file."""

from datetime import datetime

import pytest

from pwexpiry.ledger import OnboardingLedger


def test_missing_file_is_created_empty(tmp_path):
    path = tmp_path / "state" / "new_users.txt"

    with OnboardingLedger(path) as ledger:
        assert len(ledger) == 0

    assert path.exists()
    assert path.read_text(encoding="utf-8") == ""


def test_record_then_reload(tmp_path):
    path = tmp_path / "new_users.txt"
    deadline = datetime(2025, 3, 24, 14, 0)

    with OnboardingLedger(path) as ledger:
        ledger.record("jdoe", deadline)
        assert ledger.contains("jdoe")

    assert path.read_text(encoding="utf-8") == "jdoe|24.03.2025 14:00\n"

    with OnboardingLedger(path) as reloaded:
        assert reloaded.contains("jdoe")
        assert reloaded.expiry_for("jdoe") == deadline
        assert not reloaded.contains("asmith")
        assert reloaded.expiry_for("asmith") is None


def test_appends_to_existing_entries(tmp_path):
    path = tmp_path / "new_users.txt"
    path.write_text("first|01.01.2025 08:00\n", encoding="utf-8")

    with OnboardingLedger(path) as ledger:
        ledger.record("second", datetime(2025, 2, 1, 9, 30))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == ["first|01.01.2025 08:00", "second|01.02.2025 09:30"]


def test_unparseable_date_is_tolerated(tmp_path):
    path = tmp_path / "new_users.txt"
    path.write_text("jdoe|garbage\nasmith\n\n", encoding="utf-8")

    with OnboardingLedger(path) as ledger:
        assert ledger.contains("jdoe")
        assert ledger.expiry_for("jdoe") is None
        assert ledger.contains("asmith")
        assert ledger.expiry_for("asmith") is None


def test_read_only_ledger_is_not_created_and_refuses_writes(tmp_path):
    path = tmp_path / "new_users.txt"

    with OnboardingLedger(path, read_only=True) as ledger:
        with pytest.raises(RuntimeError):
            ledger.record("jdoe", datetime(2025, 1, 1))

    assert not path.exists()
