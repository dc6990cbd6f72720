"""Tests for the per-account notification decision."""

from datetime import datetime, timedelta

import pytest

from conftest import NOW, make_account
from pwexpiry.conditions import decide, has_valid_email
from pwexpiry.models import EvaluatedAccount, OutcomeStatus
from pwexpiry.policy_evaluator import evaluate_account


def _evaluated(days: float) -> EvaluatedAccount:
    """An account with a computed expiry exactly *days* from NOW."""
    return evaluate_account(make_account(expires_in=timedelta(days=days)), NOW)


@pytest.mark.parametrize("address, valid", [
    ("jdoe@example.com", True),
    ("John Doe <jdoe@example.com>", True),
    ("", False),
    (None, False),
    ("jdoe", False),
    ("jdoe@localhost", False),
])
def test_has_valid_email(address, valid):
    assert has_valid_email(address) is valid


def test_missing_email_is_checked_first(make_settings, ledger):
    evaluated = evaluate_account(make_account(email=None, password_never_expires=True), NOW)

    decision = decide(evaluated, make_settings(notify_new_users=True), ledger, NOW)

    assert decision.should_notify is False
    assert decision.reason is OutcomeStatus.INVALID_EMAIL


def test_days_before_expire_is_a_threshold(make_settings, ledger):
    cfg = make_settings(condition_mode="days_before_expire", days_before_expire=14)

    assert decide(_evaluated(14.3), cfg, ledger, NOW).should_notify is False
    assert decide(_evaluated(14.3), cfg, ledger, NOW).reason is OutcomeStatus.NOT_EXPIRED
    assert decide(_evaluated(13.9), cfg, ledger, NOW).should_notify is True
    assert decide(_evaluated(-3), cfg, ledger, NOW).should_notify is True


def test_days_interval_is_exact_match(make_settings, ledger):
    evaluated = _evaluated(5)

    miss = decide(evaluated, make_settings(condition_mode="days_interval", days_interval="1,3,14"), ledger, NOW)
    hit = decide(evaluated, make_settings(condition_mode="days_interval", days_interval="1,3,5,14"), ledger, NOW)

    assert miss.should_notify is False
    assert miss.reason is OutcomeStatus.NOT_EXPIRED
    assert hit.should_notify is True
    assert hit.reason is OutcomeStatus.EXPIRING


def test_all_with_policy_notifies_any_computed_expiry(make_settings, ledger):
    cfg = make_settings(condition_mode="all_with_policy")

    assert decide(_evaluated(200), cfg, ledger, NOW).should_notify is True


@pytest.mark.parametrize("mode", ["days_before_expire", "days_interval", "all_with_policy"])
def test_no_policy_is_excluded_in_every_mode(make_settings, ledger, mode):
    cfg = make_settings(condition_mode=mode, days_interval="0,1,2,3")
    evaluated = evaluate_account(make_account(policy=None, expires_in=timedelta(days=1)), NOW)

    decision = decide(evaluated, cfg, ledger, NOW)

    assert decision.should_notify is False
    assert decision.reason is OutcomeStatus.NO_POLICY


def test_unparseable_expiry_is_excluded(make_settings, ledger):
    evaluated = evaluate_account(make_account(expires_in=None), NOW)

    decision = decide(evaluated, make_settings(condition_mode="all_with_policy"), ledger, NOW)

    assert decision.reason is OutcomeStatus.NO_EXPIRY_DATE


@pytest.mark.parametrize("mode", ["days_before_expire", "days_interval", "all_with_policy"])
def test_new_user_bypasses_condition_modes(make_settings, ledger, mode):
    cfg = make_settings(condition_mode=mode, days_interval="1", notify_new_users=False)
    evaluated = evaluate_account(make_account(password_never_expires=True), NOW)

    decision = decide(evaluated, cfg, ledger, NOW)

    assert decision.should_notify is False
    assert decision.reason is OutcomeStatus.NEW_USER_NOT_NOTIFIED


def test_new_user_gets_forced_deadline(make_settings, ledger):
    cfg = make_settings(notify_new_users=True, new_user_expiry_days=21)
    evaluated = evaluate_account(make_account(password_never_expires=True), NOW)

    decision = decide(evaluated, cfg, ledger, NOW)

    assert decision.should_notify is True
    assert decision.reason is OutcomeStatus.NEW_USER
    assert decision.deadline == NOW + timedelta(days=21)


def test_ledgered_new_user_is_never_renotified(make_settings, ledger):
    ledger.record("jdoe", NOW + timedelta(days=3))
    evaluated = evaluate_account(make_account(password_never_expires=True), NOW)

    decision = decide(evaluated, make_settings(notify_new_users=True), ledger, NOW)

    assert decision.should_notify is False
    assert decision.reason is OutcomeStatus.NEW_USER_ALREADY_NOTIFIED
    assert decision.clear_never_expires is False


def test_ledgered_deadline_passed_triggers_flag_clearing(make_settings, ledger):
    ledger.record("jdoe", datetime(2025, 3, 1, 9, 0))
    evaluated = evaluate_account(make_account(password_never_expires=True), NOW)

    decision = decide(evaluated, make_settings(), ledger, NOW)

    assert decision.should_notify is False
    assert decision.clear_never_expires is True
