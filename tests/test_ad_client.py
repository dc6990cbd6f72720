"""Tests for the PowerShell-backed AD collaborator (subprocess patched out)."""

import base64
import json
import logging
import subprocess
from unittest.mock import patch

import pytest

from pwexpiry import ad_client
from pwexpiry.config import RunMode
from pwexpiry.models import PasswordPolicy

ROW = {
    "SamAccountName": "jdoe",
    "DisplayName": "Doe, John",
    "EmailAddress": "jdoe@example.com",
    "PasswordNeverExpires": False,
    "PasswordExpired": False,
    "CannotChangePassword": True,
    "PasswordExpiryTime": "133860096000000000",
    "PolicyName": "FGPP-Users",
    "PolicyMaxAgeDays": 90.0,
    "DefaultMaxAgeDays": 42.0,
}


def _completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _decoded_script(mock_run) -> str:
    encoded = mock_run.call_args.args[0][-1]
    return base64.b64decode(encoded).decode("utf-16-le")


def test_parse_single_object_and_array():
    single = ad_client.parse_account_rows(json.dumps(ROW))
    many = ad_client.parse_account_rows(json.dumps([ROW, dict(ROW, SamAccountName="asmith")]))

    assert [r.sam_account_name for r in single] == ["jdoe"]
    assert [r.sam_account_name for r in many] == ["jdoe", "asmith"]
    assert ad_client.parse_account_rows("") == []


def test_parse_maps_fields():
    record = ad_client.parse_account_rows(json.dumps(ROW))[0]

    assert record.display_name == "Doe, John"
    assert record.email == "jdoe@example.com"
    assert record.cannot_change_password is True
    assert record.raw_expiry == "133860096000000000"
    assert record.policy == PasswordPolicy("FGPP-Users", 90.0)


def test_blank_email_becomes_none():
    record = ad_client.parse_account_rows(json.dumps(dict(ROW, EmailAddress=None)))[0]
    assert record.email is None


def test_resolve_password_policy_fallback():
    row = dict(ROW, PolicyName=None, PolicyMaxAgeDays=None)

    assert ad_client.resolve_password_policy(row) is None
    fallback = ad_client.resolve_password_policy(row, include_default=True)
    assert fallback.name == "Default Domain Policy"
    assert fallback.max_password_age_days == 42.0


@patch("pwexpiry.ad_client.subprocess.run")
def test_enumerate_enabled_accounts(mock_run):
    mock_run.return_value = _completed(json.dumps([ROW]))

    records = ad_client.enumerate_enabled_accounts()

    assert [r.sam_account_name for r in records] == ["jdoe"]
    script = _decoded_script(mock_run)
    assert script.startswith("Import-Module ActiveDirectory")
    assert "Get-ADUserResultantPasswordPolicy" in script
    assert "$includeDefault = $false" in script


@patch("pwexpiry.ad_client.subprocess.run")
def test_enumerate_with_default_domain_policy(mock_run):
    mock_run.return_value = _completed(json.dumps(dict(ROW, PolicyName=None, PolicyMaxAgeDays=None)))

    records = ad_client.enumerate_enabled_accounts(include_default=True)

    assert records[0].policy == PasswordPolicy("Default Domain Policy", 42.0)
    assert "$includeDefault = $true" in _decoded_script(mock_run)


@patch("pwexpiry.ad_client.subprocess.run")
def test_list_group_members(mock_run):
    mock_run.return_value = _completed("jdoe\r\nasmith\r\n\r\n")

    assert ad_client.list_group_members("PW-Notify") == {"jdoe", "asmith"}
    assert "Get-ADGroupMember -Identity 'PW-Notify'" in _decoded_script(mock_run)


@patch("pwexpiry.ad_client.subprocess.run")
def test_unknown_group_raises(mock_run):
    mock_run.return_value = _completed(returncode=1, stderr="Cannot find an object with identity")

    with pytest.raises(RuntimeError):
        ad_client.list_group_members("Nope")


@pytest.mark.parametrize("mode", [RunMode.SIMULATE, RunMode.REPORT])
@patch("pwexpiry.ad_client.subprocess.run")
def test_set_account_flag_only_logs_outside_live(mock_run, mode, caplog):
    caplog.set_level(logging.INFO, logger="pwexpiry.ad_client")

    ad_client.set_account_flag("jdoe", "PasswordNeverExpires", False, mode=mode)

    mock_run.assert_not_called()
    assert "Would run PowerShell" in caplog.text
    assert "Set PasswordNeverExpires=False for jdoe" not in caplog.text


@patch("pwexpiry.ad_client.subprocess.run")
def test_set_account_flag_live(mock_run, caplog):
    caplog.set_level(logging.INFO, logger="pwexpiry.ad_client")
    mock_run.return_value = _completed()

    ad_client.set_account_flag("o'brien", "CannotChangePassword", False, mode=RunMode.LIVE)

    script = _decoded_script(mock_run)
    assert "SamAccountName -eq 'o''brien'" in script
    assert "-CannotChangePassword $false" in script
    assert "Set CannotChangePassword=False for o'brien" in caplog.text


def test_set_account_flag_rejects_unknown_flag():
    with pytest.raises(ValueError):
        ad_client.set_account_flag("jdoe", "Enabled", False, mode=RunMode.LIVE)
