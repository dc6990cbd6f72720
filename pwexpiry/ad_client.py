"""On-premise Active Directory access via PowerShell.

Queries (account enumeration, group members) always run. Mutations
(Set-ADUser) only run in live mode; other modes log the script instead.
"""

import base64
import json
import logging
import subprocess

from pwexpiry.config import RunMode
from pwexpiry.models import AccountRecord, PasswordPolicy

logger = logging.getLogger(__name__)

# Prefix prepended to every PowerShell script so AD cmdlets are always available.
_PS_PREAMBLE = "Import-Module ActiveDirectory -ErrorAction Stop\n"

# Flags accepted by set_account_flag -> Set-ADUser parameter
_ACCOUNT_FLAGS = {
    "PasswordNeverExpires": "PasswordNeverExpires",
    "CannotChangePassword": "CannotChangePassword",
}

_ENUMERATE_SCRIPT = """
$ErrorActionPreference = 'Stop'
$includeDefault = ${include_default}
$defaultPolicy = $null
if ($includeDefault) {{ $defaultPolicy = Get-ADDefaultDomainPasswordPolicy }}

$users = Get-ADUser -Filter {{ Enabled -eq $true }} -Properties `
    DisplayName, EmailAddress, PasswordNeverExpires, PasswordExpired, CannotChangePassword, `
    'msDS-UserPasswordExpiryTimeComputed'

$rows = foreach ($u in $users) {{
    $policy = Get-ADUserResultantPasswordPolicy -Identity $u -ErrorAction SilentlyContinue
    [PSCustomObject]@{{
        SamAccountName       = $u.SamAccountName
        DisplayName          = $u.DisplayName
        EmailAddress         = $u.EmailAddress
        PasswordNeverExpires = [bool]$u.PasswordNeverExpires
        PasswordExpired      = [bool]$u.PasswordExpired
        CannotChangePassword = [bool]$u.CannotChangePassword
        PasswordExpiryTime   = [string]$u.'msDS-UserPasswordExpiryTimeComputed'
        PolicyName           = if ($policy) {{ $policy.Name }} else {{ $null }}
        PolicyMaxAgeDays     = if ($policy) {{ $policy.MaxPasswordAge.TotalDays }} else {{ $null }}
        DefaultMaxAgeDays    = if ($defaultPolicy) {{ $defaultPolicy.MaxPasswordAge.TotalDays }} else {{ $null }}
    }}
}}
@($rows) | ConvertTo-Json -Depth 3 -Compress
"""


def _encode_command(script: str) -> str:
    """Encode a PowerShell script as base64 UTF-16LE for -EncodedCommand.

    This avoids all code-page / encoding issues with special characters
    (ö, ä, ü, ß, …) that break when passed via -Command on Windows.
    """
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def _escape(value: str) -> str:
    """Escape a string for safe embedding in a PowerShell single-quoted string."""
    return value.replace("'", "''")


def _invoke(script: str, *, description: str, timeout: int) -> subprocess.CompletedProcess[str]:
    full_script = _PS_PREAMBLE + script
    logger.debug("Running PowerShell [%s]:\n%s", description, full_script)

    result = subprocess.run(
        ["powershell", "-NoProfile", "-NonInteractive", "-EncodedCommand", _encode_command(full_script)],
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    if result.returncode != 0:
        logger.error(
            "PowerShell [%s] failed (rc=%d):\nSTDOUT: %s\nSTDERR: %s",
            description,
            result.returncode,
            result.stdout,
            result.stderr,
        )
        raise RuntimeError(f"PowerShell [{description}] failed: {result.stderr.strip()}")

    return result


def _query_ps(script: str, *, description: str, timeout: int = 600) -> str:
    """Run a read-only PowerShell script and return its stdout."""
    return _invoke(script, description=description, timeout=timeout).stdout.strip()


def _run_ps(script: str, *, description: str, mode: RunMode) -> bool:
    """Run a PowerShell script that changes directory state.

    Outside live mode the script is only logged. Returns whether it ran.
    """
    if mode is not RunMode.LIVE:
        logger.info("[%s] Would run PowerShell [%s]:\n%s", mode.value.upper(), description, script)
        return False

    result = _invoke(script, description=description, timeout=120)
    logger.debug("PowerShell [%s] output: %s", description, result.stdout.strip())
    return True


def _parse_days(value) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def resolve_password_policy(row: dict, *, include_default: bool = False) -> PasswordPolicy | None:
    """Return the password policy that governs an enumerated account.

    Fine-grained (resultant) policies win; the default domain policy is only
    used when *include_default* is set.
    """
    name = row.get("PolicyName")
    if name:
        return PasswordPolicy(name=name, max_password_age_days=_parse_days(row.get("PolicyMaxAgeDays")))

    if include_default:
        return PasswordPolicy(
            name="Default Domain Policy",
            max_password_age_days=_parse_days(row.get("DefaultMaxAgeDays")),
        )
    return None


def _record_from_row(row: dict, *, include_default: bool) -> AccountRecord:
    return AccountRecord(
        sam_account_name=(row.get("SamAccountName") or "").strip(),
        display_name=(row.get("DisplayName") or "").strip(),
        email=(row.get("EmailAddress") or "").strip() or None,
        password_never_expires=bool(row.get("PasswordNeverExpires")),
        password_expired=bool(row.get("PasswordExpired")),
        cannot_change_password=bool(row.get("CannotChangePassword")),
        raw_expiry=row.get("PasswordExpiryTime") or None,
        policy=resolve_password_policy(row, include_default=include_default),
    )


def parse_account_rows(output: str, *, include_default: bool = False) -> list[AccountRecord]:
    """Parse the JSON printed by the enumeration script.

    ConvertTo-Json prints a bare object instead of an array for a single
    result and nothing at all for zero results.
    """
    if not output:
        return []

    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]

    records = [_record_from_row(row, include_default=include_default) for row in data]
    return [r for r in records if r.sam_account_name]


def enumerate_enabled_accounts(*, include_default: bool = False) -> list[AccountRecord]:
    """Fetch every enabled user account with its resolved password policy.

    *include_default* falls back to the default domain policy for accounts
    without a fine-grained one.
    """
    logger.info("Fetching enabled accounts from Active Directory…")
    script = _ENUMERATE_SCRIPT.format(
        include_default="true" if include_default else "false",
    )
    output = _query_ps(script, description="Get-ADUser enabled accounts")
    records = parse_account_rows(output, include_default=include_default)
    logger.info("Fetched %d enabled accounts", len(records))
    return records


def list_group_members(group: str) -> set[str]:
    """Return the SamAccountNames of all (recursive) members of *group*.

    Raises RuntimeError if the group cannot be resolved.
    """
    script = (
        f"Get-ADGroupMember -Identity '{_escape(group)}' -Recursive -ErrorAction Stop "
        "| Where-Object { $_.objectClass -eq 'user' } "
        "| Select-Object -ExpandProperty SamAccountName"
    )
    output = _query_ps(script, description=f"Get-ADGroupMember {group}", timeout=120)
    members = {line.strip() for line in output.splitlines() if line.strip()}
    logger.info("Group %s has %d user members", group, len(members))
    return members


def set_account_flag(account_id: str, flag: str, value: bool, *, mode: RunMode) -> None:
    """Set a boolean account flag (PasswordNeverExpires, CannotChangePassword).

    Only live mode touches the directory.
    """
    parameter = _ACCOUNT_FLAGS.get(flag)
    if parameter is None:
        raise ValueError(f"Unsupported account flag: {flag}")

    ps_value = "$true" if value else "$false"
    script = f"""
$user = Get-ADUser -Filter {{ SamAccountName -eq '{_escape(account_id)}' }}
if (-not $user) {{
    Write-Error 'User {_escape(account_id)} not found in AD'
    exit 1
}}
Set-ADUser -Identity $user -{parameter} {ps_value} -Verbose
"""
    if _run_ps(script, description=f"Set-ADUser {account_id} -{parameter} {ps_value}", mode=mode):
        logger.info("Set %s=%s for %s", flag, value, account_id)
