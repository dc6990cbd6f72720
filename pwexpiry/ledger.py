"""Persisted record of policy-pending accounts that already got their new-user notice.

One line per account, written once and never rewritten::

    jdoe|31.12.2025 08:30

The timestamp is the forced-expiry deadline assigned when the notice went out
(naive local time, no timezone). Live and simulation runs use different files.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)

DELIMITER = "|"
DATE_FORMAT = "%d.%m.%Y %H:%M"


class OnboardingLedger:
    def __init__(self, path: Path, *, read_only: bool = False) -> None:
        self.path = Path(path)
        self.read_only = read_only
        self._entries: dict[str, datetime | None] = {}
        self._handle: TextIO | None = None

    # ── Loading ──────────────────────────────────────────────────────

    def load(self) -> None:
        """Read all known entries. A missing file is created empty."""
        if not self.path.exists():
            if self.read_only:
                logger.info("Ledger %s does not exist yet (read-only run)", self.path)
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()
            logger.info("Created empty ledger %s", self.path)
            return

        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                account_id, _, raw_date = line.partition(DELIMITER)
                account_id = account_id.strip()
                if not account_id or account_id in self._entries:
                    continue
                self._entries[account_id] = _parse_date(raw_date.strip())

        logger.info("Loaded %d ledger entries from %s", len(self._entries), self.path)

    # ── Queries ──────────────────────────────────────────────────────

    def contains(self, account_id: str) -> bool:
        return account_id in self._entries

    def expiry_for(self, account_id: str) -> datetime | None:
        return self._entries.get(account_id)

    def __len__(self) -> int:
        return len(self._entries)

    # ── Writing ──────────────────────────────────────────────────────

    def record(self, account_id: str, expires_on: datetime) -> None:
        """Append an entry. Callers check :meth:`contains` first."""
        if self.read_only:
            raise RuntimeError(f"Ledger {self.path} is read-only for this run")

        if self._handle is None:
            self._handle = open(self.path, "a", encoding="utf-8")

        self._handle.write(f"{account_id}{DELIMITER}{expires_on.strftime(DATE_FORMAT)}\n")
        self._handle.flush()
        self._entries[account_id] = expires_on.replace(second=0, microsecond=0)
        logger.info("Ledgered new user %s (forced expiry %s)", account_id, expires_on.strftime(DATE_FORMAT))

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "OnboardingLedger":
        self.load()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _parse_date(value: str) -> datetime | None:
    # An unparseable date just means the account is never auto-cleared.
    try:
        return datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return None
