"""Per-account outcome rows (CSV / admin mail) and the end-of-run counter summary."""

import csv
import logging
from pathlib import Path

from pwexpiry.models import NotificationOutcome, OutcomeStatus, RunStatistics

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Timestamp",
    "SamAccountName",
    "DisplayName",
    "Email",
    "Status",
    "Reason",
    "Template",
    "Audience",
    "ExpiresOn",
    "DaysBeforeExpire",
    "Subject",
]

_DATE_FORMAT = "%d.%m.%Y %H:%M"


class RunReport:
    def __init__(self) -> None:
        self.outcomes: list[NotificationOutcome] = []

    def add(self, outcome: NotificationOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def notified(self) -> list[NotificationOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.NOTIFIED]

    def write_csv(self, path: str | Path) -> Path:
        """Write all rows as a semicolon-delimited file with header (UTF-8 with BOM for Excel)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.writer(f, delimiter=";")
            writer.writerow(CSV_COLUMNS)
            for o in self.outcomes:
                writer.writerow([
                    o.timestamp.strftime(_DATE_FORMAT),
                    o.sam_account_name,
                    o.display_name,
                    o.email,
                    o.status.value,
                    o.reason.value,
                    o.template.value if o.template else "",
                    o.audience.value if o.audience else "",
                    o.expires_on.strftime(_DATE_FORMAT) if o.expires_on else "",
                    "" if o.days_before_expire is None else o.days_before_expire,
                    o.subject,
                ])

        logger.info("Wrote %d report rows to %s", len(self.outcomes), path)
        return path


def log_summary(stats: RunStatistics) -> None:
    logger.info("-" * 40)
    logger.info("Run summary")
    for line in stats.summary_lines():
        logger.info(line)
    logger.info("-" * 40)
