from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Fatal configuration problem detected before any account is processed."""


class RunMode(str, Enum):
    LIVE = "live"
    SIMULATE = "simulate"
    REPORT = "report"


class ConditionMode(str, Enum):
    DAYS_BEFORE_EXPIRE = "days_before_expire"
    DAYS_INTERVAL = "days_interval"
    ALL_WITH_POLICY = "all_with_policy"


def split_list(value: str) -> list[str]:
    """Split a comma-separated setting into its non-empty, stripped items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ========== Run ==========
    run_mode: RunMode = RunMode.SIMULATE
    send_quota: int = 0  # 0 = unlimited

    # ========== SMTP ==========
    smtp_host: str = "localhost"
    smtp_port: int = 25
    mail_from: str = "IT Service Desk <noreply@example.com>"
    mail_html: bool = True
    simulation_recipients: str = ""  # Comma-separated, simulate mode only

    # ========== Message Content ==========
    locales: str = "de-DE"  # Comma-separated; the first one is used for the subject
    internal_domain: str = "example.com"
    company_name: str = "Example"
    password_change_url: str = "https://passwordreset.microsoftonline.com"

    # ========== Conditions ==========
    condition_mode: ConditionMode = ConditionMode.DAYS_BEFORE_EXPIRE
    days_before_expire: int | None = 14
    days_interval: str = ""  # e.g. "1,3,7,14"
    group_filter: str = ""
    include_default_domain_policy: bool = False

    # ========== New Users ==========
    notify_new_users: bool = False
    new_user_expiry_days: int = 14

    # ========== Output ==========
    report_path: str = ""
    report_email_to: str = ""
    ledger_dir: str = "state"
    log_dir: str = "logs"

    @property
    def simulation_recipient_list(self) -> list[str]:
        return split_list(self.simulation_recipients)

    @property
    def report_recipient_list(self) -> list[str]:
        return split_list(self.report_email_to)

    @property
    def locale_tags(self) -> list[str]:
        return split_list(self.locales)

    @property
    def interval_days(self) -> set[int]:
        """Parse DAYS_INTERVAL into a set of ints; raises ConfigurationError on junk."""
        days = set()
        for item in split_list(self.days_interval):
            try:
                days.add(int(item))
            except ValueError:
                raise ConfigurationError(f"Invalid day in DAYS_INTERVAL: {item!r}") from None
        return days

    @property
    def ledger_path(self) -> Path:
        """Simulation runs keep their own ledger so they never touch live state."""
        name = "new_users_simulation.txt" if self.run_mode is RunMode.SIMULATE else "new_users.txt"
        return Path(self.ledger_dir) / name


def validate_settings(cfg: Settings) -> None:
    """Check the mode-specific required options; raise ConfigurationError on the first problem."""
    if cfg.condition_mode is ConditionMode.DAYS_BEFORE_EXPIRE and cfg.days_before_expire is None:
        raise ConfigurationError("CONDITION_MODE=days_before_expire requires DAYS_BEFORE_EXPIRE")

    if cfg.condition_mode is ConditionMode.DAYS_INTERVAL and not cfg.interval_days:
        raise ConfigurationError("CONDITION_MODE=days_interval requires a non-empty DAYS_INTERVAL")

    if cfg.run_mode is RunMode.SIMULATE and not cfg.simulation_recipient_list:
        raise ConfigurationError("RUN_MODE=simulate requires SIMULATION_RECIPIENTS")

    if cfg.run_mode is RunMode.REPORT and not cfg.report_path:
        raise ConfigurationError("RUN_MODE=report requires REPORT_PATH")

    if cfg.send_quota < 0:
        raise ConfigurationError("SEND_QUOTA must be 0 (unlimited) or positive")

    if cfg.notify_new_users and cfg.new_user_expiry_days <= 0:
        raise ConfigurationError("NEW_USER_EXPIRY_DAYS must be positive when NOTIFY_NEW_USERS is set")

    if not cfg.locale_tags:
        raise ConfigurationError("LOCALES must name at least one locale")


settings = Settings()
