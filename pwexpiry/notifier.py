"""Main password-expiry notification run.

Accounts are processed strictly one after another: the onboarding ledger and
the send quota are read and updated inside the loop body.
"""

import logging
import smtplib
from dataclasses import dataclass, field
from datetime import datetime

from pwexpiry.ad_client import enumerate_enabled_accounts, list_group_members, set_account_flag
from pwexpiry.conditions import decide
from pwexpiry.config import ConfigurationError, RunMode, Settings, settings, validate_settings
from pwexpiry.dispatcher import dispatch
from pwexpiry.email_builder import build_summary_email
from pwexpiry.ledger import OnboardingLedger
from pwexpiry.message_composer import classify_audience, compose_message, select_template
from pwexpiry.models import (
    AccountRecord,
    Decision,
    EvaluatedAccount,
    NotificationOutcome,
    OutcomeStatus,
    RunStatistics,
)
from pwexpiry.phrases import Locale, parse_locales
from pwexpiry.policy_evaluator import evaluate_account
from pwexpiry.report import RunReport, log_summary
from pwexpiry.smtp_client import send_email

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Mutable state shared by every per-account step of one run."""

    settings: Settings
    locales: list[Locale]
    ledger: OnboardingLedger
    now: datetime
    stats: RunStatistics = field(default_factory=RunStatistics)
    report: RunReport = field(default_factory=RunReport)


def load_group_filter(cfg: Settings) -> set[str] | None:
    """Members of GROUP_FILTER, or None when no filter is configured."""
    if not cfg.group_filter:
        return None
    try:
        return list_group_members(cfg.group_filter)
    except Exception as e:
        raise ConfigurationError(f"Cannot resolve group {cfg.group_filter!r}: {e}") from e


def _outcome(
    ctx: RunContext,
    evaluated: EvaluatedAccount,
    status: OutcomeStatus,
    reason: OutcomeStatus,
    **extra,
) -> NotificationOutcome:
    record = evaluated.record
    return NotificationOutcome(
        sam_account_name=record.sam_account_name,
        display_name=record.display_name,
        email=record.email or "",
        status=status,
        reason=reason,
        timestamp=ctx.now,
        expires_on=extra.pop("expires_on", evaluated.expires_on),
        days_before_expire=evaluated.days_before_expire_rounded,
        **extra,
    )


def _count_skip(stats: RunStatistics, reason: OutcomeStatus) -> None:
    if reason is OutcomeStatus.INVALID_EMAIL:
        stats.invalid_email += 1
    elif reason is OutcomeStatus.NOT_EXPIRED:
        stats.not_expired += 1
    else:
        stats.not_notified += 1


def _end_grace_period(ctx: RunContext, record: AccountRecord, decision: Decision) -> None:
    """The ledgered deadline has passed: stop exempting the account from expiry."""
    account_id = record.sam_account_name
    logger.info("Grace period for new user %s ended on %s", account_id, decision.deadline)

    if ctx.settings.run_mode is RunMode.REPORT:
        logger.info("[REPORT] Would clear PasswordNeverExpires for %s", account_id)
        return

    try:
        set_account_flag(account_id, "PasswordNeverExpires", False, mode=ctx.settings.run_mode)
        if record.cannot_change_password:
            set_account_flag(account_id, "CannotChangePassword", False, mode=ctx.settings.run_mode)
    except Exception:
        logger.exception("Failed to clear password flags for %s", account_id)


def process_account(ctx: RunContext, record: AccountRecord) -> bool:
    """Evaluate, filter, compose and send for one account.

    Returns True when the send quota was reached and the run must stop.
    """
    cfg = ctx.settings
    evaluated = evaluate_account(record, ctx.now)
    decision = decide(evaluated, cfg, ctx.ledger, ctx.now)

    if evaluated.is_new_user_no_expiration and decision.reason is not OutcomeStatus.INVALID_EMAIL:
        ctx.stats.new_user += 1

    if decision.clear_never_expires:
        _end_grace_period(ctx, record, decision)

    if not decision.should_notify:
        logger.debug("Skipping %s: %s", record.sam_account_name, decision.reason.value)
        _count_skip(ctx.stats, decision.reason)
        ctx.report.add(_outcome(ctx, evaluated, decision.reason, decision.reason))
        return False

    variant = select_template(evaluated, ctx.now)
    audience = classify_audience(record.email, cfg.internal_domain)
    message = compose_message(
        evaluated,
        variant,
        ctx.locales,
        audience,
        company=cfg.company_name,
        link=cfg.password_change_url,
        now=ctx.now,
        deadline=decision.deadline,
        as_html=cfg.mail_html,
    )
    details = dict(
        template=variant,
        audience=audience,
        subject=message.subject,
        expires_on=decision.deadline or evaluated.expires_on,
    )

    if cfg.run_mode is RunMode.REPORT:
        logger.info("[REPORT] Would notify %s (%s)", record.sam_account_name, variant.value)
        ctx.stats.not_notified += 1
        ctx.report.add(_outcome(ctx, evaluated, OutcomeStatus.NOT_NOTIFIED, decision.reason, **details))
        return False

    logger.info("Notifying %s <%s> (%s, %s)", record.sam_account_name, record.email, variant.value, audience.value)
    stop = dispatch(message, record.email, cfg, ctx.stats)

    if decision.reason is OutcomeStatus.NEW_USER:
        try:
            ctx.ledger.record(record.sam_account_name, decision.deadline)
        except OSError:
            logger.exception("Failed to record %s in the onboarding ledger", record.sam_account_name)

    ctx.report.add(_outcome(ctx, evaluated, OutcomeStatus.NOTIFIED, decision.reason, **details))
    return stop


def _quota_reached(ctx: RunContext) -> bool:
    quota = ctx.settings.send_quota
    return bool(quota) and ctx.stats.notified >= quota


def process_accounts(
    ctx: RunContext,
    accounts: list[AccountRecord],
    group_members: set[str] | None = None,
) -> None:
    """Run every account through the pipeline until done or the quota stops the run."""
    for record in accounts:
        if group_members is not None and record.sam_account_name not in group_members:
            ctx.stats.not_in_group += 1
            continue

        ctx.stats.total_checked += 1
        try:
            stop = process_account(ctx, record)
        except Exception:
            logger.exception("Failed to process account %s", record.sam_account_name)
            ctx.stats.not_notified += 1
            ctx.report.add(
                _outcome(ctx, EvaluatedAccount(record=record), OutcomeStatus.FAILED, OutcomeStatus.FAILED)
            )
            stop = _quota_reached(ctx)

        if stop:
            logger.info("Run stopped after account %s", record.sam_account_name)
            break


def _send_summary(ctx: RunContext) -> None:
    cfg = ctx.settings
    recipients = cfg.report_recipient_list
    if not recipients:
        return

    body = build_summary_email(ctx.report.notified, ctx.stats, mode=cfg.run_mode.value)
    try:
        send_email(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            from_address=cfg.mail_from,
            to_recipients=recipients,
            subject=f"Kennwortablauf-Benachrichtigung - {ctx.stats.notified} Benutzer benachrichtigt",
            body=body,
        )
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send run summary email")


def run_notifications(cfg: Settings = settings, *, now: datetime | None = None) -> RunStatistics:
    """Execute one complete notification run.

    1. Validate configuration, locales and group filter (fatal on error)
    2. Fetch enabled accounts from AD
    3. Load the onboarding ledger for this run mode
    4. Process accounts one by one (stops early at the send quota)
    5. Write the CSV report, send the admin summary, log the counters
    """
    logger.info("=== Starting password expiry notification run (%s) ===", cfg.run_mode.value)

    validate_settings(cfg)
    locales = parse_locales(cfg.locale_tags)
    group_members = load_group_filter(cfg)

    if cfg.run_mode is RunMode.SIMULATE:
        logger.info("*** SIMULATION - mails go to %s only ***", ", ".join(cfg.simulation_recipient_list))
    elif cfg.run_mode is RunMode.REPORT:
        logger.info("*** REPORT ONLY - nothing is sent or changed ***")

    accounts = enumerate_enabled_accounts(include_default=cfg.include_default_domain_policy)

    with OnboardingLedger(cfg.ledger_path, read_only=cfg.run_mode is RunMode.REPORT) as ledger:
        ctx = RunContext(
            settings=cfg,
            locales=locales,
            ledger=ledger,
            now=now or datetime.now(),
        )
        process_accounts(ctx, accounts, group_members)

    if cfg.report_path:
        ctx.report.write_csv(cfg.report_path)

    _send_summary(ctx)
    log_summary(ctx.stats)
    logger.info("=== Password expiry notification run complete ===")
    return ctx.stats
