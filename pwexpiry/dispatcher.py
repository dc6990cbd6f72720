"""Deliver a composed notification and keep the send quota."""

import logging
import smtplib

from pwexpiry.config import RunMode, Settings
from pwexpiry.message_composer import ComposedMessage
from pwexpiry.models import RunStatistics
from pwexpiry.smtp_client import send_email

logger = logging.getLogger(__name__)


def resolve_recipients(email: str, cfg: Settings) -> list[str]:
    """Simulation never mails the real account address."""
    if cfg.run_mode is RunMode.SIMULATE:
        return cfg.simulation_recipient_list
    return [email]


def dispatch(message: ComposedMessage, email: str, cfg: Settings, stats: RunStatistics) -> bool:
    """Send *message* for the account at *email* and count it as notified.

    A failed send is logged but still counted, so ledger and report
    bookkeeping proceed as for a delivered mail. Returns True once the
    configured quota is reached and the run has to stop.
    """
    recipients = resolve_recipients(email, cfg)
    if cfg.run_mode is RunMode.SIMULATE:
        logger.info("[SIMULATE] Redirecting mail for %s to %s", email, recipients)

    try:
        send_email(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            from_address=cfg.mail_from,
            to_recipients=recipients,
            subject=message.subject,
            body=message.body,
            is_html=message.is_html,
        )
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send notification for %s", email)

    stats.notified += 1

    if cfg.send_quota and stats.notified >= cfg.send_quota:
        logger.warning("Send quota of %d reached - stopping run", cfg.send_quota)
        return True
    return False
