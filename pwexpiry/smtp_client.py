"""Send mails via direct SMTP to the whitelisted relay / Exchange connector.

No authentication required - the server IP is whitelisted on the connector.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, parseaddr

logger = logging.getLogger(__name__)


def send_email(
    *,
    host: str,
    port: int,
    from_address: str,
    to_recipients: list[str],
    subject: str,
    body: str,
    is_html: bool = True,
) -> None:
    """Send one message. SMTP and socket errors propagate to the caller."""
    display_name, sender_addr = parseaddr(from_address)
    sender_display = formataddr((display_name, sender_addr)) if display_name else sender_addr

    msg = MIMEMultipart("alternative")
    msg["From"] = sender_display
    msg["To"] = ", ".join(to_recipients)
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "html" if is_html else "plain", "utf-8"))

    with smtplib.SMTP(host, port, timeout=30) as smtp:
        smtp.sendmail(sender_addr, to_recipients, msg.as_string())

    logger.info("Sent email '%s' to %s", subject, to_recipients)
