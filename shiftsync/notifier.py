"""Email notifications for failed or partially failed runs."""

from __future__ import annotations

import logging
import os
import smtplib
from datetime import datetime
from email.message import EmailMessage

from shiftsync.models import RunSummary

logger = logging.getLogger(__name__)


def send_notification(subject: str, body: str) -> bool:
    """Send an email notification via SMTP.

    No-ops if NOTIFY_ENABLED is false/unset or if any required SMTP config
    variable is missing. Returns True when a message was sent.
    """
    if os.getenv("NOTIFY_ENABLED", "false").lower() not in ("true", "1", "yes", "on"):
        return False

    notify_email = os.getenv("NOTIFY_EMAIL", "").strip()
    smtp_host = os.getenv("SMTP_HOST", "").strip()
    smtp_username = os.getenv("SMTP_USERNAME", "").strip()
    smtp_password = os.getenv("SMTP_PASSWORD", "")

    if not all([notify_email, smtp_host, smtp_username, smtp_password]):
        logger.warning(
            "NOTIFY_ENABLED=true but SMTP config is incomplete: "
            "requires NOTIFY_EMAIL, SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD"
        )
        return False

    try:
        smtp_port = int(os.getenv("SMTP_PORT", "587"))
    except ValueError:
        logger.warning(f"SMTP_PORT must be an integer, got {os.getenv('SMTP_PORT')!r}; notification not sent")
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = smtp_username
    msg["To"] = notify_email
    msg.set_content(body)

    try:
        if smtp_port == 465:
            with smtplib.SMTP_SSL(smtp_host, smtp_port) as smtp:
                smtp.login(smtp_username, smtp_password)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(smtp_host, smtp_port) as smtp:
                smtp.ehlo()
                smtp.starttls()
                smtp.login(smtp_username, smtp_password)
                smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning(f"Failed to send notification email: {e}")
        return False

    logger.info(f"Notification sent to {notify_email}: {subject}")
    return True


def notify_run(summary: RunSummary, warnings: list[str], error: BaseException | None = None) -> bool:
    """Email the run summary when the run failed or dropped anything."""
    if error is None and not summary.has_problems:
        return False

    now = datetime.now().strftime("%Y-%m-%d %H:%M")
    status = "FAILED" if error is not None else "completed with problems"
    lines = [f"Shift sync {status} at {now}.", ""]
    if error is not None:
        lines += [f"Error: {type(error).__name__}: {error}", ""]
    lines += summary.lines()
    if warnings:
        lines += ["", "Warnings:"] + [f"  {w}" for w in warnings]
    return send_notification(f"[shiftsync] Sync {status} - {now}", "\n".join(lines) + "\n")


class WarningCollector(logging.Handler):
    """Log handler that captures WARNING+ messages for end-of-run reporting."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.setFormatter(logging.Formatter("%(levelname)s [%(name)s]: %(message)s"))
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(self.format(record))
