"""
TV Control - Operator Email Notifications

Messages are handed to the local mail transport agent (ssmtp), which relays
them through Gmail using the credentials the installer wrote to
/etc/ssmtp/ssmtp.conf. Sending is best effort: failures are logged, never
raised, and never retried.
"""

import logging
import os
import socket
import subprocess
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from tv_control.common.config import DeviceConfig

logger = logging.getLogger(__name__)

MAIL_TRANSPORT = 'ssmtp'
SSMTP_CONF_FILE = Path('/etc/ssmtp/ssmtp.conf')
SMTP_HUB = 'smtp.gmail.com:587'

DEFAULT_SEND_TIMEOUT = 60  # seconds

ERROR_SUBJECT = 'TV Control Error'
VERIFICATION_SUBJECT = 'Email Verification'
VERIFICATION_BODY = (
    "This is a test message to verify email delivery during setup.\n\n"
    "If you received this, email is working correctly."
)


def build_message(email_from: str, email_to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message['From'] = email_from
    message['To'] = email_to
    message['Subject'] = subject
    message.set_content(body)
    return message


def send_message(message: EmailMessage, timeout: int = DEFAULT_SEND_TIMEOUT) -> bool:
    """
    Pipe a message to the mail transport agent.

    Returns:
        True if the transport accepted the message.
    """
    recipient = message['To']
    try:
        result = subprocess.run(
            [MAIL_TRANSPORT, recipient],
            input=message.as_bytes(),
            capture_output=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"{MAIL_TRANSPORT} timed out sending to {recipient}")
        return False
    except FileNotFoundError:
        logger.warning(f"{MAIL_TRANSPORT} not found - cannot send email")
        return False
    except OSError as e:
        logger.warning(f"{MAIL_TRANSPORT} could not run: {e}")
        return False

    if result.returncode != 0:
        stderr = result.stderr.decode(errors='replace').strip()
        logger.warning(f"{MAIL_TRANSPORT} failed to send to {recipient}: {stderr}")
        return False

    return True


class EmailNotifier:
    """Sends failure notifications for one device."""

    def __init__(self, config: DeviceConfig):
        self.config = config

    @property
    def subject(self) -> str:
        return f"[{self.config.device_name} - {self.config.device_id}] {ERROR_SUBJECT}"

    def notify(self, description: str) -> bool:
        """Send a single best-effort failure email."""
        message = build_message(
            self.config.email_from, self.config.email_to, self.subject, description
        )
        sent = send_message(message)
        if sent:
            logger.info(f"Notification sent to {self.config.email_to}: {description}")
        return sent


def send_verification_email(email_from: str, email_to: str, tag: str) -> bool:
    """Send the installer's test message, tagged so the operator can spot it."""
    message = build_message(email_from, email_to, f"[{tag}] {VERIFICATION_SUBJECT}", VERIFICATION_BODY)
    return send_message(message)


def render_ssmtp_conf(email_from: str, app_password: str, hostname: Optional[str] = None) -> str:
    hostname = hostname or socket.gethostname()
    return (
        f"root={email_from}\n"
        f"mailhub={SMTP_HUB}\n"
        f"AuthUser={email_from}\n"
        f"AuthPass={app_password}\n"
        "UseSTARTTLS=YES\n"
        "UseTLS=YES\n"
        f"hostname={hostname}\n"
    )


def write_ssmtp_conf(
    email_from: str,
    app_password: str,
    conf_path: Path = SSMTP_CONF_FILE
) -> bool:
    """
    Write the ssmtp configuration with owner-only permissions.

    Runs through `sudo tee` when not root, since /etc/ssmtp is root-owned.

    Returns:
        True if the file was written.
    """
    content = render_ssmtp_conf(email_from, app_password)
    sudo = [] if os.geteuid() == 0 else ['sudo']

    try:
        result = subprocess.run(
            [*sudo, 'tee', str(conf_path)],
            input=content,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=DEFAULT_SEND_TIMEOUT
        )
        if result.returncode != 0:
            logger.error(f"Failed to write {conf_path}: {result.stderr.strip()}")
            return False

        subprocess.run([*sudo, 'chmod', '600', str(conf_path)], check=True, timeout=DEFAULT_SEND_TIMEOUT)
    except (subprocess.SubprocessError, OSError) as e:
        logger.error(f"Failed to configure {MAIL_TRANSPORT}: {e}")
        return False

    logger.info(f"Configured {MAIL_TRANSPORT} at {conf_path}")
    return True
