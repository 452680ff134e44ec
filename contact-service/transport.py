"""
transport.py — Email Transport Layer
=====================================
This is the ONLY file that knows about SMTP (or any delivery mechanism).
The pipeline talks to a Notifier and never sees smtplib.

Swapping the delivery mechanism (an HTTP mail API, a test double) means
providing another object with a matching send(); nothing upstream changes.

With EMAIL_HOST unset the SMTP notifier prints messages to the log instead of
sending them, which is what you want on a dev machine.
"""

import logging
import smtplib
import uuid
from dataclasses import dataclass
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Protocol

from config import Settings

log = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    """Normalized message envelope. Transport layer speaks only this."""
    to_address:       str
    from_address:     str
    from_name:        str
    reply_to_address: str
    reply_to_name:    str
    subject:          str
    body_text:        str
    body_html:        str


@dataclass
class TransportResult:
    success: bool
    error: str | None = None


class Notifier(Protocol):
    def send(self, msg: NotificationMessage) -> TransportResult: ...


def build_mime(msg: NotificationMessage, message_id: str) -> MIMEMultipart:
    """Build a multipart/alternative message with plain text and HTML parts."""
    domain = msg.from_address.split('@')[-1] or 'localhost'

    mime = MIMEMultipart('alternative')
    mime['Subject']    = Header(msg.subject, 'utf-8')
    mime['From']       = formataddr((msg.from_name, msg.from_address), 'utf-8')
    mime['To']         = msg.to_address
    mime['Reply-To']   = formataddr((msg.reply_to_name, msg.reply_to_address), 'utf-8')
    mime['Date']       = formatdate(localtime=True)
    mime['Message-ID'] = f"<{message_id}@{domain}>"

    mime.attach(MIMEText(msg.body_text, 'plain', 'utf-8'))
    mime.attach(MIMEText(msg.body_html, 'html', 'utf-8'))
    return mime


class SmtpNotifier:
    """Delivers through an SMTP relay, STARTTLS and login when configured."""

    def __init__(self, settings: Settings):
        self.host     = settings.email_host
        self.port     = settings.email_port
        self.user     = settings.email_user
        self.password = settings.email_password
        self.use_tls  = settings.use_tls
        self.timeout  = settings.timeout

    def send(self, msg: NotificationMessage) -> TransportResult:
        """Public interface. Never raises; failures come back in the result."""
        message_id = uuid.uuid4().hex
        try:
            if not self.host:
                log.warning(f"[{message_id}] EMAIL_HOST not set — falling back to console output")
                _console_fallback(msg, message_id)
                return TransportResult(success=True)
            return self._smtp_send(msg, message_id)
        except Exception as e:
            log.error(f"[{message_id}] Transport error: {e}")
            return TransportResult(success=False, error=str(e))

    def _smtp_send(self, msg: NotificationMessage, message_id: str) -> TransportResult:
        mime = build_mime(msg, message_id)

        try:
            log.info(f"[{message_id}] Connecting to SMTP {self.host}:{self.port}")
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                    log.info(f"[{message_id}] STARTTLS enabled")
                if self.user and self.password:
                    server.login(self.user, self.password)
                    log.info(f"[{message_id}] Authenticated as {self.user}")

                server.sendmail(msg.from_address, [msg.to_address], mime.as_string())

            log.info(f"[{message_id}] Delivered: to={msg.to_address} subject='{msg.subject}' "
                     f"reply_to={msg.reply_to_address}")
            return TransportResult(success=True)

        except smtplib.SMTPException as e:
            log.error(f"[{message_id}] SMTP error: {e}")
            return TransportResult(success=False, error=f"SMTP error: {e}")
        except OSError as e:
            # socket timeouts land here too
            log.error(f"[{message_id}] Connection failed to {self.host}:{self.port}: {e}")
            return TransportResult(success=False, error=f"Connection failed: {e}")

    def config_summary(self) -> dict:
        """Current SMTP config for startup logging. Never includes the password."""
        return {
            "host":    self.host or "(not set — console fallback)",
            "port":    self.port,
            "auth":    bool(self.user),
            "tls":     self.use_tls,
            "timeout": self.timeout,
            "mode":    "smtp" if self.host else "console",
        }


def _console_fallback(msg: NotificationMessage, message_id: str) -> None:
    """Last-resort logging when SMTP is unavailable."""
    log.info("=" * 60)
    log.info("EMAIL (console fallback — no SMTP configured)")
    log.info(f"  message_id : {message_id}")
    log.info(f"  to         : {msg.to_address}")
    log.info(f"  reply_to   : {msg.reply_to_name} <{msg.reply_to_address}>")
    log.info(f"  subject    : {msg.subject}")
    log.info(f"  body       : {msg.body_text[:300]}{'...' if len(msg.body_text) > 300 else ''}")
    log.info("=" * 60)
