"""SMTP mail transport."""

import logging
from email.message import EmailMessage

import aiosmtplib

from auction_platform.core.config import settings

logger = logging.getLogger(__name__)

PLAIN_TEXT_FALLBACK = "Your email client does not support HTML."


class MailTransport:
    """Sends HTML e-mails through the configured SMTP server"""

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None,
        password: str | None,
        from_email: str,
        use_tls: bool = True,
        timeout: float = 10.0,
        enabled: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout
        self.enabled = enabled

    @classmethod
    def from_settings(cls) -> "MailTransport":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASSWORD,
            from_email=settings.EMAIL_FROM,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
            enabled=settings.EMAIL_ENABLED,
        )

    def build_message(
        self, to: str, subject: str, html: str, text: str | None = None
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_email
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or PLAIN_TEXT_FALLBACK)
        message.add_alternative(html, subtype="html")
        return message

    async def send_email(
        self, to: str, subject: str, html: str, text: str | None = None
    ) -> bool:
        """
        Send one e-mail.

        Returns False when sending is disabled. Transport errors propagate
        so callers can decide how to record them.
        """
        if not self.enabled:
            logger.info(f"Email disabled, not sending '{subject}' to {to}")
            return False

        message = self.build_message(to, subject, html, text)
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            timeout=self.timeout,
        )
        logger.info(f"Email sent to {to}: {subject}")
        return True
