"""SMTP delivery of the digest."""

from __future__ import annotations

import smtplib
import ssl
from email.message import EmailMessage

from plexdigest.config import EmailConfig


class MailError(Exception):
    """The digest could not be sent."""

    pass


class Mailer:
    """Send HTML mail through an SMTP relay."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(self, config: EmailConfig | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the mailer.

        Args:
            config: SMTP settings. If not provided, reads from config.
            timeout: Socket timeout in seconds.

        Raises:
            MailError: If the host, sender or recipients are missing.
        """
        if config is None:
            from plexdigest.config import get_config

            config = get_config().email

        if not config.host:
            raise MailError("SMTP host not provided. Configure [email] host in plexdigest.ini.")
        if not config.sender:
            raise MailError("Sender address not provided. Configure [email] sender.")
        if not config.recipients:
            raise MailError("No recipients configured. Configure [email] recipients.")

        self.config = config
        self._timeout = timeout

    def build_message(
        self, subject: str, html: str, recipients: list[str] | None = None
    ) -> EmailMessage:
        """Build a multipart message with a plain-text fallback."""
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.config.sender
        message["To"] = ", ".join(recipients or self.config.recipients)
        message.set_content(f"{subject}\n\nThis digest is best viewed in an HTML capable client.")
        message.add_alternative(html, subtype="html")
        return message

    def send(self, subject: str, html: str, recipients: list[str] | None = None) -> None:
        """Send the digest.

        Args:
            subject: Mail subject.
            html: Rendered digest.
            recipients: Override the configured recipients.

        Raises:
            MailError: On any SMTP or network failure.
        """
        message = self.build_message(subject, html, recipients)

        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self._timeout) as smtp:
                if self.config.use_tls:
                    smtp.starttls(context=ssl.create_default_context())
                if self.config.username:
                    smtp.login(self.config.username, self.config.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Failed to send mail via {self.config.host}: {e}") from e
