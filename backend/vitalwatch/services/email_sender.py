"""Email sender service - delivers digests via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """SMTP configuration for sending emails."""
    host: str
    port: int
    username: str
    password: str
    use_tls: bool = True
    from_address: str = ""
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: dict, timeout: float = 30.0) -> "EmailConfig":
        """Build from the key-value settings dictionary."""
        return cls(
            host=settings.get("smtp_host", ""),
            port=int(settings.get("smtp_port", 587)),
            username=settings.get("smtp_username", ""),
            password=settings.get("smtp_password", ""),
            use_tls=settings.get("smtp_use_tls", "1") == "1",
            from_address=settings.get("digest_email_from", ""),
            timeout=timeout,
        )


class EmailSenderService:
    """Service for sending email via SMTP."""

    def _parse_recipients(self, to_address: str) -> List[str]:
        """Parse comma-separated email addresses into a list."""
        if not to_address:
            return []
        return [addr.strip() for addr in to_address.split(",") if addr.strip()]

    def _deliver(self, config: EmailConfig, recipients: List[str], subject: str, body: str):
        """Blocking SMTP conversation; runs in a worker thread."""
        from_addr = config.from_address or config.username

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(config.host, config.port, timeout=config.timeout) as server:
            if config.use_tls:
                server.starttls(context=ssl.create_default_context())
            if config.username and config.password:
                server.login(config.username, config.password)
            server.sendmail(from_addr, recipients, msg.as_string())

    async def send_email(
        self,
        config: EmailConfig,
        to_address: str,
        subject: str,
        body: str,
    ) -> bool:
        """Send an email using SMTP.

        Supports a comma-separated list of recipients in ``to_address``.
        Returns True on success, False on failure.
        """
        if not config.host:
            logger.warning("Email not configured - missing smtp_host")
            return False

        recipients = self._parse_recipients(to_address)
        if not recipients:
            logger.warning("No valid recipients found in to_address")
            return False

        logger.info(f"Sending email to {len(recipients)} recipient(s) via {config.host}:{config.port}: {subject}")

        try:
            await asyncio.to_thread(self._deliver, config, recipients, subject, body)
            logger.info(f"Email sent: {subject}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            return False
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipients refused by server: {e}")
            return False
        except smtplib.SMTPSenderRefused as e:
            logger.error(f"Sender address refused: {e}")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return False
        except TimeoutError as e:
            logger.error(f"Timeout talking to {config.host}:{config.port}: {e}")
            return False
        except OSError as e:
            logger.error(f"Connection to {config.host}:{config.port} failed: {e}")
            return False


# Global instance
email_sender_service = EmailSenderService()
