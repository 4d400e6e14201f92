import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from soil_monitor.core.errors import MailDeliveryError

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Batac Soil Monitoring - Password Reset"


class MailSender(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


def reset_link(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?token={token}"


def password_reset_body(link: str, expire_minutes: int) -> str:
    return (
        "You requested a password reset for your Batac Soil Monitoring account.\n\n"
        f"Open this link to choose a new password:\n{link}\n\n"
        f"The link expires in {expire_minutes} minutes. "
        "If you didn't request this, you can ignore this e-mail.\n"
    )


class SmtpMailSender:
    def __init__(self, host: str, port: int = 587, username: Optional[str] = None,
                 password: Optional[str] = None, sender: str = "no-reply@localhost",
                 use_tls: bool = True, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"could not send mail to {to}: {exc}") from exc
        logger.info("[MAIL] '%s' sent to %s", subject, to)


class LogMailSender:
    """Development sender: writes the message to the log instead of mailing it."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info("[MAIL] (not sent) to=%s subject=%s\n%s", to, subject, body)


def build_mail_sender(settings) -> MailSender:
    if not settings.SMTP_HOST:
        return LogMailSender()
    return SmtpMailSender(
        settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        sender=settings.MAIL_FROM,
        use_tls=settings.SMTP_USE_TLS,
    )
