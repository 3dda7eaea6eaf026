"""Outbound e-mail for account activation and password reset."""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import get_settings
from app.models.user import User

logger = logging.getLogger("roster")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


def redact_email(email: str) -> str:
    """Redact an address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class Mailer:
    """SMTP mailer. Without SMTP_HOST it runs in dev mode and logs messages instead."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_address: str = "Roster <info@roster.local>",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_address = from_address

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send one HTML message. Returns False if the transport failed."""
        if not self.is_configured:
            logger.info("E-MAIL (dev mode) to=%s subject=%s\n%s", redact_email(to), subject, html)
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_address, to, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_address, to, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error("E-mail to %s failed: %s: %s", redact_email(to), type(e).__name__, e)
            return False

        logger.info("E-mail sent to %s (%s)", redact_email(to), subject)
        return True

    def send_account_activation(self, user: User) -> bool:
        html = templates.get_template("email/account_activation.html").render(
            username=user.username, token=user.activation_token
        )
        return self.send(user.email, "Account activation", html)

    def send_password_reset(self, user: User) -> bool:
        html = templates.get_template("email/password_reset.html").render(
            username=user.username, token=user.password_reset_token
        )
        return self.send(user.email, "Password reset", html)


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get singleton mailer configured from settings."""
    global _mailer
    if _mailer is None:
        settings = get_settings()
        _mailer = Mailer(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_use_tls=settings.SMTP_USE_TLS,
            from_address=settings.MAIL_FROM,
        )
    return _mailer
