"""SMTP email channel for alerts."""

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formatdate, parseaddr
from typing import Optional

import structlog

from host_watchdog.exceptions import ChannelConfigError, DeliveryError
from host_watchdog.models import Alert

from .base import format_alert_text, severity_label

log = structlog.get_logger()


class EmailDeliveryError(DeliveryError):
    """Raised when email delivery fails."""

    pass


def _validate_address(value: str, field_name: str) -> str:
    _, addr = parseaddr(value or "")
    if not addr or "@" not in addr or addr.startswith("@") or addr.endswith("@"):
        raise ChannelConfigError(f"Invalid email address for {field_name}: {value!r}")
    return value


class EmailChannel:
    """Send each alert as a plain-text email to a fixed recipient.

    Supports both:
    - Port 587 with STARTTLS (explicit TLS)
    - Port 465 with implicit TLS (SMTPS)
    """

    name = "email"

    def __init__(
        self,
        smtp_host: str,
        to_addr: str,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_tls: bool = True,
        from_addr: str = "host-watchdog@localhost",
        timeout: float = 30.0,
    ) -> None:
        """Initialize and validate the email channel.

        Args:
            smtp_host: SMTP server hostname
            to_addr: Recipient address
            smtp_port: SMTP server port (587=STARTTLS, 465=implicit TLS)
            smtp_user: Authentication username
            smtp_password: Authentication password
            use_tls: Enable TLS encryption
            from_addr: Sender address
            timeout: Socket timeout in seconds for the SMTP session

        Raises:
            ChannelConfigError: If host, port or addresses are malformed
        """
        if not smtp_host or not smtp_host.strip():
            raise ChannelConfigError("SMTP host cannot be empty")
        if not 1 <= smtp_port <= 65535:
            raise ChannelConfigError(f"SMTP port out of range: {smtp_port}")
        if bool(smtp_user) != bool(smtp_password):
            raise ChannelConfigError(
                "SMTP credentials are incomplete",
                hint="Set both smtp_user and smtp_password, or neither.",
            )
        self.smtp_host = smtp_host.strip()
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.use_tls = use_tls
        self.from_addr = _validate_address(from_addr, "from_addr")
        self.to_addr = _validate_address(to_addr, "to_addr")
        self.timeout = timeout

    def build_subject(self, alert: Alert) -> str:
        """Build the subject line.

        Format:
            "[WARNING] CPU Alert: High CPU usage: 85.0%"
        """
        return f"[{severity_label(alert)}] {alert.source} Alert: {alert.message}"

    def build_message(self, alert: Alert) -> EmailMessage:
        """Build the email for an alert."""
        msg = EmailMessage()
        msg["Subject"] = self.build_subject(alert)
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        msg["Date"] = formatdate(localtime=True)
        msg.set_content(format_alert_text(alert))
        return msg

    def send(self, alert: Alert) -> None:
        """Submit the alert email.

        Raises:
            EmailDeliveryError: If sending fails
        """
        msg = self.build_message(alert)

        try:
            context = ssl.create_default_context()

            if self.use_tls and self.smtp_port == 465:
                # Implicit TLS (SMTPS) - connection encrypted from start
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, timeout=self.timeout, context=context
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.send_message(msg)
            else:
                # Explicit TLS (STARTTLS) or no TLS
                with smtplib.SMTP(
                    self.smtp_host, self.smtp_port, timeout=self.timeout
                ) as server:
                    if self.use_tls:
                        server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.send_message(msg)

            log.info("email_sent", to=self.to_addr, subject=msg["Subject"])

        except smtplib.SMTPAuthenticationError as e:
            raise EmailDeliveryError(f"SMTP authentication failed: {e}") from e
        except smtplib.SMTPException as e:
            raise EmailDeliveryError(f"SMTP error: {e}") from e
        except OSError as e:
            raise EmailDeliveryError(f"Cannot reach SMTP server {self.smtp_host}: {e}") from e
