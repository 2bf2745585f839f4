"""Tests for the SMTP email channel."""

import smtplib
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from host_watchdog.channels import EmailChannel, NotificationChannel, format_alert_text
from host_watchdog.channels.email import EmailDeliveryError
from host_watchdog.exceptions import ChannelConfigError, DeliveryError
from host_watchdog.models import Alert, Severity


@pytest.fixture
def cpu_alert() -> Alert:
    return Alert(
        timestamp=datetime(2026, 1, 24, 14, 30, tzinfo=timezone.utc),
        severity=Severity.WARNING,
        source="CPU",
        message="High CPU usage: 85.0%",
        details="Threshold: 80.0%",
    )


def make_channel(**overrides) -> EmailChannel:
    kwargs = {
        "smtp_host": "smtp.test.com",
        "to_addr": "ops@example.com",
        "smtp_port": 587,
        "smtp_user": "user",
        "smtp_password": "pass",
        "use_tls": True,
    }
    kwargs.update(overrides)
    return EmailChannel(**kwargs)


def wire_server(mock_smtp: MagicMock) -> MagicMock:
    mock_server = MagicMock()
    mock_smtp.return_value.__enter__ = MagicMock(return_value=mock_server)
    mock_smtp.return_value.__exit__ = MagicMock(return_value=False)
    return mock_server


class TestEmailChannelConfig:
    """Malformed configuration is rejected at construction."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(make_channel(), NotificationChannel)
        assert make_channel().name == "email"

    def test_empty_host(self) -> None:
        with pytest.raises(ChannelConfigError, match="SMTP host"):
            make_channel(smtp_host="  ")

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_out_of_range(self, port: int) -> None:
        with pytest.raises(ChannelConfigError, match="port"):
            make_channel(smtp_port=port)

    def test_user_without_password(self) -> None:
        with pytest.raises(ChannelConfigError, match="incomplete"):
            make_channel(smtp_password=None)

    def test_no_credentials_allowed(self) -> None:
        channel = make_channel(smtp_user=None, smtp_password=None)
        assert channel.smtp_user is None

    @pytest.mark.parametrize("address", ["", "not-an-address", "ops@", "@example.com"])
    def test_invalid_recipient(self, address: str) -> None:
        with pytest.raises(ChannelConfigError, match="to_addr"):
            make_channel(to_addr=address)

    def test_invalid_sender(self) -> None:
        with pytest.raises(ChannelConfigError, match="from_addr"):
            make_channel(from_addr="watchdog")

    def test_config_error_exit_code(self) -> None:
        with pytest.raises(ChannelConfigError) as exc_info:
            make_channel(smtp_host="")
        assert exc_info.value.exit_code == 1


class TestEmailChannelContent:
    """Subject and body rendering."""

    def test_subject(self, cpu_alert: Alert) -> None:
        assert make_channel().build_subject(cpu_alert) == (
            "[WARNING] CPU Alert: High CPU usage: 85.0%"
        )

    def test_body(self, cpu_alert: Alert) -> None:
        body = format_alert_text(cpu_alert)
        assert body.startswith("Alert Details:\n\n")
        assert "Source: CPU\n" in body
        assert "Severity: WARNING\n" in body
        assert "Message: High CPU usage: 85.0%\n" in body
        assert "Details: Threshold: 80.0%\n" in body
        assert "Timestamp: 2026-01-24 14:30:00 UTC\n" in body

    def test_message_headers(self, cpu_alert: Alert) -> None:
        msg = make_channel(from_addr="watchdog@example.com").build_message(cpu_alert)
        assert msg["Subject"] == "[WARNING] CPU Alert: High CPU usage: 85.0%"
        assert msg["From"] == "watchdog@example.com"
        assert msg["To"] == "ops@example.com"
        assert msg["Date"]
        assert "Source: CPU" in msg.get_content()


class TestEmailChannelSend:
    """Test email sending functionality."""

    @patch("host_watchdog.channels.email.smtplib.SMTP")
    def test_send_starttls(self, mock_smtp: MagicMock, cpu_alert: Alert) -> None:
        """Send email via STARTTLS (port 587)."""
        mock_server = wire_server(mock_smtp)

        make_channel().send(cpu_alert)

        mock_smtp.assert_called_once_with("smtp.test.com", 587, timeout=30.0)
        mock_server.starttls.assert_called_once()
        mock_server.login.assert_called_once_with("user", "pass")
        mock_server.send_message.assert_called_once()
        sent = mock_server.send_message.call_args[0][0]
        assert sent["To"] == "ops@example.com"

    @patch("host_watchdog.channels.email.smtplib.SMTP_SSL")
    def test_send_implicit_tls(self, mock_smtp_ssl: MagicMock, cpu_alert: Alert) -> None:
        """Send email via implicit TLS (port 465)."""
        mock_server = wire_server(mock_smtp_ssl)

        make_channel(smtp_port=465).send(cpu_alert)

        mock_smtp_ssl.assert_called_once()
        mock_server.starttls.assert_not_called()
        mock_server.login.assert_called_once_with("user", "pass")
        mock_server.send_message.assert_called_once()

    @patch("host_watchdog.channels.email.smtplib.SMTP")
    def test_send_plain_without_auth(self, mock_smtp: MagicMock, cpu_alert: Alert) -> None:
        mock_server = wire_server(mock_smtp)

        make_channel(use_tls=False, smtp_user=None, smtp_password=None, smtp_port=25).send(
            cpu_alert
        )

        mock_server.starttls.assert_not_called()
        mock_server.login.assert_not_called()
        mock_server.send_message.assert_called_once()

    @patch("host_watchdog.channels.email.smtplib.SMTP")
    def test_auth_failure(self, mock_smtp: MagicMock, cpu_alert: Alert) -> None:
        mock_server = wire_server(mock_smtp)
        mock_server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad creds")

        with pytest.raises(EmailDeliveryError, match="authentication failed"):
            make_channel().send(cpu_alert)

    @patch("host_watchdog.channels.email.smtplib.SMTP")
    def test_recipient_refused(self, mock_smtp: MagicMock, cpu_alert: Alert) -> None:
        mock_server = wire_server(mock_smtp)
        mock_server.send_message.side_effect = smtplib.SMTPRecipientsRefused(
            {"ops@example.com": (550, b"no such user")}
        )

        with pytest.raises(EmailDeliveryError, match="SMTP error"):
            make_channel().send(cpu_alert)

    @patch("host_watchdog.channels.email.smtplib.SMTP")
    def test_connection_refused(self, mock_smtp: MagicMock, cpu_alert: Alert) -> None:
        mock_smtp.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(DeliveryError, match="Cannot reach SMTP server"):
            make_channel().send(cpu_alert)
