from __future__ import annotations

import smtplib
from types import SimpleNamespace

import pytest

from roomguard.services import email as email_service
from roomguard.services.email import EmailDeliveryError


def _settings(**overrides):
    defaults = dict(
        smtp_host="smtp.campus.test",
        smtp_port=587,
        smtp_username="mailer",
        smtp_password="secret",
        smtp_from_email="rooms@campus.test",
        smtp_from_name="RoomGuard",
        smtp_use_tls=True,
        smtp_use_ssl=False,
        smtp_retry_attempts=3,
        smtp_retry_backoff_seconds=0.0,
        smtp_timeout_seconds=5,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _fake_smtp(on_send):
    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host = host
            self.port = port

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def starttls(self, context=None):
            return None

        def login(self, username, password):
            self.credentials = (username, password)

        def send_message(self, message):
            return on_send(self, message)

    return FakeSMTP


def _install(monkeypatch, settings, on_send):
    monkeypatch.setattr(email_service, "get_settings", lambda: settings)
    fake = _fake_smtp(on_send)
    monkeypatch.setattr(email_service.smtplib, "SMTP", fake)
    monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", fake)


def test_send_email_delivers_with_sender_header(monkeypatch):
    delivered = []
    _install(monkeypatch, _settings(), lambda smtp, message: delivered.append((smtp.host, message)))

    email_service.send_email(to_email="student@campus.test", subject="Reservation Approved", text_content="ok")

    host, message = delivered[0]
    assert host == "smtp.campus.test"
    assert message["From"] == "RoomGuard <rooms@campus.test>"
    assert message["To"] == "student@campus.test"


def test_send_email_retries_connection_drop_and_succeeds(monkeypatch):
    attempts = {"count": 0}

    def flaky(smtp, message):
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise smtplib.SMTPServerDisconnected("network drop")
        return {}

    _install(monkeypatch, _settings(), flaky)

    email_service.send_email(to_email="student@campus.test", subject="Reservation Approved", text_content="ok")

    assert attempts["count"] == 2


def test_send_email_gives_up_after_configured_attempts(monkeypatch):
    attempts = {"count": 0}

    def down(smtp, message):
        attempts["count"] += 1
        raise ConnectionRefusedError("relay unreachable")

    _install(monkeypatch, _settings(smtp_retry_attempts=2), down)

    with pytest.raises(EmailDeliveryError) as exc_info:
        email_service.send_email(to_email="student@campus.test", subject="x", text_content="x")

    assert str(exc_info.value) == "SMTP connection failed"
    assert attempts["count"] == 2


def test_send_email_does_not_retry_rejected_data(monkeypatch):
    attempts = {"count": 0}

    def reject(smtp, message):
        attempts["count"] += 1
        raise smtplib.SMTPDataError(550, b"message refused")

    _install(monkeypatch, _settings(), reject)

    with pytest.raises(EmailDeliveryError) as exc_info:
        email_service.send_email(to_email="student@campus.test", subject="x", text_content="x")

    assert str(exc_info.value) == "SMTP data rejected"
    assert attempts["count"] == 1


def test_send_email_requires_configuration(monkeypatch):
    _install(monkeypatch, _settings(smtp_host=None), lambda smtp, message: {})

    with pytest.raises(EmailDeliveryError, match="SMTP is not configured"):
        email_service.send_email(to_email="student@campus.test", subject="x", text_content="x")


def test_gmail_app_password_spaces_are_removed():
    endpoint = email_service.resolve_endpoint(_settings(smtp_host="smtp.gmail.com", smtp_password="abcd efgh ijkl mnop"))
    assert endpoint.password == "abcdefghijklmnop"


def test_notification_email_failure_is_logged_not_raised(seed, db_session, monkeypatch, caplog):
    from roomguard.models import Notification, UserRole
    from roomguard.services import notifications

    def broken_send(**kwargs):
        raise EmailDeliveryError("SMTP connection failed")

    monkeypatch.setattr(notifications, "send_email", broken_send)
    student = seed.user(UserRole.student)

    record = notifications.create_notification(
        db_session,
        user_id=student.id,
        title="Reservation Approved",
        message="Approved",
        recipient=student,
        deliver_email=True,
    )

    assert isinstance(record, Notification)
    assert "Notification email delivery failed" in caplog.text
