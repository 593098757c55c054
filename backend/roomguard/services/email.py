from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage
import logging
import smtplib
import ssl
import time

from roomguard.core.config import get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    pass


@dataclass(frozen=True)
class SmtpEndpoint:
    host: str
    port: int
    username: str | None
    password: str
    from_email: str
    from_name: str | None
    use_tls: bool
    use_ssl: bool

    @property
    def from_header(self) -> str:
        if self.from_name:
            return f"{self.from_name} <{self.from_email}>"
        return self.from_email


def resolve_endpoint(settings) -> SmtpEndpoint:
    if not settings.smtp_host or not settings.smtp_from_email:
        raise EmailDeliveryError("SMTP is not configured")
    password = settings.smtp_password or ""
    if settings.smtp_host.lower() == "smtp.gmail.com":
        # Gmail app passwords are displayed in groups of four.
        password = "".join(password.split())
    return SmtpEndpoint(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=password,
        from_email=settings.smtp_from_email,
        from_name=settings.smtp_from_name,
        use_tls=settings.smtp_use_tls,
        use_ssl=settings.smtp_use_ssl,
    )


def build_message(
    endpoint: SmtpEndpoint,
    *,
    to_email: str,
    subject: str,
    text_content: str,
    html_content: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = endpoint.from_header
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text_content)
    if html_content:
        message.add_alternative(html_content, subtype="html")
    return message


def _is_connection_issue(exc: Exception) -> bool:
    return isinstance(
        exc,
        (
            smtplib.SMTPConnectError,
            smtplib.SMTPServerDisconnected,
            smtplib.SMTPHeloError,
            OSError,
            TimeoutError,
        ),
    )


def _deliver(endpoint: SmtpEndpoint, message: EmailMessage, timeout: int) -> None:
    if endpoint.use_ssl:
        with smtplib.SMTP_SSL(endpoint.host, endpoint.port, timeout=timeout) as smtp:
            if endpoint.username:
                smtp.login(endpoint.username, endpoint.password)
            smtp.send_message(message)
        return

    with smtplib.SMTP(endpoint.host, endpoint.port, timeout=timeout) as smtp:
        if endpoint.use_tls:
            smtp.starttls(context=ssl.create_default_context())
        if endpoint.username:
            smtp.login(endpoint.username, endpoint.password)
        smtp.send_message(message)


def send_email(*, to_email: str, subject: str, text_content: str, html_content: str | None = None) -> None:
    settings = get_settings()
    endpoint = resolve_endpoint(settings)
    timeout = max(1, settings.smtp_timeout_seconds)
    retry_attempts = max(1, settings.smtp_retry_attempts)
    retry_backoff_seconds = max(0.0, settings.smtp_retry_backoff_seconds)

    message = build_message(
        endpoint,
        to_email=to_email,
        subject=subject,
        text_content=text_content,
        html_content=html_content,
    )

    last_error: Exception | None = None
    last_error_message = "Unable to deliver email"
    for attempt in range(1, retry_attempts + 1):
        try:
            _deliver(endpoint, message, timeout)
            logger.info("Email '%s' delivered to %s", subject, to_email)
            return
        except smtplib.SMTPAuthenticationError as exc:
            last_error = exc
            last_error_message = "SMTP authentication failed"
            break
        except smtplib.SMTPRecipientsRefused as exc:
            last_error = exc
            last_error_message = "SMTP recipient rejected"
            break
        except smtplib.SMTPSenderRefused as exc:
            last_error = exc
            last_error_message = "SMTP sender rejected"
            break
        except smtplib.SMTPDataError as exc:
            last_error = exc
            last_error_message = "SMTP data rejected"
            break
        except Exception as exc:
            last_error = exc
            if not _is_connection_issue(exc):
                break
            last_error_message = "SMTP connection failed"
            if attempt < retry_attempts and retry_backoff_seconds > 0:
                time.sleep(retry_backoff_seconds * attempt)

    raise EmailDeliveryError(last_error_message) from last_error
