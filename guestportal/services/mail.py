"""Outbound email transports.

``send`` returns the provider's message id or raises a ``TransportError``
subclass: ``TransientTransportError`` when trying again later can succeed
(network trouble, timeouts, throttling, provider 5xx) and
``PermanentTransportError`` when it cannot (bad recipient, rejected content,
bad credentials).
"""
import logging
from urllib.error import URLError

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Header, Mail

from ..errors import PermanentTransportError, TransientTransportError

IDEMPOTENCY_HEADER = "X-Entity-Ref-ID"

# provider status -> error name
ERROR_NAMES = {
    400: "validation_error",
    401: "invalid_api_key",
    403: "forbidden",
    404: "not_found",
    408: "request_timeout",
    413: "payload_too_large",
    429: "rate_limit_exceeded",
}
TRANSIENT_STATUSES = {408, 429}

logger = logging.getLogger(__name__)


def classify_status(status_code, message):
    """Map a provider HTTP status onto the retryable/terminal split."""
    status_code = int(status_code or 0)
    if status_code >= 500:
        return TransientTransportError("provider_error", message, status_code)
    name = ERROR_NAMES.get(status_code, "rejected")
    if status_code in TRANSIENT_STATUSES:
        return TransientTransportError(name, message, status_code)
    return PermanentTransportError(name, message, status_code)


def _error_body(err):
    body = getattr(err, "body", None)
    if isinstance(body, bytes):
        body = body.decode("utf-8", "replace")
    return body or getattr(err, "reason", None) or str(err)


class SendGridTransport:
    name = "sendgrid"

    def __init__(self, api_key, from_name=None, timeout=10):
        if not api_key:
            raise ValueError("SENDGRID_API_KEY is not configured")
        self.api_key = api_key
        self.from_name = from_name
        self.timeout = timeout

    def _client(self):
        sg = SendGridAPIClient(api_key=self.api_key)
        sg.client.timeout = self.timeout
        return sg

    def send(self, from_email, to_email, subject, html, idempotency_key):
        sender = (from_email, self.from_name) if self.from_name else from_email
        message = Mail(from_email=sender, to_emails=to_email, subject=subject, html_content=html)
        message.header = Header(IDEMPOTENCY_HEADER, idempotency_key)
        try:
            resp = self._client().send(message)
        except HTTPError as e:
            raise classify_status(getattr(e, "status_code", 0), _error_body(e)) from e
        except TimeoutError as e:
            raise TransientTransportError("timeout", str(e) or "request timed out") from e
        except (URLError, ConnectionError) as e:
            raise TransientTransportError("network_error", str(getattr(e, "reason", e))) from e

        if resp.status_code >= 300:
            raise classify_status(resp.status_code, _error_body(resp))
        headers = getattr(resp, "headers", None) or {}
        message_id = headers.get("X-Message-Id") if hasattr(headers, "get") else None
        return message_id


class ConsoleTransport:
    """Development transport: logs the email instead of sending it."""
    name = "console"

    def __init__(self):
        self.outbox = []

    def send(self, from_email, to_email, subject, html, idempotency_key):
        self.outbox.append({
            "from": from_email, "to": to_email, "subject": subject,
            "html": html, "idempotency_key": idempotency_key,
        })
        logger.info("[console mail] %s -> %s: %s (%s)", from_email, to_email, subject, idempotency_key)
        return f"console-{idempotency_key}"


def get_transport(config):
    backend = (config.get("MAIL_BACKEND") or "sendgrid").lower()
    if backend == "console":
        return ConsoleTransport()
    if backend == "sendgrid":
        return SendGridTransport(
            config.get("SENDGRID_API_KEY"),
            from_name=config.get("MAIL_FROM_NAME"),
            timeout=config.get("MAIL_TIMEOUT_SECONDS", 10),
        )
    raise ValueError(f"Unsupported MAIL_BACKEND: {backend}")
