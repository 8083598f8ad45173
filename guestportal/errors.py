"""Error taxonomy for the notification subsystem.

Producer errors are raised before anything is written. Render and transport
errors are caught by the worker and turned into per-row results; only
``StoreUnavailable`` on the batch fetch escapes a worker invocation.
"""


class NotificationError(Exception):
    """Base class for notification queue errors."""


class InvalidInput(NotificationError, ValueError):
    """Recipient, type or payload rejected at enqueue time."""


class RenderError(NotificationError):
    error_code = "render_error"
    retryable = False


class UnknownType(RenderError):
    error_code = "unknown_type"


class MalformedPayload(RenderError):
    error_code = "malformed_payload"


class TransportError(NotificationError):
    """Delivery attempt rejected or not completed by the email provider."""

    retryable = False

    def __init__(self, name, message, status_code=None):
        super().__init__(message)
        self.name = name
        self.message = message
        self.status_code = status_code


class TransientTransportError(TransportError):
    retryable = True


class PermanentTransportError(TransportError):
    retryable = False


class StoreUnavailable(NotificationError):
    """The notification store could not be read or written."""
