"""Best-effort timeline logging for notification processing.

Contract: ``log_event`` never raises. A failed write is logged, counted in
``failures`` and reported by returning ``False``; the delivery attempt it
describes carries on regardless.
"""
import logging

EVENT_PROCESSING = "processing"
EVENT_SENT = "sent"
EVENT_FAILED = "failed"

logger = logging.getLogger(__name__)


class NotificationTimeline:
    def __init__(self, store):
        self.store = store
        self.failures = 0

    def log_event(self, notification_id, event_type, attempt_number, metadata=None, *,
                  error_code=None, error_message=None, provider_message_id=None) -> bool:
        try:
            self.store.log_notification_event(
                notification_id,
                event_type,
                attempt_number=attempt_number,
                metadata=metadata,
                error_code=error_code,
                error_message=error_message,
                resend_email_id=provider_message_id,
            )
            return True
        except Exception:
            self.failures += 1
            logger.exception("Failed to log %s event for notification %s (attempt %s)",
                             event_type, notification_id, attempt_number)
            return False
