"""Notification queue worker.

One invocation drains at most one batch:

1. fetch up to ``batch_size`` ready rows, oldest first
2. log a ``processing`` event per row
3. render + send every row concurrently
4. write each outcome with one atomic status update
5. log the ``sent``/``failed`` event for the same attempt number

A bad row never stops its siblings. Only a failed batch fetch escapes
``run()`` (as ``StoreUnavailable``).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..errors import RenderError, StoreUnavailable, TransportError
from ..models.notification import STATUS_FAILED, STATUS_SENT
from ..services.email_templates import render
from ..services.mail import get_transport
from ..services.notification_store import NotificationStore
from ..services.notification_timeline import (
    EVENT_FAILED,
    EVENT_PROCESSING,
    EVENT_SENT,
    NotificationTimeline,
)
from ..utils.clock import utcnow

logger = logging.getLogger(__name__)

# result status for an attempt whose outcome could not be written back
STATUS_STORE_ERROR = "store_error"


def idempotency_key(notification_id, attempts) -> str:
    return f"{notification_id}-{attempts}"


@dataclass
class DeliveryResult:
    notification_id: str
    attempt_number: int
    status: str
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    retryable: bool = False

    def to_summary(self):
        return {"id": self.notification_id, "status": self.status, "error_code": self.error_code}


class NotificationWorker:
    def __init__(self, store, transport, timeline=None, *, sender,
                 batch_size=10, max_workers=4, clock=utcnow):
        self.store = store
        self.transport = transport
        self.timeline = timeline or NotificationTimeline(store)
        self.sender = sender
        self.batch_size = batch_size
        self.max_workers = max(1, int(max_workers))
        self.clock = clock

    # -- per row --------------------------------------------------------

    def attempt(self, notification) -> DeliveryResult:
        """Render and send one notification. Never raises."""
        key = idempotency_key(notification.id, notification.attempts)

        def failed(code, message, retryable):
            return DeliveryResult(notification.id, notification.attempts, STATUS_FAILED,
                                  error_code=code, error_message=message, retryable=retryable)

        try:
            email = render(notification.type, notification.payload, year=self.clock().year)
        except RenderError as e:
            return failed(e.error_code, str(e), False)
        except Exception as e:
            logger.exception("Unexpected render error for notification %s", notification.id)
            return failed("processing_error", str(e) or type(e).__name__, True)

        try:
            message_id = self.transport.send(self.sender, notification.recipient_email,
                                             email.subject, email.html, key)
        except TransportError as e:
            return failed(e.name, e.message, e.retryable)
        except Exception as e:
            logger.exception("Unexpected transport error for notification %s", notification.id)
            return failed("processing_error", str(e) or type(e).__name__, True)

        return DeliveryResult(notification.id, notification.attempts, STATUS_SENT,
                              provider_message_id=message_id)

    def _report(self, result: DeliveryResult):
        now = self.clock().isoformat()
        self.store.update_notification_status(
            result.notification_id,
            result.status,
            resend_email_id=result.provider_message_id,
            error_code=result.error_code,
            error_message=result.error_message,
            retryable=result.retryable,
        )
        if result.status == STATUS_SENT:
            self.timeline.log_event(
                result.notification_id, EVENT_SENT, result.attempt_number,
                {"timestamp": now}, provider_message_id=result.provider_message_id,
            )
        else:
            self.timeline.log_event(
                result.notification_id, EVENT_FAILED, result.attempt_number,
                {"timestamp": now, "retryable": result.retryable},
                error_code=result.error_code, error_message=result.error_message,
            )

    # -- batch ----------------------------------------------------------

    def run(self):
        notifications = self.store.get_queued_notifications(self.batch_size)
        if not notifications:
            logger.info("No notifications to process")
            return {"message": "No notifications to process", "processed": 0,
                    "sent": 0, "failed": 0, "results": []}

        logger.info("Processing %d notification(s)...", len(notifications))
        for n in notifications:
            self.timeline.log_event(n.id, EVENT_PROCESSING, n.attempts, {
                "timestamp": self.clock().isoformat(),
                "idempotency_key": idempotency_key(n.id, n.attempts),
            })

        # database access stays on this thread; workers only render and send
        workers = min(self.max_workers, len(notifications))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self.attempt, notifications))

        store_errors = []
        for result in results:
            if result.status == STATUS_FAILED:
                logger.warning("Notification %s attempt %s failed: %s %s (retryable=%s)",
                               result.notification_id, result.attempt_number,
                               result.error_code, result.error_message, result.retryable)
            try:
                self._report(result)
            except StoreUnavailable as e:
                logger.exception("Failed to update notification %s", result.notification_id)
                store_errors.append({"id": result.notification_id, "error": str(e)})
                result.status = STATUS_STORE_ERROR

        sent = sum(1 for r in results if r.status == STATUS_SENT)
        failed = sum(1 for r in results if r.status == STATUS_FAILED)
        logger.info("Processed %d notification(s): %d sent, %d failed", len(results), sent, failed)
        summary = {
            "message": "Notifications processed",
            "processed": len(results),
            "sent": sent,
            "failed": failed,
            "results": [r.to_summary() for r in results],
        }
        if store_errors:
            summary["error"] = f"Failed to update {len(store_errors)} notification(s)"
            summary["store_errors"] = store_errors
        return summary


def build_worker(config, transport=None, clock=utcnow):
    store = NotificationStore.from_config(config, clock=clock)
    return NotificationWorker(
        store,
        transport or get_transport(config),
        sender=config.get("MAIL_FROM"),
        batch_size=int(config.get("NOTIFICATION_BATCH_SIZE", 10)),
        max_workers=int(config.get("NOTIFICATION_MAX_WORKERS", 4)),
        clock=clock,
    )


def process_notifications(transport=None):
    """Run one batch inside the current app context and return the summary."""
    return build_worker(current_app.config, transport=transport).run()


def run_process_notifications():
    """Entrypoint that ensures execution inside a Flask app context for RQ workers."""
    from guestportal import create_app
    app = create_app()
    with app.app_context():
        return process_notifications()
