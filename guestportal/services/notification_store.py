"""SQLAlchemy implementation of the notification store contract.

The store is the only place notification rows are mutated. Every public
call is a single transaction; any database error rolls the session back
and surfaces as ``StoreUnavailable``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailable
from ..extensions import db
from ..models.notification import STATUS_FAILED, STATUS_QUEUED, STATUS_SENT, Notification
from ..models.notification_event import NotificationEvent
from ..utils.clock import utcnow
from .notification_timeline import EVENT_FAILED

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_BASE_SECONDS = 60


@dataclass(frozen=True)
class QueuedNotification:
    """Detached snapshot of a dequeued row, safe to hand to worker threads."""
    id: str
    type: str
    recipient_email: str
    payload: Dict[str, Any]
    attempts: int
    user_id: Optional[int]
    booking_id: Optional[int]
    last_error: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: Notification) -> "QueuedNotification":
        return cls(
            id=row.id,
            type=row.type,
            recipient_email=row.recipient_email,
            payload=dict(row.payload or {}),
            attempts=row.attempts or 0,
            user_id=row.user_id,
            booking_id=row.booking_id,
            last_error=row.last_error,
            created_at=row.created_at,
        )


class NotificationStore:
    def __init__(self, session=None, clock=utcnow,
                 max_attempts=DEFAULT_MAX_ATTEMPTS,
                 retry_base_seconds=DEFAULT_RETRY_BASE_SECONDS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if retry_base_seconds <= 0:
            raise ValueError("retry_base_seconds must be positive")
        self._session = session
        self.clock = clock
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds

    @classmethod
    def from_config(cls, config, clock=utcnow):
        return cls(
            clock=clock,
            max_attempts=int(config.get("NOTIFICATION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
            retry_base_seconds=int(config.get("NOTIFICATION_RETRY_BASE_SECONDS", DEFAULT_RETRY_BASE_SECONDS)),
        )

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _fail(self, action, exc):
        self.session.rollback()
        raise StoreUnavailable(f"Failed to {action}: {exc}") from exc

    # -- backoff --------------------------------------------------------

    def retry_delay(self, attempt_count: int) -> timedelta:
        return timedelta(seconds=self.retry_base_seconds * (2 ** max(0, attempt_count)))

    def calculate_next_retry(self, attempt_count: int) -> datetime:
        """Earliest time a row with ``attempt_count`` failed attempts may run again."""
        return self.clock() + self.retry_delay(attempt_count)

    # -- producer side --------------------------------------------------

    def queue_notification(self, type, recipient_email, payload,
                           user_id=None, booking_id=None) -> str:
        row = Notification(
            type=type,
            recipient_email=recipient_email,
            payload=dict(payload),
            user_id=user_id,
            booking_id=booking_id,
            status=STATUS_QUEUED,
            attempts=0,
            created_at=self.clock(),
        )
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail("queue notification", e)
        return row.id

    # -- worker side ----------------------------------------------------

    def get_queued_notifications(self, limit=10) -> List[QueuedNotification]:
        """Oldest-first batch of rows that are queued, due, and under the attempt ceiling."""
        limit = int(limit)
        if limit <= 0:
            return []
        now = self.clock()
        try:
            rows = (
                self.session.query(Notification)
                .filter(Notification.status == STATUS_QUEUED)
                .filter(Notification.attempts < self.max_attempts)
                .filter(or_(Notification.next_retry_at.is_(None), Notification.next_retry_at <= now))
                .order_by(Notification.created_at.asc())
                .limit(limit)
                .all()
            )
            return [QueuedNotification.from_row(r) for r in rows]
        except SQLAlchemyError as e:
            self._fail("fetch queued notifications", e)

    def update_notification_status(self, notification_id, status, resend_email_id=None,
                                   error_code=None, error_message=None,
                                   retryable=True) -> Notification:
        """Apply the outcome of one delivery attempt in a single transaction.

        ``status='sent'`` marks the row delivered and records the provider
        message id on it. ``status='failed'`` counts
        the attempt; the row goes back to ``queued`` with a ``next_retry_at``
        unless the error is not retryable or the ceiling has been reached,
        in which case it becomes ``failed`` for good.
        """
        if status not in (STATUS_SENT, STATUS_FAILED):
            raise ValueError(f"unsupported status: {status}")
        now = self.clock()
        try:
            row = (
                self.session.query(Notification)
                .filter(Notification.id == notification_id)
                .with_for_update()
                .one_or_none()
            )
            if row is None:
                self.session.rollback()
                raise StoreUnavailable(f"Notification {notification_id} not found")
            if status == STATUS_SENT:
                row.status = STATUS_SENT
                row.sent_at = now
                row.resend_email_id = resend_email_id
                row.next_retry_at = None
            else:
                row.attempts = (row.attempts or 0) + 1
                row.last_error = f"{error_code}: {error_message}" if error_code else (error_message or "unknown error")
                if retryable and row.attempts < self.max_attempts:
                    row.status = STATUS_QUEUED
                    row.next_retry_at = self.calculate_next_retry(row.attempts)
                else:
                    row.status = STATUS_FAILED
                    row.next_retry_at = None
            self.session.commit()
            return row
        except SQLAlchemyError as e:
            self._fail(f"update notification {notification_id}", e)

    def log_notification_event(self, notification_id, event_type, attempt_number=0,
                               metadata=None, error_code=None, error_message=None,
                               resend_email_id=None) -> NotificationEvent:
        event = NotificationEvent(
            notification_id=notification_id,
            event_type=event_type,
            attempt_number=attempt_number or 0,
            error_code=error_code,
            error_message=error_message,
            resend_email_id=resend_email_id,
            response_metadata=dict(metadata or {}),
            created_at=self.clock(),
        )
        try:
            self.session.add(event)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail("log notification event", e)
        return event

    # -- audit views ----------------------------------------------------

    def get_notification(self, notification_id) -> Optional[Notification]:
        try:
            return self.session.get(Notification, notification_id)
        except SQLAlchemyError as e:
            self._fail("load notification", e)

    def get_timeline(self, notification_id) -> List[NotificationEvent]:
        try:
            return (
                self.session.query(NotificationEvent)
                .filter(NotificationEvent.notification_id == notification_id)
                .order_by(NotificationEvent.created_at.asc(), NotificationEvent.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("load notification timeline", e)

    def failed_notifications_report(self, limit=100) -> List[Notification]:
        """Rows that will not be attempted again: failed, or queued at the ceiling."""
        try:
            return (
                self.session.query(Notification)
                .filter(or_(
                    Notification.status == STATUS_FAILED,
                    (Notification.status == STATUS_QUEUED) & (Notification.attempts >= self.max_attempts),
                ))
                .order_by(Notification.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("load failed notifications", e)

    def status_counts(self) -> Dict[str, int]:
        try:
            rows = (
                self.session.query(Notification.status, func.count(Notification.id))
                .group_by(Notification.status)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("count notifications", e)
        counts = {STATUS_QUEUED: 0, STATUS_SENT: 0, STATUS_FAILED: 0}
        counts.update({status: int(n) for status, n in rows})
        return counts

    def error_summary(self) -> List[Dict[str, Any]]:
        """Failed attempts from the timeline grouped by error code, most frequent first."""
        try:
            rows = (
                self.session.query(NotificationEvent, Notification.type)
                .outerjoin(Notification, Notification.id == NotificationEvent.notification_id)
                .filter(NotificationEvent.event_type == EVENT_FAILED)
                .order_by(NotificationEvent.created_at.asc(), NotificationEvent.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("summarize notification errors", e)

        groups = {}
        for event, notification_type in rows:
            code = event.error_code or "unknown"
            group = groups.setdefault(code, {
                "error_code": code,
                "occurrence_count": 0,
                "notifications": set(),
                "types": set(),
                "first_occurrence": event.created_at,
                "last_occurrence": event.created_at,
                "sample_error_message": event.error_message,
            })
            group["occurrence_count"] += 1
            group["notifications"].add(event.notification_id)
            if notification_type:
                group["types"].add(notification_type)
            group["last_occurrence"] = event.created_at

        summary = []
        for group in groups.values():
            summary.append({
                "error_code": group["error_code"],
                "occurrence_count": group["occurrence_count"],
                "affected_notifications": len(group["notifications"]),
                "affected_types": sorted(group["types"]),
                "first_occurrence": group["first_occurrence"].isoformat(),
                "last_occurrence": group["last_occurrence"].isoformat(),
                "sample_error_message": group["sample_error_message"],
            })
        summary.sort(key=lambda g: (-g["occurrence_count"], g["error_code"]))
        return summary

    def queue_status(self) -> Dict[str, Any]:
        """Where queued rows stand relative to the worker, plus 24h throughput."""
        now = self.clock()
        queued = Notification.status == STATUS_QUEUED

        def count_if(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        try:
            counts = self.session.query(
                count_if(queued & (Notification.attempts < self.max_attempts)
                         & or_(Notification.next_retry_at.is_(None), Notification.next_retry_at <= now)),
                count_if(queued & (Notification.next_retry_at > now)),
                count_if(queued & (Notification.attempts == 0)),
                count_if(queued & (Notification.attempts == 1)),
                count_if(queued & (Notification.attempts == 2)),
                count_if(Notification.status == STATUS_SENT),
                count_if(Notification.status == STATUS_FAILED),
                count_if(Notification.created_at >= now - timedelta(hours=1)),
            ).one()
            delivered = (
                self.session.query(Notification.created_at, Notification.sent_at)
                .filter(Notification.status == STATUS_SENT)
                .filter(Notification.sent_at >= now - timedelta(hours=24))
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("load queue status", e)

        names = ("ready_to_process", "waiting_for_retry", "never_attempted", "retry_1", "retry_2",
                 "total_sent", "total_failed", "queued_last_hour")
        status = {name: int(n) for name, n in zip(names, counts)}
        durations = [(sent_at - created_at).total_seconds() for created_at, sent_at in delivered]
        status["avg_processing_time_seconds_24h"] = (
            round(sum(durations) / len(durations), 2) if durations else None
        )
        return status
