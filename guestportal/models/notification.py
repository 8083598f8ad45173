from uuid import uuid4

from ..extensions import db
from ..utils.clock import utcnow

STATUS_QUEUED = "queued"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class Notification(db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_dequeue", "status", "next_retry_at", "created_at"),
    )
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    type = db.Column(db.String(50), nullable=False)
    recipient_email = db.Column(db.String(255), nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    # weak references: lookup only, no cascade
    user_id = db.Column(db.Integer, index=True)
    booking_id = db.Column(db.Integer, index=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_QUEUED)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text)
    next_retry_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    sent_at = db.Column(db.DateTime)
    # provider message id of the delivered attempt
    resend_email_id = db.Column(db.String(255))

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "recipient_email": self.recipient_email,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "resend_email_id": self.resend_email_id,
        }
