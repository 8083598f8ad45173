from ..extensions import db
from ..utils.clock import utcnow


class NotificationEvent(db.Model):
    """Append-only timeline entry for one processing step of a notification."""
    __tablename__ = "notification_event_logs"
    id = db.Column(db.Integer, primary_key=True)
    # not a foreign key: events outlive whatever happens to the notification row
    notification_id = db.Column(db.String(36), nullable=False, index=True)
    event_type = db.Column(db.String(30), nullable=False)
    attempt_number = db.Column(db.Integer, nullable=False, default=0)
    error_code = db.Column(db.String(100))
    error_message = db.Column(db.Text)
    resend_email_id = db.Column(db.String(255))
    response_metadata = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "notification_id": self.notification_id,
            "event_type": self.event_type,
            "attempt_number": self.attempt_number,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "resend_email_id": self.resend_email_id,
            "response_metadata": self.response_metadata or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
