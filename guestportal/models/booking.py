from ..extensions import db
from .base import TimestampMixin


class Booking(db.Model, TimestampMixin):
    __tablename__ = "bookings"
    id = db.Column(db.Integer, primary_key=True)
    external_booking_id = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    # linked after the guest signs in through the magic link
    guest_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True)
    check_in = db.Column(db.DateTime)
    check_out = db.Column(db.DateTime)
    guest_count = db.Column(db.Integer)
    room_name = db.Column(db.String(100))
    status = db.Column(db.String(20), nullable=False, default="confirmed")

    def to_dict(self):
        return {
            "id": self.id,
            "externalBookingId": self.external_booking_id,
            "checkIn": self.check_in.isoformat() if self.check_in else "",
            "checkOut": self.check_out.isoformat() if self.check_out else "",
            "status": self.status,
            "guestCount": self.guest_count or 0,
            "roomName": self.room_name or "Unknown",
        }
