from ..extensions import db
from .base import TimestampMixin


class HostContact(db.Model, TimestampMixin):
    __tablename__ = "host_contacts"
    id = db.Column(db.Integer, primary_key=True)
    display_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(40))
    whatsapp = db.Column(db.String(40))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "displayName": self.display_name,
            "email": self.email,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
        }
