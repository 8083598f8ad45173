from ..extensions import db
from flask_login import UserMixin
from .base import TimestampMixin


class User(db.Model, UserMixin, TimestampMixin):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="guest")
    full_name = db.Column(db.String(120))
    phone = db.Column(db.String(40))
    avatar_url = db.Column(db.String(500))
    interests = db.Column(db.JSON)
    notification_preferences = db.Column(db.JSON)
    onboarding_completed_at = db.Column(db.DateTime)

    @property
    def is_admin(self):
        return self.role == "admin"

    @property
    def onboarding_completed(self):
        return self.onboarding_completed_at is not None
