from ..extensions import db
from .base import TimestampMixin


class LoginToken(db.Model, TimestampMixin):
    """Single-use magic-link token. Only the SHA-256 of the token is stored."""
    __tablename__ = "login_tokens"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    next_path = db.Column(db.String(255))
    full_name = db.Column(db.String(120))
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)
