"""Passwordless sign-in tokens.

A token is issued per login request and delivered through the notification
queue. Only its SHA-256 digest is persisted; it is valid once, until
``MAGIC_LINK_TTL_MINUTES`` have passed.
"""
import hashlib
import secrets
from datetime import timedelta
from urllib.parse import urlencode

from flask import current_app

from ..errors import InvalidInput
from ..extensions import db
from ..models.booking import Booking
from ..models.login_token import LoginToken
from ..models.user import User
from ..utils.clock import utcnow
from .notification_queue import is_valid_email, queue_magic_link_notification


def hash_token(token):
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def safe_next_path(path, default="/dashboard"):
    # relative paths only, no open redirects
    if not path or not path.startswith("/") or path.startswith("//"):
        return default
    return path


def issue_magic_link(email, next_path=None, full_name=None):
    """Create a login token and queue the sign-in email. Returns the notification id."""
    email = (email or "").strip().lower()
    if not is_valid_email(email):
        raise InvalidInput(f"Invalid email address: {email}")
    token = secrets.token_urlsafe(32)
    ttl = int(current_app.config.get("MAGIC_LINK_TTL_MINUTES", 24 * 60))
    db.session.add(LoginToken(
        email=email,
        token_hash=hash_token(token),
        next_path=safe_next_path(next_path),
        full_name=full_name,
        expires_at=utcnow() + timedelta(minutes=ttl),
    ))
    db.session.commit()

    base = current_app.config.get("APP_URL", "").rstrip("/")
    link = f"{base}/auth/callback?{urlencode({'token': token})}"
    user = User.query.filter_by(email=email).first()
    return queue_magic_link_notification(email, link, user_id=user.id if user else None)


def redeem_magic_link(token):
    """Consume ``token``; returns ``(user, next_path)`` or ``(None, None)``.

    The user is created on first sign-in, and bookings made with the same
    email before the account existed are linked to it.
    """
    if not token:
        return None, None
    login = LoginToken.query.filter_by(token_hash=hash_token(token)).first()
    now = utcnow()
    if login is None or login.used_at is not None or login.expires_at < now:
        return None, None
    login.used_at = now

    user = User.query.filter_by(email=login.email).first()
    if user is None:
        admins = current_app.config.get("ADMIN_EMAILS") or []
        user = User(email=login.email, role="admin" if login.email in admins else "guest",
                    full_name=login.full_name)
        db.session.add(user)
        db.session.flush()
    elif login.full_name and not user.full_name:
        user.full_name = login.full_name

    (Booking.query
     .filter(Booking.email == login.email, Booking.guest_user_id.is_(None))
     .update({Booking.guest_user_id: user.id}, synchronize_session=False))
    db.session.commit()
    return user, login.next_path
