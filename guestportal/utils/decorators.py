import hmac
from functools import wraps
from flask import abort, current_app, request
from flask_login import current_user


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if getattr(current_user, "role", None) != "admin":
            abort(403)
        return view(*args, **kwargs)
    return wrapped


def cron_secret_required(view):
    """Require ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        if secret:
            header = request.headers.get("Authorization", "")
            token = header[7:] if header.startswith("Bearer ") else ""
            if not hmac.compare_digest(token, secret):
                abort(401)
        return view(*args, **kwargs)
    return wrapped
