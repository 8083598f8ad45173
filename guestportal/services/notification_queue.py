"""Queue outbound notifications for the worker.

Callers (auth, bookings) only ever enqueue here; nothing is sent
synchronously.
"""
import json
import re
from collections.abc import Mapping

from flask import current_app

from ..errors import InvalidInput, NotificationError
from .notification_payloads import (
    BOOKING_CONFIRMATION,
    MAGIC_LINK,
    parse_payload,
    payload_to_dict,
)
from .notification_store import NotificationStore

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(email) -> bool:
    return isinstance(email, str) and EMAIL_RE.fullmatch(email) is not None


def _default_store():
    return NotificationStore.from_config(current_app.config)


def queue_notification(type, recipient_email, payload, user_id=None, booking_id=None, store=None) -> str:
    """Validate and insert one notification; returns its id."""
    if not is_valid_email(recipient_email):
        raise InvalidInput(f"Invalid email address: {recipient_email}")
    if not isinstance(type, str) or not type.strip():
        raise InvalidInput("Notification type is required")
    if not isinstance(payload, Mapping):
        raise InvalidInput("Notification payload must be an object")
    try:
        json.dumps(dict(payload))
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Notification payload must be JSON-serializable: {e}") from e

    type = type.strip()
    try:
        parsed = parse_payload(type, payload)
    except NotificationError as e:
        raise InvalidInput(str(e)) from e

    store = store or _default_store()
    notification_id = store.queue_notification(
        type,
        recipient_email,
        {**payload, **payload_to_dict(parsed)},
        user_id=user_id,
        booking_id=booking_id,
    )
    try:
        current_app.logger.info("Queued %s notification %s", type, notification_id)
    except RuntimeError:
        # outside an app context (scripts with an explicit store)
        pass
    return notification_id


def queue_magic_link_notification(email, magic_link, user_id=None, store=None) -> str:
    return queue_notification(MAGIC_LINK, email, {"magic_link": magic_link},
                              user_id=user_id, store=store)


def queue_booking_confirmation(email, booking, store=None) -> str:
    """Queue the confirmation for a ``Booking`` row."""
    payload = {
        "external_booking_id": booking.external_booking_id,
        "check_in": booking.check_in.isoformat() if booking.check_in else None,
        "check_out": booking.check_out.isoformat() if booking.check_out else None,
    }
    return queue_notification(BOOKING_CONFIRMATION, email, payload,
                              user_id=booking.guest_user_id, booking_id=booking.id, store=store)


def get_notification_status(notification_id, store=None):
    row = (store or _default_store()).get_notification(notification_id)
    if row is None:
        return None
    return {k: v for k, v in row.to_dict().items() if k != "recipient_email"}


def get_notification_timeline(notification_id, store=None):
    return [e.to_dict() for e in (store or _default_store()).get_timeline(notification_id)]
