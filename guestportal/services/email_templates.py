"""Email subject/body rendering per notification type.

Rendering is pure: identical input (and year) gives identical output. It
runs on worker threads, so it uses a module-level Jinja environment rather
than Flask's ``render_template``, which needs an app context.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .notification_payloads import (
    BOOKING_CONFIRMATION,
    MAGIC_LINK,
    BookingConfirmationPayload,
    MagicLinkPayload,
    parse_payload,
)
from ..utils.clock import utcnow

BRAND = "Saele"
NOT_SET = "Not set"

_env = Environment(
    loader=PackageLoader("guestportal", "templates/emails"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def format_date(value: Optional[str]) -> str:
    """ISO date/datetime -> 'January 5, 2026'; missing -> 'Not set'."""
    if not value:
        return NOT_SET
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{dt:%B} {dt.day}, {dt.year}"


def _render_magic_link(payload: MagicLinkPayload, year: int) -> RenderedEmail:
    subject = f"Sign in to {BRAND}"
    html = _env.get_template("magic_link.html").render(
        brand=BRAND, magic_link=payload.magic_link, year=year,
    )
    return RenderedEmail(subject=subject, html=html.strip())


def _render_booking_confirmation(payload: BookingConfirmationPayload, year: int) -> RenderedEmail:
    subject = f"Booking Confirmation - {payload.external_booking_id}"
    html = _env.get_template("booking_confirmation.html").render(
        brand=BRAND,
        external_booking_id=payload.external_booking_id,
        check_in=format_date(payload.check_in),
        check_out=format_date(payload.check_out),
        year=year,
    )
    return RenderedEmail(subject=subject, html=html.strip())


RENDERERS = {
    MAGIC_LINK: _render_magic_link,
    BOOKING_CONFIRMATION: _render_booking_confirmation,
}


def render(notification_type: str, payload: Mapping[str, Any], year: Optional[int] = None) -> RenderedEmail:
    """Render ``(subject, html)`` for a notification.

    Raises ``UnknownType`` or ``MalformedPayload``; both are deterministic so
    the worker never retries them.
    """
    parsed = parse_payload(notification_type, payload)
    if year is None:
        year = utcnow().year
    return RENDERERS[notification_type](parsed, year)
