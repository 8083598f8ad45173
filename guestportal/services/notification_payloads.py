"""Typed payloads, one per notification type.

The JSON payload stored on a notification is parsed into one of these
variants both when it is queued and again when the worker renders it, so a
row that could never be rendered is refused up front.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from ..errors import MalformedPayload, UnknownType

MAGIC_LINK = "magic_link"
BOOKING_CONFIRMATION = "booking_confirmation"


def _text(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class MagicLinkPayload:
    magic_link: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MagicLinkPayload":
        link = _text(data.get("magic_link"))
        if not link:
            raise MalformedPayload("Missing magic_link in payload")
        return cls(magic_link=link)


@dataclass(frozen=True)
class BookingConfirmationPayload:
    external_booking_id: str
    check_in: Optional[str] = None
    check_out: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BookingConfirmationPayload":
        booking_id = _text(data.get("external_booking_id"))
        if not booking_id:
            raise MalformedPayload("Missing booking details in payload: external_booking_id")
        return cls(
            external_booking_id=booking_id,
            check_in=_text(data.get("check_in")),
            check_out=_text(data.get("check_out")),
        )


PAYLOAD_TYPES = {
    MAGIC_LINK: MagicLinkPayload,
    BOOKING_CONFIRMATION: BookingConfirmationPayload,
}


def parse_payload(notification_type: str, payload: Mapping[str, Any]):
    """Return the typed payload for ``notification_type``.

    Raises ``UnknownType`` when no variant is registered for the type and
    ``MalformedPayload`` when required fields are missing.
    """
    variant = PAYLOAD_TYPES.get(notification_type)
    if variant is None:
        raise UnknownType(f"Unknown notification type: {notification_type}")
    if not isinstance(payload, Mapping):
        raise MalformedPayload("Notification payload must be an object")
    return variant.from_mapping(payload)


def payload_to_dict(parsed) -> Dict[str, Any]:
    return asdict(parsed)
