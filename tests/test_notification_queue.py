from datetime import datetime

import pytest

from guestportal.errors import InvalidInput
from guestportal.extensions import db
from guestportal.models.booking import Booking
from guestportal.models.notification import Notification
from guestportal.services.notification_queue import (
    get_notification_status,
    get_notification_timeline,
    is_valid_email,
    queue_booking_confirmation,
    queue_magic_link_notification,
    queue_notification,
)


def test_is_valid_email():
    assert is_valid_email("guest@example.com")
    assert not is_valid_email("guest@example")
    assert not is_valid_email("guest example@example.com")
    assert not is_valid_email(None)
    assert not is_valid_email("guest@example.com\n")
    assert not is_valid_email(" guest@example.com")


def test_queue_notification_creates_queued_row(app, store, transport):
    nid = queue_notification("magic_link", "guest@example.com",
                             {"magic_link": "https://saele.test/x"}, user_id=7, store=store)
    row = db.session.get(Notification, nid)
    assert row.status == "queued"
    assert row.attempts == 0
    assert row.user_id == 7
    assert row.next_retry_at is None
    assert row.sent_at is None
    # delivery is left to the worker
    assert transport.calls == []


@pytest.mark.parametrize("kwargs", [
    {"type": "magic_link", "recipient_email": "not-an-email", "payload": {"magic_link": "x"}},
    {"type": "magic_link", "recipient_email": "guest@example.com\n", "payload": {"magic_link": "x"}},
    {"type": "", "recipient_email": "guest@example.com", "payload": {"magic_link": "x"}},
    {"type": "magic_link", "recipient_email": "guest@example.com", "payload": ["x"]},
    {"type": "magic_link", "recipient_email": "guest@example.com", "payload": {"magic_link": object()}},
    {"type": "magic_link", "recipient_email": "guest@example.com", "payload": {}},
    {"type": "booking_confirmation", "recipient_email": "guest@example.com", "payload": {"check_in": None}},
    {"type": "carrier_pigeon", "recipient_email": "guest@example.com", "payload": {}},
])
def test_queue_notification_rejects_bad_input_without_writing(app, store, kwargs):
    with pytest.raises(InvalidInput):
        queue_notification(store=store, **kwargs)
    assert Notification.query.count() == 0


def test_queue_booking_confirmation_links_booking(app, store):
    booking = Booking(external_booking_id="BK-9", email="guest@example.com",
                      check_in=datetime(2026, 4, 1), check_out=datetime(2026, 4, 5),
                      guest_count=2, room_name="Emma")
    db.session.add(booking)
    db.session.commit()

    nid = queue_booking_confirmation("guest@example.com", booking, store=store)
    row = db.session.get(Notification, nid)
    assert row.type == "booking_confirmation"
    assert row.booking_id == booking.id
    assert row.payload["external_booking_id"] == "BK-9"
    assert row.payload["check_in"] == "2026-04-01T00:00:00"


def test_status_and_timeline_helpers(app, store):
    nid = queue_magic_link_notification("guest@example.com", "https://saele.test/x", store=store)
    store.log_notification_event(nid, "processing", attempt_number=0, metadata={"idempotency_key": f"{nid}-0"})

    status = get_notification_status(nid, store=store)
    assert status["status"] == "queued"
    assert "recipient_email" not in status
    timeline = get_notification_timeline(nid, store=store)
    assert [e["event_type"] for e in timeline] == ["processing"]
    assert get_notification_status("missing", store=store) is None
