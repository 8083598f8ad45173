from datetime import timedelta

import pytest

from guestportal.errors import StoreUnavailable
from guestportal.extensions import db
from guestportal.models.notification import Notification
from guestportal.services.notification_store import NotificationStore


def _queue(store, email="guest@example.com"):
    return store.queue_notification("magic_link", email, {"magic_link": "https://saele.test/x"})


def test_rejects_bad_settings(app):
    with pytest.raises(ValueError):
        NotificationStore(max_attempts=0)
    with pytest.raises(ValueError):
        NotificationStore(retry_base_seconds=0)


def test_backoff_is_strictly_increasing(store, clock):
    retries = [store.calculate_next_retry(n) for n in range(8)]
    assert all(r > clock() for r in retries)
    assert all(a < b for a, b in zip(retries, retries[1:]))
    assert store.retry_delay(0) == timedelta(seconds=60)
    assert store.retry_delay(3) == timedelta(seconds=480)


def test_dequeue_returns_oldest_due_rows_first(store, clock):
    first = _queue(store, "a@example.com")
    clock.advance(seconds=1)
    second = _queue(store, "b@example.com")
    clock.advance(seconds=1)
    third = _queue(store, "c@example.com")

    batch = store.get_queued_notifications(limit=2)
    assert [n.id for n in batch] == [first, second]
    assert [n.id for n in store.get_queued_notifications(limit=10)] == [first, second, third]


def test_dequeue_skips_rows_that_are_not_ready(store, clock):
    ready = _queue(store, "ready@example.com")
    later = _queue(store, "later@example.com")
    done = _queue(store, "done@example.com")
    exhausted = _queue(store, "exhausted@example.com")

    db.session.get(Notification, later).next_retry_at = clock() + timedelta(minutes=5)
    db.session.get(Notification, done).status = "sent"
    db.session.get(Notification, exhausted).attempts = store.max_attempts
    db.session.commit()

    assert [n.id for n in store.get_queued_notifications()] == [ready]
    clock.advance(minutes=5)
    assert {n.id for n in store.get_queued_notifications()} == {ready, later}


def test_dequeued_snapshot_is_detached(store):
    nid = _queue(store)
    snapshot = store.get_queued_notifications()[0]
    assert snapshot.id == nid
    assert snapshot.attempts == 0
    assert snapshot.payload == {"magic_link": "https://saele.test/x"}
    db.session.remove()
    assert snapshot.recipient_email == "guest@example.com"


def test_successful_update_does_not_count_an_attempt(store, clock):
    nid = _queue(store)
    row = store.update_notification_status(nid, "sent", resend_email_id="m-1")
    assert row.status == "sent"
    assert row.attempts == 0
    assert row.sent_at == clock()


def test_failed_update_schedules_retry_until_ceiling(store, clock):
    nid = _queue(store)
    row = store.update_notification_status(nid, "failed", error_code="timeout", error_message="slow")
    assert (row.status, row.attempts) == ("queued", 1)
    assert row.next_retry_at == clock() + store.retry_delay(1)
    assert row.last_error == "timeout: slow"

    for _ in range(store.max_attempts - 1):
        row = store.update_notification_status(nid, "failed", error_code="timeout", error_message="slow")
    assert (row.status, row.attempts) == ("failed", store.max_attempts)
    assert row.next_retry_at is None


def test_non_retryable_failure_is_terminal_immediately(store):
    nid = _queue(store)
    row = store.update_notification_status(nid, "failed", error_code="malformed_payload",
                                           error_message="bad", retryable=False)
    assert (row.status, row.attempts) == ("failed", 1)


def test_update_rejects_unknown_status_and_missing_rows(store):
    nid = _queue(store)
    with pytest.raises(ValueError):
        store.update_notification_status(nid, "queued")
    with pytest.raises(StoreUnavailable):
        store.update_notification_status("does-not-exist", "sent")


def test_timeline_is_ordered(store, clock):
    nid = _queue(store)
    store.log_notification_event(nid, "processing", 0, {"idempotency_key": f"{nid}-0"})
    clock.advance(seconds=1)
    store.log_notification_event(nid, "failed", 0, error_code="timeout", error_message="slow")
    clock.advance(seconds=1)
    store.log_notification_event(nid, "processing", 1)

    events = store.get_timeline(nid)
    assert [(e.event_type, e.attempt_number) for e in events] == [
        ("processing", 0), ("failed", 0), ("processing", 1),
    ]
    assert events[0].response_metadata == {"idempotency_key": f"{nid}-0"}


def test_failed_report_and_counts(store):
    ok = _queue(store, "ok@example.com")
    bad = _queue(store, "bad@example.com")
    stuck = _queue(store, "stuck@example.com")
    _queue(store, "pending@example.com")
    store.update_notification_status(ok, "sent")
    store.update_notification_status(bad, "failed", error_code="forbidden", error_message="no", retryable=False)
    db.session.get(Notification, stuck).attempts = store.max_attempts
    db.session.commit()

    assert {n.id for n in store.failed_notifications_report()} == {bad, stuck}
    assert store.status_counts() == {"queued": 2, "sent": 1, "failed": 1}


def test_non_positive_limit_returns_nothing(store):
    _queue(store)
    assert store.get_queued_notifications(limit=0) == []
    assert store.get_queued_notifications(limit=-3) == []


def test_sent_update_records_provider_id(store):
    nid = _queue(store)
    store.update_notification_status(nid, "sent", resend_email_id="sg-42")
    db.session.expire_all()
    row = db.session.get(Notification, nid)
    assert row.resend_email_id == "sg-42"
    assert row.to_dict()["resend_email_id"] == "sg-42"


def test_error_summary_groups_failed_attempts_by_code(store, clock):
    a = _queue(store, "a@example.com")
    b = store.queue_notification("booking_confirmation", "b@example.com", {"external_booking_id": "BK-1"})
    store.log_notification_event(a, "processing", 0)
    store.log_notification_event(a, "failed", 0, error_code="timeout", error_message="slow once")
    clock.advance(minutes=5)
    store.log_notification_event(a, "failed", 1, error_code="timeout", error_message="slow twice")
    store.log_notification_event(b, "failed", 0, error_code="timeout", error_message="slow too")
    store.log_notification_event(b, "failed", 1, error_code="forbidden", error_message="no")

    summary = store.error_summary()

    assert [g["error_code"] for g in summary] == ["timeout", "forbidden"]
    timeout = summary[0]
    assert timeout["occurrence_count"] == 3
    assert timeout["affected_notifications"] == 2
    assert timeout["affected_types"] == ["booking_confirmation", "magic_link"]
    assert timeout["sample_error_message"] == "slow once"
    assert timeout["first_occurrence"] < timeout["last_occurrence"]
    assert summary[1]["occurrence_count"] == 1


def test_queue_status_splits_queued_rows(store, clock):
    fresh = _queue(store, "fresh@example.com")
    retry_once = _queue(store, "one@example.com")
    retry_twice = _queue(store, "two@example.com")
    sent = _queue(store, "sent@example.com")
    failed = _queue(store, "failed@example.com")

    store.update_notification_status(retry_once, "failed", error_code="timeout", error_message="x")
    for _ in range(2):
        store.update_notification_status(retry_twice, "failed", error_code="timeout", error_message="x")
    store.update_notification_status(failed, "failed", error_code="forbidden", error_message="x", retryable=False)
    clock.advance(seconds=30)
    store.update_notification_status(sent, "sent", resend_email_id="m-1")

    status = store.queue_status()

    assert status["ready_to_process"] == 1
    assert status["waiting_for_retry"] == 2
    assert status["never_attempted"] == 1
    assert status["retry_1"] == 1
    assert status["retry_2"] == 1
    assert status["total_sent"] == 1
    assert status["total_failed"] == 1
    assert status["queued_last_hour"] == 5
    assert status["avg_processing_time_seconds_24h"] == 30.0
    assert fresh in {n.id for n in store.get_queued_notifications()}
