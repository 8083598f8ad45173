from sqlalchemy.exc import OperationalError

import pytest

from guestportal.errors import PermanentTransportError, StoreUnavailable, TransientTransportError
from guestportal.extensions import db
from guestportal.jobs.process_notifications import NotificationWorker, build_worker, idempotency_key
from guestportal.models.notification import Notification
from guestportal.services.notification_queue import queue_notification
from guestportal.services.notification_store import NotificationStore


def _events(store, nid):
    return [(e.event_type, e.attempt_number) for e in store.get_timeline(nid)]


def test_idempotency_key_is_stable_per_attempt():
    assert idempotency_key("abc", 0) == "abc-0"
    assert idempotency_key("abc", 0) == idempotency_key("abc", 0)
    assert idempotency_key("abc", 0) != idempotency_key("abc", 1)


def test_empty_queue(worker, transport):
    summary = worker.run()
    assert summary == {"message": "No notifications to process", "processed": 0,
                       "sent": 0, "failed": 0, "results": []}
    assert transport.calls == []


def test_magic_link_is_sent(worker, store, transport):
    nid = queue_notification("magic_link", "guest@example.com",
                             {"magic_link": "https://saele.test/auth/callback?token=t"}, store=store)
    transport.outcomes["guest@example.com"] = ["abc123"]

    summary = worker.run()

    assert summary["processed"] == 1
    assert summary["sent"] == 1
    assert summary["results"] == [{"id": nid, "status": "sent", "error_code": None}]
    row = db.session.get(Notification, nid)
    assert row.status == "sent"
    assert row.attempts == 0
    assert row.sent_at is not None
    assert _events(store, nid) == [("processing", 0), ("sent", 0)]
    assert row.resend_email_id == "abc123"
    sent_event = store.get_timeline(nid)[-1]
    assert sent_event.resend_email_id == "abc123"

    call = transport.calls[0]
    assert call["subject"] == "Sign in to Saele"
    assert call["from"] == "noreply@saele.com"
    assert call["idempotency_key"] == f"{nid}-0"


def test_malformed_row_fails_without_sending(worker, store, transport):
    # bypasses producer validation, as rows written by older producers would
    nid = store.queue_notification("booking_confirmation", "guest@example.com", {"check_in": "2026-03-15"})

    summary = worker.run()

    assert summary["failed"] == 1
    assert summary["results"][0]["error_code"] == "malformed_payload"
    assert transport.calls == []
    row = db.session.get(Notification, nid)
    assert row.status == "failed"
    assert row.attempts == 1
    assert "Missing booking details" in row.last_error
    assert row.next_retry_at is None
    assert _events(store, nid) == [("processing", 0), ("failed", 0)]


def test_unknown_type_row_fails_permanently(worker, store, transport):
    nid = store.queue_notification("sms_reminder", "guest@example.com", {"text": "hi"})
    worker.run()
    row = db.session.get(Notification, nid)
    assert row.status == "failed"
    assert row.last_error.startswith("unknown_type:")
    assert transport.calls == []


def test_transient_failure_is_retried_after_backoff(worker, store, transport, clock):
    nid = queue_notification("magic_link", "guest@example.com",
                             {"magic_link": "https://saele.test/x"}, store=store)
    transport.outcomes["guest@example.com"] = [
        TransientTransportError("rate_limit_exceeded", "slow down", 429),
        "msg-retry",
    ]

    first = worker.run()
    assert first["failed"] == 1
    row = db.session.get(Notification, nid)
    assert row.status == "queued"
    assert row.attempts == 1
    assert row.last_error == "rate_limit_exceeded: slow down"
    assert row.next_retry_at > clock()

    # not due yet
    assert worker.run()["processed"] == 0

    clock.advance(seconds=store.retry_delay(1).total_seconds())
    second = worker.run()
    assert second["sent"] == 1
    row = db.session.get(Notification, nid)
    assert row.status == "sent"
    assert row.attempts == 1
    assert [c["idempotency_key"] for c in transport.calls] == [f"{nid}-0", f"{nid}-1"]
    assert _events(store, nid) == [("processing", 0), ("failed", 0), ("processing", 1), ("sent", 1)]


def test_permanent_transport_error_is_terminal(worker, store, transport):
    nid = queue_notification("magic_link", "bounce@example.com",
                             {"magic_link": "https://saele.test/x"}, store=store)
    transport.outcomes["bounce@example.com"] = [PermanentTransportError("validation_error", "bad address", 400)]

    worker.run()

    row = db.session.get(Notification, nid)
    assert row.status == "failed"
    assert row.attempts == 1
    assert row.last_error == "validation_error: bad address"


def test_retries_stop_at_the_attempt_ceiling(worker, store, transport, clock):
    nid = queue_notification("magic_link", "guest@example.com",
                             {"magic_link": "https://saele.test/x"}, store=store)
    transport.outcomes["guest@example.com"] = [
        TransientTransportError("provider_error", "boom", 503) for _ in range(store.max_attempts + 2)
    ]

    for _ in range(store.max_attempts + 2):
        worker.run()
        clock.advance(days=1)

    row = db.session.get(Notification, nid)
    assert row.status == "failed"
    assert row.attempts == store.max_attempts
    assert len(transport.calls) == store.max_attempts


def test_one_bad_row_does_not_stop_the_batch(worker, store, transport):
    ids = [queue_notification("magic_link", f"guest{i}@example.com",
                              {"magic_link": f"https://saele.test/{i}"}, store=store)
           for i in range(9)]
    bad = store.queue_notification("booking_confirmation", "bad@example.com", {})

    summary = worker.run()

    assert summary["processed"] == 10
    assert summary["sent"] == 9
    assert summary["failed"] == 1
    statuses = {r["id"]: r["status"] for r in summary["results"]}
    assert statuses[bad] == "failed"
    assert all(statuses[i] == "sent" for i in ids)
    assert len(transport.calls) == 9


def test_batch_size_limits_one_invocation(store, transport, timeline, clock):
    for i in range(5):
        queue_notification("magic_link", f"guest{i}@example.com",
                           {"magic_link": "https://saele.test/x"}, store=store)
    worker = NotificationWorker(store, transport, timeline, sender="noreply@saele.com",
                                batch_size=3, max_workers=2, clock=clock)
    assert worker.run()["processed"] == 3
    assert worker.run()["processed"] == 2


def test_terminal_rows_satisfy_audit_properties(worker, store, transport):
    queue_notification("magic_link", "ok@example.com", {"magic_link": "https://saele.test/x"}, store=store)
    store.queue_notification("booking_confirmation", "bad@example.com", {})
    transport.outcomes["no@example.com"] = [PermanentTransportError("forbidden", "nope", 403)]
    queue_notification("magic_link", "no@example.com", {"magic_link": "https://saele.test/y"}, store=store)

    worker.run()

    for row in Notification.query.all():
        events = store.get_timeline(row.id)
        if row.status == "failed":
            assert row.attempts >= 1
            assert row.last_error
        if row.status == "sent":
            sent = [e for e in events if e.event_type == "sent"]
            assert len(sent) == 1
            assert sent[0].attempt_number == row.attempts
        processing = [e for e in events if e.event_type == "processing"]
        assert processing[0].response_metadata["idempotency_key"] == f"{row.id}-0"


def test_fetch_failure_escapes_run(app, transport, clock):
    class BrokenSession:
        def query(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        def rollback(self):
            pass

    store = NotificationStore(session=BrokenSession(), clock=clock)
    worker = NotificationWorker(store, transport, sender="noreply@saele.com", clock=clock)
    with pytest.raises(StoreUnavailable):
        worker.run()
    assert transport.calls == []


def test_timeline_failure_does_not_affect_delivery(worker, store, transport, timeline, monkeypatch):
    nid = queue_notification("magic_link", "guest@example.com",
                             {"magic_link": "https://saele.test/x"}, store=store)
    transport.outcomes["guest@example.com"] = ["abc123"]

    def broken(*args, **kwargs):
        raise StoreUnavailable("event log is down")

    monkeypatch.setattr(store, "log_notification_event", broken)

    summary = worker.run()

    assert summary["sent"] == 1
    assert "error" not in summary
    row = db.session.get(Notification, nid)
    assert row.status == "sent"
    # the provider id is kept on the row even though no event was written
    assert row.resend_email_id == "abc123"
    assert store.get_timeline(nid) == []
    assert timeline.failures == 2


def test_status_update_failure_is_reported_per_row(worker, store, transport, monkeypatch):
    good = queue_notification("magic_link", "a@example.com", {"magic_link": "https://saele.test/a"}, store=store)
    bad = queue_notification("magic_link", "b@example.com", {"magic_link": "https://saele.test/b"}, store=store)
    real_update = store.update_notification_status

    def flaky(notification_id, *args, **kwargs):
        if notification_id == bad:
            raise StoreUnavailable("write failed")
        return real_update(notification_id, *args, **kwargs)

    monkeypatch.setattr(store, "update_notification_status", flaky)

    summary = worker.run()

    assert summary["processed"] == 2
    assert summary["sent"] == 1
    assert summary["failed"] == 0
    statuses = {r["id"]: r["status"] for r in summary["results"]}
    assert statuses == {good: "sent", bad: "store_error"}
    assert summary["store_errors"] == [{"id": bad, "error": "write failed"}]
    assert "error" in summary
    assert db.session.get(Notification, good).status == "sent"
    assert db.session.get(Notification, bad).status == "queued"


def test_build_worker_reads_config(app):
    worker = build_worker(app.config)
    assert worker.sender == app.config["MAIL_FROM"]
    assert worker.batch_size == app.config["NOTIFICATION_BATCH_SIZE"]
    assert worker.store.max_attempts == app.config["NOTIFICATION_MAX_ATTEMPTS"]
    assert worker.transport.name == "console"
