import os
import sys
import threading
from datetime import datetime, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from flask import g

from guestportal import create_app
from guestportal.extensions import db
from guestportal.jobs.process_notifications import NotificationWorker
from guestportal.models.user import User
from guestportal.services.notification_store import NotificationStore
from guestportal.services.notification_timeline import NotificationTimeline


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeTransport:
    """Records sends; ``outcomes[recipient]`` is a list of message ids or exceptions."""

    def __init__(self):
        self.calls = []
        self.outcomes = {}
        self._lock = threading.Lock()

    def send(self, from_email, to_email, subject, html, idempotency_key):
        with self._lock:
            self.calls.append({
                "from": from_email, "to": to_email, "subject": subject,
                "html": html, "idempotency_key": idempotency_key,
            })
            queue = self.outcomes.get(to_email)
            outcome = queue.pop(0) if queue else f"msg-{len(self.calls)}"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def store(app, clock):
    return NotificationStore(clock=clock, max_attempts=3, retry_base_seconds=60)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def timeline(store):
    return NotificationTimeline(store)


@pytest.fixture
def worker(store, transport, timeline, clock):
    return NotificationWorker(store, transport, timeline, sender="noreply@saele.com",
                              batch_size=10, max_workers=2, clock=clock)


def make_user(email="guest@example.com", role="guest", onboarded=True):
    user = User(email=email, role=role, full_name="Test Guest")
    if onboarded:
        user.onboarding_completed_at = datetime(2026, 1, 1)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, user):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user.id)
        sess["_fresh"] = True
    # requests share the fixture's app context, so drop the user Flask-Login cached on g
    g.pop("_login_user", None)
