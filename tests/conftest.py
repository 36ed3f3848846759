import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config
from tracker import create_app
from tracker.extensions import db
from tracker.services.ibr import VendorStatus
from tracker.services.store import CandidateStore


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RQ_SYNC = True
    WTF_CSRF_ENABLED = False
    SENDGRID_API_KEY = None
    RECRUITER_ALERT_EMAIL = None
    IBR_API_USERNAME = "test-user"
    IBR_API_PASSWORD = "test-pass"
    IBR_BASE_URL = "https://ibr.test/webservices"
    IBR_MOCK_MODE = False
    BACKGROUND_CHECK_MONITOR_ENABLED = False
    COHORT_CALENDAR_FILE = None


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        app.extensions["tracker.offer_listeners"].release_all()
        app.extensions["tracker.background_check_monitor"].stop()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return CandidateStore()


@pytest.fixture
def make_candidate(store):
    def _make(name="Jane Doe", license_status="Unlicensed", call_center="CLT", **sub_states):
        candidate = store.create(
            personal_info={"name": name, "email": "jane@example.com", "phone": "704-555-0100"},
            call_center=call_center,
            license_status=license_status,
        )
        if sub_states:
            candidate = store.update(candidate.id, sub_states)
        return candidate
    return _make


class FakeVendor:
    """Stands in for IBRClient: case id -> status code, or an exception to raise."""

    def __init__(self, statuses=None):
        self.statuses = dict(statuses or {})
        self.polled = []
        self.submitted = []

    def submit(self, applicant):
        self.submitted.append(applicant)
        return f"CASE-{len(self.submitted)}"

    def poll_status(self, case_id):
        self.polled.append(case_id)
        value = self.statuses.get(case_id, "Pending")
        if isinstance(value, Exception):
            raise value
        return VendorStatus(id=case_id, status=value, client_id=None)


@pytest.fixture
def vendor():
    return FakeVendor()
