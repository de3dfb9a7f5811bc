"""
Shared fixtures: an app wired to a temporary database, catalog and upload
folder, a mailer that records instead of sending and a clock tests can move.
"""

import json

import pytest

from app import create_app

QUESTIONS = [
    {"code": "OB01", "text": "Officers onboard", "section": "ONBOARD", "serviceArea": "Crew Competence"},
    {"code": "OB02", "text": "Vessel condition", "section": "ONBOARD", "serviceArea": "Vessel Condition"},
    {"code": "AS01", "text": "Superintendent responsiveness", "section": "ASHORE", "serviceArea": "Technical Management"},
    {"code": "AS02", "text": "Crew reliefs", "section": "ASHORE", "serviceArea": "Crewing"},
]

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "s3cret-pass"


class FakeMailer:
    def __init__(self):
        self.codes = {}
        self.notices = []

    def send_otp(self, to, code, ttl_minutes):
        self.codes.setdefault(to, []).append(code)
        return True

    def send_submission_notice(self, to, submission_id, email, scores):
        self.notices.append((to, submission_id, email))
        return True

    def last_code(self, email):
        return self.codes[email][-1]


class FakeClock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


def run_now(func, *args, **kwargs):
    return func(*args, **kwargs)


def write_catalog(path, questions=QUESTIONS):
    path.write_text(json.dumps(questions), encoding="utf-8")
    return path


@pytest.fixture
def questions_path(tmp_path):
    return write_catalog(tmp_path / "questions.json")


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def clock():
    return FakeClock()


def _build_app(tmp_path, questions_path, mailer, clock, mode):
    app = create_app(
        overrides={
            "TESTING": True,
            "DATABASE_PATH": str(tmp_path / "csat.db"),
            "QUESTIONS_PATH": str(questions_path),
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "VERIFICATION_MODE": mode,
            "ADMIN_EMAIL": ADMIN_EMAIL,
            "ADMIN_PASSWORD": ADMIN_PASSWORD,
            "JWT_SECRET": "test-jwt-secret",
            "NOTIFY_EMAIL": "ops@example.com",
        },
        mailer=mailer,
        send=run_now,
        clock=clock,
    )
    return app


@pytest.fixture
def app(tmp_path, questions_path, mailer, clock):
    return _build_app(tmp_path, questions_path, mailer, clock, "otp")


@pytest.fixture
def header_app(tmp_path, questions_path, mailer, clock):
    return _build_app(tmp_path, questions_path, mailer, clock, "header")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def header_client(header_app):
    return header_app.test_client()


@pytest.fixture
def gate(app):
    return app.extensions["csat"]["gate"]


@pytest.fixture
def verify_email(client, mailer):
    """Run the OTP round trip for an email."""
    def _verify(email):
        assert client.post("/otp/send", json={"email": email}).status_code == 200
        response = client.post("/otp/verify", json={"email": email, "code": mailer.last_code(email)})
        assert response.status_code == 200
        return email
    return _verify


@pytest.fixture
def admin_headers(client):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


def answer(code, importance="HIGH", satisfaction=4, relevant=True):
    return {"code": code, "relevant": relevant, "importance": importance, "satisfaction": satisfaction}
