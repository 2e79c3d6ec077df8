import os
from datetime import datetime, timedelta, timezone

# Keep the module-level app in examportal.main off MongoDB and Firebase
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("IDENTITY_BACKEND", "local")

import pytest
from fastapi.testclient import TestClient

from examportal.config.settings import Settings
from examportal.gateways import LocalIdentityGateway, MemoryDocumentStore
from examportal.main import create_app
from examportal.utils import to_iso

NOW = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)
START = NOW - timedelta(hours=1)
END = NOW + timedelta(hours=2)


class FixedClock:
    """Clock the tests can move by hand."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FailingWritesStore(MemoryDocumentStore):
    """Memory store whose writes under a path prefix fail until ``failing`` is cleared."""

    def __init__(self, initial=None, prefix="exams/"):
        super().__init__(initial)
        self.prefix = prefix
        self.failing = True
        self.writes = []

    async def write(self, path, value):
        if self.failing and path.startswith(self.prefix):
            raise ConnectionError("store unavailable")
        self.writes.append(path)
        await super().write(path, value)


class FailingReadsStore(MemoryDocumentStore):
    """Memory store whose reads fail for one collection."""

    def __init__(self, initial=None, collection="users"):
        super().__init__(initial)
        self.collection = collection

    async def read(self, path):
        if path.startswith(self.collection):
            raise ConnectionError("store unavailable")
        return await super().read(path)


def question(question_id, correct, text=None):
    return {
        "id": question_id,
        "text": text or f"Question {question_id}",
        "options": {"A": "alpha", "B": "beta", "C": "gamma", "D": "delta"},
        "correctAnswer": correct,
    }


def exam_document(start=START, end=END, duration=30, questions=None, **fields):
    """Stored exam with two questions whose correct answers are A and C."""
    if questions is None:
        questions = {"q1": question("q1", "A"), "q2": question("q2", "C")}
    doc = {
        "title": "Data Structures Midterm",
        "description": "",
        "subject": "Data Structures",
        "subjectId": "subject_ds",
        "duration": duration,
        "startTime": to_iso(start),
        "endTime": to_iso(end),
        "questions": questions,
        "termsAndConditions": "No notes.",
        "createdBy": "uid_teacher",
        "createdAt": to_iso(START - timedelta(days=1)),
    }
    doc.update(fields)
    return doc


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def identity(store):
    return LocalIdentityGateway(store)


@pytest.fixture
def test_settings():
    app_settings = Settings()
    app_settings.STORE_BACKEND = "memory"
    app_settings.IDENTITY_BACKEND = "local"
    app_settings.SESSION_COOKIE_SECURE = True
    # Long ticks: API tests never wait on the countdown
    app_settings.TICK_SECONDS = 3600.0
    return app_settings


@pytest.fixture
def client(test_settings, store, identity, clock):
    app = create_app(test_settings, store=store, identity=identity, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
