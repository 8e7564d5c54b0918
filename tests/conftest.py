"""Test fixtures: Django setup, an in-memory Firestore and patched FCM calls."""

import copy
import os
import tempfile
import uuid
from collections import defaultdict
from types import SimpleNamespace
from unittest.mock import MagicMock

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("NSS_LOG_DIR", tempfile.mkdtemp(prefix="nss-portal-logs-"))
django.setup()

from django.test.utils import setup_test_environment  # noqa: E402

setup_test_environment()

import jwt  # noqa: E402
import pytest  # noqa: E402
from django.conf import settings  # noqa: E402
from django.test import Client  # noqa: E402
from django.utils import timezone  # noqa: E402
from firebase_admin import messaging  # noqa: E402

from api import firebase_service as firebase_module  # noqa: E402
from api.firebase_service import firestore_service  # noqa: E402
from api.push_service import push_service  # noqa: E402


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------


class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.data[self._collection]

    def get(self, transaction=None):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data):
        self._docs[self.id] = copy.deepcopy(data)

    def update(self, fields):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        self._docs[self.id].update(copy.deepcopy(fields))

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=(), order=None, limit=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit

    def _clone(self, **changes):
        params = {"filters": self._filters, "order": self._order, "limit": self._limit}
        params.update(changes)
        return FakeQuery(self._db, self._collection, **params)

    def where(self, field, op, value):
        assert op == "==", f"FakeQuery only supports '==' (got {op!r})"
        return self._clone(filters=self._filters + ((field, value),))

    def order_by(self, field, direction="ASCENDING"):
        return self._clone(order=(field, direction))

    def limit(self, count):
        return self._clone(limit=count)

    def stream(self):
        docs = [
            (doc_id, data)
            for doc_id, data in self._db.data[self._collection].items()
            if all(data.get(field) == value for field, value in self._filters)
        ]
        if self._order:
            field, direction = self._order
            docs.sort(key=lambda item: item[1].get(field), reverse=direction == "DESCENDING")
        if self._limit is not None:
            docs = docs[:self._limit]
        for doc_id, data in docs:
            ref = FakeDocumentRef(self._db, self._collection, doc_id)
            yield FakeSnapshot(ref, data)


class FakeCollection(FakeQuery):
    def __init__(self, db, collection):
        super().__init__(db, collection)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self._collection, doc_id or uuid.uuid4().hex)


class FakeBatch:
    MAX_WRITES = 500

    def __init__(self, db):
        self._db = db
        self._updates = []

    def update(self, ref, fields):
        self._updates.append((ref, fields))

    def commit(self):
        if len(self._updates) > self.MAX_WRITES:
            raise ValueError(f"maximum {self.MAX_WRITES} writes allowed per request")
        for ref, fields in self._updates:
            ref.update(fields)
        self._db.batch_commits += 1


class FakeFirestore:
    def __init__(self):
        self.data = defaultdict(dict)
        self.batch_commits = 0

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def seed(self, collection, doc_id, data):
        self.data[collection][doc_id] = copy.deepcopy(data)

    def doc(self, collection, doc_id):
        return self.data[collection].get(doc_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_firebase(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never initialize a real Firebase app from tests."""
    monkeypatch.setattr(firebase_module, "_firebase_app", None)
    monkeypatch.setattr(firebase_module, "_firestore_client", None)
    monkeypatch.setattr(firebase_module, "_firebase_init_attempted", True)
    monkeypatch.setattr(firestore_service, "_db", None)
    monkeypatch.setattr(push_service, "_messaging", None)


@pytest.fixture()
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeFirestore:
    db = FakeFirestore()
    monkeypatch.setattr(firestore_service, "_db", db)
    return db


def _all_ok_multicast(message):
    responses = [
        SimpleNamespace(success=True, message_id=f"msg-{i}", exception=None)
        for i, _ in enumerate(message.tokens)
    ]
    return SimpleNamespace(success_count=len(responses), failure_count=0, responses=responses)


def _topic_ok(tokens, topic):
    return SimpleNamespace(success_count=len(tokens), failure_count=0, errors=[])


@pytest.fixture()
def fcm(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Route push_service through the real messaging module with mocked network calls."""
    mocks = SimpleNamespace(
        send=MagicMock(return_value="projects/test/messages/1"),
        send_each=MagicMock(),
        send_each_for_multicast=MagicMock(side_effect=_all_ok_multicast),
        subscribe_to_topic=MagicMock(side_effect=_topic_ok),
        unsubscribe_from_topic=MagicMock(side_effect=_topic_ok),
    )
    for name, mock in vars(mocks).items():
        monkeypatch.setattr(messaging, name, mock)
    monkeypatch.setattr(push_service, "_messaging", messaging)
    return mocks


@pytest.fixture()
def client() -> Client:
    return Client()


def make_token(user_id: str, role: str = "student") -> str:
    return jwt.encode({"id": user_id, "role": role}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_header(user_id: str, role: str = "student") -> dict:
    return {"HTTP_AUTHORIZATION": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture()
def student_auth() -> dict:
    return auth_header("student-1", "student")


@pytest.fixture()
def admin_auth() -> dict:
    return auth_header("admin-1", "admin")


def device(token: str, active: bool = True, **extra) -> dict:
    now = timezone.now()
    entry = {
        "token": token,
        "deviceType": "web",
        "deviceName": "Chrome",
        "isActive": active,
        "registeredAt": now,
        "lastUsedAt": now,
    }
    entry.update(extra)
    return entry


@pytest.fixture()
def seed_user(fake_db: FakeFirestore):
    """Factory that stores a users/{uid} document and returns it."""
    def _seed(user_id, role="student", device_tokens=None, preferences=None, is_active=True, **extra):
        data = {
            "name": user_id.title(),
            "email": f"{user_id}@college.edu",
            "role": role,
            "isActive": is_active,
            "deviceTokens": device_tokens or [],
        }
        if preferences is not None:
            data["notificationPreferences"] = preferences
        data.update(extra)
        fake_db.seed("users", user_id, data)
        return data

    return _seed


@pytest.fixture()
def student(seed_user) -> dict:
    return seed_user("student-1", device_tokens=[device("token-a"), device("token-b")])


@pytest.fixture()
def admin(seed_user) -> dict:
    return seed_user("admin-1", role="admin")


@pytest.fixture()
def make_device():
    return device


@pytest.fixture()
def auth_for():
    return auth_header
