import itertools
import os
from types import SimpleNamespace

import pytest

os.environ.setdefault("FLASK_ENV", "test")
os.environ.setdefault("RATE_LIMIT_FIRESTORE_ENABLED", "0")

from study_buddy import create_app, runtime  # noqa: E402

AUTH_HEADERS = {"Authorization": "Bearer test-token"}


class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, path):
        self._db = db
        self.path = path

    @property
    def id(self):
        return self.path[-1]

    def collection(self, name):
        return FakeCollection(self._db, self.path + (name,))

    def get(self, transaction=None):
        return FakeSnapshot(self, self._db.docs.get(self.path))

    def set(self, data, merge=False):
        if merge and self.path in self._db.docs:
            self._db.docs[self.path].update(data)
        else:
            self._db.docs[self.path] = dict(data)

    def update(self, data):
        if self.path not in self._db.docs:
            raise KeyError(f"No document to update: {'/'.join(self.path)}")
        self._db.docs[self.path].update(data)

    def delete(self):
        self._db.docs.pop(self.path, None)


class FakeQuery:
    def __init__(self, collection, filters=(), limit_count=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._limit = limit_count

    def where(self, *args, **kwargs):
        # Positional filters only; apply_where falls back to this form.
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        field_path, op_string, value = args
        assert op_string == "=="
        return FakeQuery(self._collection, self._filters + ((field_path, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._collection, self._filters, count)

    def order_by(self, *_args, **_kwargs):
        return self

    def stream(self):
        matches = [
            snapshot for snapshot in self._collection.all_snapshots()
            if all((snapshot.to_dict() or {}).get(field) == value for field, value in self._filters)
        ]
        if self._limit is not None:
            matches = matches[:self._limit]
        return iter(matches)


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(self)
        self._db = db
        self.path = path

    def document(self, doc_id=None):
        return FakeDocRef(self._db, self.path + (doc_id or self._db.next_id(),))

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref

    def all_snapshots(self):
        depth = len(self.path) + 1
        return [
            FakeSnapshot(FakeDocRef(self._db, path), data)
            for path, data in self._db.docs.items()
            if len(path) == depth and path[:-1] == self.path
        ]


class FakeTransaction:
    def __init__(self, db):
        self._db = db

    def get(self, ref_or_query):
        if hasattr(ref_or_query, "stream"):
            return ref_or_query.stream()
        return ref_or_query.get()

    def set(self, ref, data, merge=False):
        ref.set(data, merge=merge)

    def update(self, ref, data):
        ref.update(data)


class FakeFirestore:
    """Dict-backed stand-in for the subset of google-cloud-firestore we use."""

    def __init__(self):
        self.docs = {}
        self._ids = itertools.count(1)

    def next_id(self):
        return f"auto{next(self._ids)}"

    def collection(self, name):
        return FakeCollection(self, (name,))

    def transaction(self):
        return FakeTransaction(self)

    def seed(self, path, data):
        self.docs[tuple(path.split("/"))] = dict(data)

    def read(self, path):
        return self.docs.get(tuple(path.split("/")))


class FakeModels:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        return SimpleNamespace(text=self.reply)


class FakeGenAIClient:
    def __init__(self, reply=""):
        self.models = FakeModels(reply)


@pytest.fixture()
def app():
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture()
def fake_db(app, monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(runtime, "db", db)
    monkeypatch.setattr(runtime, "firestore", SimpleNamespace(transactional=lambda fn: fn))
    return db


@pytest.fixture()
def fake_ai(app, monkeypatch):
    ai_client = FakeGenAIClient()
    monkeypatch.setattr(runtime, "client", ai_client)
    return ai_client


@pytest.fixture()
def client(app, fake_db, monkeypatch):
    monkeypatch.setattr(runtime, "check_rate_limit", lambda **_kwargs: (True, 0))
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def signed_in(app, monkeypatch):
    user = {"uid": "user-1", "email": "student@example.com"}
    monkeypatch.setattr(runtime, "verify_firebase_token", lambda _request: dict(user))
    return user
