import itertools
import os
import re
from types import SimpleNamespace

import pytest

# Deterministic settings for the whole test session; must run before the
# application modules read them.
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "anon-test-key"
os.environ["SUPABASE_SERVICE_KEY"] = "service-test-key"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STORAGE_BUCKET"] = "media"
os.environ["LOG_FILE"] = ""
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["CONTACT_EMAIL_TO"] = ""
os.environ["ADMIN_EMAIL"] = "admin@example.test"
os.environ["ADMIN_PASSWORD"] = "correct-horse"

from fastapi.testclient import TestClient  # noqa: E402
from supabase import AuthError, PostgrestAPIError, StorageException  # noqa: E402

import db  # noqa: E402

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]

# Smallest byte string libmagic recognises as image/jpeg
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00" + b"\x00" * 64 + b"\xff\xd9"

_CSRF_RE = re.compile(r'name="csrf_token" value="([^"]+)"')


def csrf_from(html: str) -> str:
    m = _CSRF_RE.search(html)
    assert m, "no csrf token in page"
    return m.group(1)


class FakeQuery:
    """Subset of the postgrest request builder the app uses."""

    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None
        self.range_ = None
        self.single_ = False

    def select(self, columns="*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, changes):
        self.op, self.payload = "update", changes
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def range(self, start, end):
        self.range_ = (start, end)
        return self

    def single(self):
        self.single_ = True
        return self

    def _matches(self, row):
        return all(
            row.get(col) is not None and str(row.get(col)) == str(val) for col, val in self.filters
        )

    def execute(self):
        self.backend.calls.append(self)
        self.backend.maybe_fail(f"{self.table}.{self.op}")
        rows = self.backend.tables.setdefault(self.table, [])
        if self.op == "insert":
            row = self.backend.new_row(self.table, self.payload)
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])
        matched = [r for r in rows if self._matches(r)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in matched])
        if self.op == "delete":
            self.backend.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=[dict(r) for r in matched])

        if self.order_by:
            col, desc = self.order_by
            matched = sorted(matched, key=lambda r: str(r.get(col) or ""), reverse=desc)
        if self.range_:
            matched = matched[self.range_[0]:self.range_[1] + 1]
        if self.limit_n is not None:
            matched = matched[: self.limit_n]
        if self.columns != "*":
            cols = [c.strip() for c in self.columns.split(",")]
            matched = [{c: r.get(c) for c in cols} for r in matched]
        else:
            matched = [dict(r) for r in matched]
        if self.single_:
            if len(matched) != 1:
                raise PostgrestAPIError(
                    {
                        "message": "JSON object requested, multiple (or no) rows returned",
                        "code": "PGRST116",
                        "hint": None,
                        "details": f"The result contains {len(matched)} rows",
                    }
                )
            return SimpleNamespace(data=matched[0])
        return SimpleNamespace(data=matched)


class FakeBucket:
    def __init__(self, backend, name):
        self.backend = backend
        self.objects = backend.objects.setdefault(name, {})

    def upload(self, path, file, file_options=None):
        self.backend.maybe_fail("storage.upload")
        self.objects[path] = file
        return SimpleNamespace(path=path, full_path=path)

    def remove(self, paths):
        self.backend.maybe_fail("storage.remove")
        removed = []
        for p in paths:
            if self.objects.pop(p, None) is not None:
                removed.append({"name": p})
        return removed

    def list(self, path=None, options=None):
        self.backend.maybe_fail("storage.list")
        options = options or {}
        prefix = f"{path}/" if path else ""
        names = sorted(k[len(prefix):] for k in self.objects if k.startswith(prefix))
        entries = [{"name": n, "id": f"obj-{n}"} for n in names if "/" not in n]
        offset = int(options.get("offset", 0))
        limit = int(options.get("limit", 100))
        return entries[offset:offset + limit]


class FakeStorage:
    def __init__(self, backend):
        self.backend = backend

    def from_(self, name):
        return FakeBucket(self.backend, name)


class FakeAuthAdmin:
    def __init__(self, auth):
        self.auth = auth

    def create_user(self, attributes):
        self.auth.users[attributes["email"]] = attributes["password"]
        return SimpleNamespace(user=SimpleNamespace(id=f"user-{len(self.auth.users)}", email=attributes["email"]))


class FakeAuth:
    def __init__(self):
        self.users = {ADMIN_EMAIL: ADMIN_PASSWORD}
        self.tokens = {}
        self.current = None
        # When set, every set_session behaves like an expired access token:
        # the pair is refreshed and the old refresh token is spent.
        self.rotate = False
        self.admin = FakeAuthAdmin(self)
        self._seq = itertools.count(1)

    def _issue(self, email):
        n = next(self._seq)
        session = SimpleNamespace(access_token=f"access-{n}", refresh_token=f"refresh-{n}")
        self.tokens[session.access_token] = (session, email)
        self.current = session
        return session

    def sign_in_with_password(self, credentials):
        email, password = credentials.get("email"), credentials.get("password")
        if self.users.get(email) != password:
            raise AuthError("Invalid login credentials", "invalid_credentials")
        session = self._issue(email)
        return SimpleNamespace(session=session, user=SimpleNamespace(email=email))

    def set_session(self, access_token, refresh_token):
        entry = self.tokens.get(access_token)
        if entry is None or entry[0].refresh_token != refresh_token:
            raise AuthError("Invalid Refresh Token", "refresh_token_not_found")
        if self.rotate:
            del self.tokens[access_token]
            return SimpleNamespace(session=self._issue(entry[1]))
        self.current = entry[0]
        return SimpleNamespace(session=entry[0])

    def get_session(self):
        return self.current

    def sign_out(self):
        if self.current is not None:
            self.tokens.pop(self.current.access_token, None)
        self.current = None


class FakeBackend:
    """In-memory stand-in for ``supabase.Client``.

    ``fail`` holds operation names (``photos.insert``, ``storage.upload``,
    ``events.select``...) that raise the matching client exception.
    """

    def __init__(self):
        self.tables = {"events": [], "photos": []}
        self.objects = {}
        self.calls = []
        self.rpcs = []
        self.fail = set()
        self.auth = FakeAuth()
        self.storage = FakeStorage(self)
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        backend = self

        class _Call:
            def execute(self):
                backend.maybe_fail(f"rpc.{name}")
                backend.rpcs.append((name, params))
                return SimpleNamespace(data=None)

        return _Call()

    def maybe_fail(self, op):
        if op not in self.fail:
            return
        if op.startswith("storage."):
            raise StorageException({"statusCode": 500, "error": "internal", "message": f"{op} failed"})
        raise PostgrestAPIError({"message": f"{op} failed", "code": "XX000", "hint": None, "details": None})

    def new_row(self, table, payload):
        n = next(self._ids)
        row = {"id": f"{table[:-1]}-{n}", "created_at": f"2024-05-01T10:00:00.{next(self._clock):06d}+00:00"}
        if table == "photos":
            row.update({"start_number": "", "event_id": None, "thumbnail_url": None})
        if table == "events":
            row.update({"description": None, "cover_image": None})
        row.update(payload)
        return row

    # Seeding helpers

    def add_event(self, name="Round 1", date="2024-05-01", location="Mölln", **extra):
        row = self.new_row("events", {"name": name, "date": date, "location": location, **extra})
        self.tables["events"].append(row)
        return row

    def add_photo(self, category="motocross", url=None, start_number="", event_id=None, store=True, **extra):
        n = len(self.tables["photos"]) + 1
        key = url if url is not None else f"{category}/170000000{n:04d}-abc{n:03d}.jpg"
        row = self.new_row(
            "photos",
            {"url": key, "category": category, "start_number": start_number, "event_id": event_id, **extra},
        )
        self.tables["photos"].append(row)
        if store and key and not key.startswith("http"):
            self.objects.setdefault("media", {})[key] = JPEG_BYTES
        return row

    def keys(self, bucket="media"):
        return sorted(self.objects.get(bucket, {}))


@pytest.fixture
def backend():
    fake = FakeBackend()
    db._TEST_BACKEND = fake
    try:
        yield fake
    finally:
        db._TEST_BACKEND = None


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    from studio.services import rate_limit

    rate_limit.reset()
    yield
    rate_limit.reset()


@pytest.fixture
def client(backend):
    # Import the app lazily so the environment above is in place first.
    from main import app

    return TestClient(app)


@pytest.fixture
def admin_client(client):
    """TestClient with a signed-in admin session and CSRF cookie."""
    r = client.get("/admin/login")
    assert r.status_code == 200
    r = client.post(
        "/admin/login",
        data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "csrf_token": csrf_from(r.text)},
        follow_redirects=False,
    )
    assert r.status_code == 303, r.text
    return client


@pytest.fixture
def csrf(admin_client):
    return csrf_from(admin_client.get("/admin").text)
