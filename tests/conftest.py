# tests/conftest.py
import asyncio
import os
import time
import uuid

# must be set before legaldocs.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("WORKFLOW_TOKEN", "workflow-token")

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from legaldocs import clients, db
from legaldocs import main as app_main
from legaldocs.config import settings
from legaldocs.errors import BackendError
from legaldocs.models import Document
from legaldocs.session import sessions


def path_of(url: str) -> str:
    return httpx.URL(url).path


class FakeStore:
    """In-memory stand-in for ObjectStore; records writes in order."""

    def __init__(self, public_base_url="http://files.test", bucket="documents"):
        self.public_base_url = public_base_url
        self.bucket = bucket
        self.objects = {}
        self.puts = []
        self.fail_prefix = None

    def put(self, key, data, content_type="application/octet-stream"):
        if self.fail_prefix and key.startswith(self.fail_prefix):
            raise BackendError("The specified bucket does not exist")
        self.puts.append((key, content_type))
        self.objects[key] = data
        return key

    def public_url(self, key):
        return f"{self.public_base_url}/{self.bucket}/{key}"

    def ping(self):
        return True


class FakeRedis:
    def __init__(self):
        self.hashes = {}
        self.ttls = {}

    async def hset(self, key, mapping=None, **kwargs):
        self.hashes.setdefault(key, {}).update(mapping or {})

    async def expire(self, key, ttl):
        self.ttls[key] = ttl

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def ping(self):
        return True

    async def aclose(self):
        pass


class FakeWorkflows:
    """
    Routes requests by URL path to canned responses.
    A route value is an httpx.Response, a JSON-able object (200), or a callable(request).
    """

    def __init__(self):
        self.calls = []
        self.routes = {
            path_of(settings.conversion_url): {"text": "Lease text", "success": True},
            path_of(settings.vector_workflow_url): {"error_count": 0},
            path_of(settings.compare_qa_url): {"output": "Document A has a longer notice period."},
            path_of(settings.civic_qa_url): {
                "success": True,
                "data": {"answer": {"english": "Tax goes up.", "swahili": "Kodi inapanda."}},
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def paths(self):
        return [r.url.path for r in self.calls]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeRepo:
    """Document repository over a dict; mirrors DocumentRepository's owner scoping."""

    def __init__(self):
        self.rows = {}
        self.inserts = []
        self.fail_insert = False

    def add(self, user_id, name="Doc", original_url=None):
        doc = Document(
            id=uuid.uuid4(),
            user_id=user_id,
            name=name,
            original_url=original_url or f"http://files.test/documents/originals/{name}.pdf",
            txt_url=f"http://files.test/documents/converted/{name}.txt",
        )
        self.rows[str(doc.id)] = doc
        return doc

    async def insert(self, *, name, original_url, txt_url, user_id):
        self.inserts.append(dict(name=name, original_url=original_url, txt_url=txt_url, user_id=user_id))
        if self.fail_insert:
            raise BackendError("duplicate key value violates unique constraint")
        doc = Document(id=uuid.uuid4(), name=name, original_url=original_url, txt_url=txt_url, user_id=user_id)
        self.rows[str(doc.id)] = doc
        return doc

    async def get_for_user(self, doc_id, user_id):
        doc = self.rows.get(str(doc_id))
        if doc is None or doc.user_id != user_id:
            return None
        return doc


@pytest.fixture(autouse=True)
def _reset_sessions():
    sessions.clear()
    yield
    sessions.clear()


@pytest.fixture
def db_engine(tmp_path):
    """A fresh file-backed SQLite database per test."""
    engine = db.configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    asyncio.run(db.init_models())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def workflows():
    return FakeWorkflows()


@pytest.fixture
def fake_repo():
    return FakeRepo()


@pytest.fixture
def client(db_engine, store, fake_redis, workflows, monkeypatch):
    http_client = workflows.client()
    monkeypatch.setattr(app_main, "get_object_store", lambda: store)
    monkeypatch.setattr(app_main, "get_redis", lambda: fake_redis)
    monkeypatch.setattr(clients, "get_client", lambda: http_client)
    with TestClient(app_main.app) as c:
        yield c


@pytest.fixture
def make_headers():
    def _make(sub="user-1", expires_in=3600):
        token = jwt.encode(
            {"sub": sub, "exp": int(time.time()) + expires_in},
            settings.jwt_secret,
            algorithm="HS256",
        )
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def auth_headers(make_headers):
    return make_headers("user-1")
