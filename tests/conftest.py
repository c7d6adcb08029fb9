import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from inventario.core.config import get_settings
from inventario.store import RestStore

BASE_URL = "https://db.test"


class FakeBackend:
    """Records every request and answers from a small routing table.

    Routes are keyed by ``(method, path)``, or match a path prefix when added
    with ``prefix=True``. Unrouted GETs answer ``[]`` and every other unrouted
    request answers 204.
    """

    def __init__(self):
        self.routes = {}
        self.prefix_routes = []
        self.calls = []

    def on(self, method, path, *, json_body=None, status=200, content=None, headers=None, handler=None, prefix=False):
        if handler is None:
            def handler(request):
                if content is not None:
                    return httpx.Response(status, content=content, headers=headers)
                return httpx.Response(status, json=json_body, headers=headers)
        if prefix:
            self.prefix_routes.append((method, path, handler))
        else:
            self.routes[(method, path)] = handler

    def __call__(self, request):
        body = None
        if request.content and "json" in request.headers.get("content-type", ""):
            body = json.loads(request.content)
        self.calls.append(
            {
                "method": request.method,
                "path": request.url.path,
                "params": dict(request.url.params),
                "json": body,
                "headers": request.headers,
                "content": request.content,
            }
        )
        route = self.routes.get((request.method, request.url.path))
        if route is not None:
            return route(request)
        for method, prefix, handler in self.prefix_routes:
            if request.method == method and request.url.path.startswith(prefix):
                return handler(request)
        if request.method == "GET":
            return httpx.Response(200, json=[])
        return httpx.Response(204)

    def store(self):
        client = httpx.Client(transport=httpx.MockTransport(self))
        return RestStore(BASE_URL, "anon-key", client=client)

    def find(self, method, path):
        return [call for call in self.calls if call["method"] == method and call["path"] == path]


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def store(backend):
    with backend.store() as rest_store:
        yield rest_store


@pytest.fixture()
def env_settings(monkeypatch):
    """Configure the app through the environment and reset the cached settings."""

    monkeypatch.setenv("SUPABASE_URL", BASE_URL)
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("ADMIN_LOCAL_PASSWORD", "secreto")
    monkeypatch.setenv("ADMIN_PASSWORD_HASH", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("STORAGE_BUCKET", "fotos")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


@pytest.fixture()
def client(env_settings, backend):
    from fastapi.testclient import TestClient

    from inventario import create_app
    from inventario.store import get_store, get_store_or_none

    app = create_app(get_settings())
    app.dependency_overrides[get_store] = backend.store
    app.dependency_overrides[get_store_or_none] = backend.store
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_client(client):
    response = client.post("/api/admin-local/verify", json={"password": "secreto"})
    assert response.status_code == 200
    return client
