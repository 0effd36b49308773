import json

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from activity_relay.config import settings
from activity_relay.db import Base, get_session_factory
from activity_relay.dependencies import get_http_client
from activity_relay.main import app
from activity_relay.models import User

EXPIRED_BODY = {"errors": [{"message": "The bearer token has expired. Please refresh it."}]}


class FakeAsana:
    """In-memory stand-in for the Asana REST API and OAuth token endpoint."""

    def __init__(self):
        self.users: dict[str, str] = {}
        self.tasks: dict[str, str] = {}
        self.stories: dict[str, str] = {}
        self.expired_tokens: set[str] = set()
        self.refreshed_access_token = "fresh-token"
        self.refreshed_refresh_token: str | None = "fresh-refresh"
        self.token_status = 200
        self.authorized_user = {"gid": "ME1", "name": "Morgan Lee", "email": "morgan@example.com"}
        self.webhook_status = 201
        self.requests: list[httpx.Request] = []

    def calls(self, path_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(path_prefix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/-/oauth_token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            body = {
                "access_token": self.refreshed_access_token,
                "expires_in": 3600,
                "token_type": "bearer",
                "data": self.authorized_user,
            }
            if self.refreshed_refresh_token:
                body["refresh_token"] = self.refreshed_refresh_token
            return httpx.Response(200, json=body)

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.expired_tokens:
            return httpx.Response(401, json=EXPIRED_BODY)

        if path == "/api/1.0/webhooks" and request.method == "POST":
            data = json.loads(request.content)["data"]
            if self.webhook_status != 201:
                return httpx.Response(
                    self.webhook_status, json={"errors": [{"message": "Could not complete handshake"}]}
                )
            return httpx.Response(
                201, json={"data": {"gid": "WH1", "target": data["target"], "active": True}}
            )

        parts = path.removeprefix("/api/1.0/").split("/")
        if len(parts) == 2:
            kind, gid = parts
            table = {"users": self.users, "tasks": self.tasks, "stories": self.stories}.get(kind, {})
            if gid in table:
                field = "text" if kind == "stories" else "name"
                return httpx.Response(200, json={"data": {"gid": gid, field: table[gid]}})
        return httpx.Response(404, json={"errors": [{"message": "Not found"}]})


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    monkeypatch.setattr(settings, "asana_pat", "pat-token")
    monkeypatch.setattr(settings, "api_key", "")
    monkeypatch.setattr(settings, "asana_client_id", "client-id")
    monkeypatch.setattr(settings, "asana_client_secret", "client-secret")
    monkeypatch.setattr(settings, "asana_redirect_uri", "http://localhost:8000/oauth/callback")
    monkeypatch.setattr(settings, "webhook_target_url", "https://relay.example.com/webhook")


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def asana():
    return FakeAsana()


@pytest.fixture
async def asana_client(asana):
    async with httpx.AsyncClient(transport=httpx.MockTransport(asana.handler)) as client:
        yield client


@pytest.fixture
async def api(session_factory, asana):
    """HTTP client against the app, wired to the test database and fake Asana."""

    async def _http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(asana.handler)) as client:
            yield client

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_http_client] = _http_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://relay.test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def account(session_factory):
    """A connected account whose stored access token has expired."""
    async with session_factory() as session:
        user = User(asana_gid="ME1", name="Morgan Lee", access_token="old-token", refresh_token="old-refresh")
        session.add(user)
        await session.commit()
        return user.id
