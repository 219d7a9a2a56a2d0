import json
import os
import uuid

# Must be set before the app (and its settings) are imported
TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["RATE_LIMIT_MAX"] = "100000"
os.environ["DATABASE_URL"] = TEST_DB_URL

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.db import close_db, init_db
from app.core.pubsub import broadcaster
from app.core.security import hash_password
from app.main import app
from app.models.user import User


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    await init_db(TEST_DB_URL, generate_schemas=True)


@pytest_asyncio.fixture
async def db():
    """Fresh database without an HTTP client."""
    await _init_test_db()
    yield
    await close_db()


@pytest_asyncio.fixture
async def client():
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    await _init_test_db()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await close_db()


@pytest_asyncio.fixture
async def create_user():
    """
    Factory fixture to create users of any role directly via ORM.
    """

    async def _create_user(role: str = "contributor", password: str = "UserPass!23") -> tuple[User, str]:
        suffix = uuid.uuid4().hex[:6]
        user = await User.create(
            username=f"user_{suffix}",
            email=f"{suffix}@example.com",
            password_hash=hash_password(password),
            role=role,
        )
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(user: User, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest_asyncio.fixture
async def login_as(create_user, auth_header_factory):
    """
    Create a user with the given role and return (user, headers).
    """

    async def _login_as(role: str = "contributor") -> tuple[User, dict[str, str]]:
        user, password = await create_user(role=role)
        return user, await auth_header_factory(user, password)

    return _login_as


class RecordingWebSocket:
    """Stands in for a WebSocket; remembers every event sent to it."""

    def __init__(self):
        self.sent_texts = []

    async def send_text(self, text: str):
        self.sent_texts.append(text)

    @property
    def events(self) -> list[tuple[str, dict]]:
        out = []
        for raw in self.sent_texts:
            msg = json.loads(raw)
            out.append((msg["event"], msg["data"]))
        return out

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest_asyncio.fixture
async def events():
    """
    A listener registered with the global broadcaster, as an authenticated
    connection would be (personal room + "general").
    """
    ws = RecordingWebSocket()
    broadcaster.register(ws, "listener")
    yield ws
    broadcaster.unregister(ws)
