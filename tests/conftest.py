"""
Pytest configuration.

Points the app at a throwaway SQLite file before any ``app`` import so the
module-level engine, the gateway and the routes all share it. Every test
creates its own users (unique emails), so no per-test wipe is needed.
"""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="crm-messaging-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["TESTING"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key"

import asyncio
from typing import Any, List
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.auth import create_token_for_user
from app.database import AsyncSessionLocal, create_tables
from app.models.user import User, UserRole
from app.presence import PresenceRegistry
from app.repositories.user_repository import UserRepository
from app.gateway import RealtimeGateway
from app.websocket_manager import ConnectionManager

# not a real hash; these users never log in with a password
UNUSABLE_PASSWORD_HASH = "!"


@pytest.fixture(scope="session", autouse=True)
def _schema():
    asyncio.run(create_tables())
    yield


@pytest_asyncio.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make_user(name: str = "User", role: UserRole = UserRole.CLIENT, active: bool = True) -> User:
        user = await UserRepository(db).create(
            name=name,
            email=f"{name.lower()}-{uuid4().hex[:10]}@example.com",
            hashed_password=UNUSABLE_PASSWORD_HASH,
            role=role,
        )
        if not active:
            user.is_active = False
            await db.commit()
        return user

    return _make_user


class FakeWebSocket:
    """Stands in for a Starlette WebSocket: records what the server sends."""

    def __init__(self, fail_sends: bool = False):
        self.accepted = False
        self.fail_sends = fail_sends
        self.sent: List[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data: Any):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    def events(self, name: str = None) -> List[dict]:
        return [item for item in self.sent if name is None or item["event"] == name]

    def names(self) -> List[str]:
        return [item["event"] for item in self.sent]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def gateway():
    return RealtimeGateway(ConnectionManager(), PresenceRegistry(), AsyncSessionLocal)


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}


def ws_url(user: User) -> str:
    return f"/api/v1/ws/chat?token={create_token_for_user(user)}"
