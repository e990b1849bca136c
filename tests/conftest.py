"""
Pytest configuration and fixtures for the CounselChat relay
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from typing import Any, AsyncGenerator, List, Tuple

import pytest
import pytest_asyncio
from faker import Faker

from counselchat.core.config import Settings
from counselchat.core.database import close_database, get_db_session, init_database
from counselchat.models.counselor import Counselor
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.relationship_store import SQLRelationshipStore
from counselchat.websocket.hub import RelayHub

# Initialize Faker
fake = Faker()


class RecordingGateway(RealtimeGateway):
    """Gateway that records every emit instead of talking to sockets"""

    def __init__(self):
        self.broadcasts: List[Tuple[str, Any]] = []
        self.sends: List[Tuple[str, str, Any]] = []

    async def broadcast(self, event: str, data: Any) -> None:
        self.broadcasts.append((event, data))

    async def send(self, sid: str, event: str, data: Any) -> None:
        self.sends.append((sid, event, data))

    def broadcast_events(self, event: str) -> List[Any]:
        return [data for name, data in self.broadcasts if name == event]

    def sent_to(self, sid: str) -> List[Tuple[str, Any]]:
        return [(event, data) for target, event, data in self.sends if target == sid]

    def reset(self) -> None:
        self.broadcasts.clear()
        self.sends.clear()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def settings() -> Settings:
    """Settings for a hub under test, independent of the environment"""
    return Settings(environment="test", strict_payload_validation=True, targeted_chat_delivery=False)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Fresh file-backed SQLite database per test.

    A file gives every session its own connection, like a real server.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'counselchat.db'}"
    await init_database(url)
    yield url
    await close_database()


@pytest.fixture
def store(database) -> SQLRelationshipStore:
    return SQLRelationshipStore()


@pytest.fixture
def make_counselor(database):
    """Provision a counselor account the way the account service would"""

    async def _make(email: str = None, name: str = None) -> Counselor:
        async with get_db_session() as session:
            counselor = Counselor(email=email or fake.email(), name=name or fake.name())
            session.add(counselor)
        return counselor

    return _make


@pytest_asyncio.fixture
async def hub(gateway, store, settings) -> AsyncGenerator[RelayHub, None]:
    relay_hub = RelayHub(gateway, store, settings)
    yield relay_hub
    await relay_hub.drain()
