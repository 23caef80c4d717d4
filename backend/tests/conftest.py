"""
Pytest configuration and shared fixtures for Errand Board tests.

Provides both store backends (in-process and SQL on in-memory SQLite),
a populated venue, a recording notification sink and an HTTP client.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import pytest_asyncio
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from database import make_engine, make_sessionmaker
from domain.action import Action
from domain.enums import ActionKind
from domain.order import Order, Participant
from services.memory_store import MemoryStore
from services.notification_service import Notification
from services.sql_store import SqlStore
from services.store import OrderStore

VENUE_ID = -1001
OTHER_VENUE_ID = -1002


# ── Participants ──────────────────────────────────────────────────────


@pytest.fixture
def owner() -> Participant:
    return Participant(id=1, first_name="Olga", last_name="Owner", username="olga")


@pytest.fixture
def courier() -> Participant:
    return Participant(id=2, first_name="Carl")


@pytest.fixture
def bystander() -> Participant:
    return Participant(id=3, first_name="Bea", username="bea")


@pytest.fixture
def draft(owner) -> Order:
    """An unsaved, unpublished order."""
    return Order(name="Groceries", customer=owner, description="milk, bread", price=500, delivery_reward=100)


# ── Stores ────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def memory_store() -> AsyncGenerator[MemoryStore, None]:
    yield MemoryStore(lock_timeout=2.0)


@pytest_asyncio.fixture
async def sql_store() -> AsyncGenerator[SqlStore, None]:
    """
    SQL store on an in-memory SQLite database.

    Uses StaticPool so every session shares the one in-memory connection.
    """
    engine = make_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlStore(make_sessionmaker(engine), engine=engine)
    await store.init()
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request) -> OrderStore:
    """Every store contract test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest_asyncio.fixture
async def venue(store: OrderStore, owner, courier, bystander) -> int:
    """A venue whose members are owner, courier and bystander."""
    for participant in (owner, courier, bystander):
        await store.update_user(participant)
    await store.update_venue(VENUE_ID, "Dorm 7")
    await store.add_members(VENUE_ID, [owner.id, courier.id, bystander.id])
    return VENUE_ID


@pytest_asyncio.fixture
async def saved_order(store: OrderStore, venue: int, draft: Order) -> Order:
    await store.add_order(venue, draft)
    return draft


@pytest_asyncio.fixture
async def published_order(store: OrderStore, venue: int, saved_order: Order, owner) -> Order:
    _, order = await store.perform_action(owner, venue, Action(saved_order.id, ActionKind.PUBLISH))
    return order


# ── Notification sink ─────────────────────────────────────────────────


class RecordingSink:
    """Keeps everything sent/retracted; hands out increasing message ids."""

    def __init__(self, fail_channels=()):
        self.sent: list[Notification] = []
        self.retracted: list[tuple[int, int]] = []
        self.fail_channels = set(fail_channels)
        self._next_message_id = 100

    async def send(self, notification: Notification) -> int | None:
        if notification.channel_id in self.fail_channels:
            raise RuntimeError(f"channel {notification.channel_id} unreachable")
        self.sent.append(notification)
        self._next_message_id += 1
        return self._next_message_id

    async def retract(self, channel_id: int, message_id: int) -> None:
        if channel_id in self.fail_channels:
            raise RuntimeError(f"channel {channel_id} unreachable")
        self.retracted.append((channel_id, message_id))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


# ── HTTP client ───────────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def client(memory_store: MemoryStore, sink: RecordingSink):
    """
    Route-level test client over ASGITransport.

    The transport does not run the lifespan, so the store and sink are
    injected on app.state directly.
    """
    from main import app

    app.state.store = memory_store
    app.state.notification_sink = sink
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.state.store = None
    app.state.notification_sink = None
