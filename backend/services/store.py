"""
Order store — the authoritative venue/participant/order graph.

Every operation is atomic with respect to every other one; callers only ever
receive copies, never live references into the store. Two backends:

    memory  — services/memory_store.py, one process-wide read/write lock
    sql     — services/sql_store.py, SQLAlchemy with optimistic versioning
"""
import logging
from abc import ABC, abstractmethod

from config import Settings
from domain.action import Action
from domain.enums import Status
from domain.errors import MultipleVenuesError, NotInAnyVenueError
from domain.order import Order, Participant

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    """Async interface shared by all store backends."""

    # ── Orders ──────────────────────────────────────────────────────

    @abstractmethod
    async def add_order(self, venue_id: int, order: Order) -> int:
        """
        Assign a fresh store-wide id to `order`, insert a copy into the venue,
        and return the id (also written back to `order.id`).

        Raises VenueNotFoundError if the venue is unknown.
        """

    @abstractmethod
    async def get_order(self, venue_id: int, order_id: int) -> Order | None:
        ...

    @abstractmethod
    async def orders_by_status(self, venue_id: int, status: Status) -> list[Order]:
        ...

    @abstractmethod
    async def orders_submitted_by(self, venue_id: int, participant_id: int) -> list[Order]:
        ...

    @abstractmethod
    async def active_assignments_to(self, venue_id: int, participant_id: int) -> list[Order]:
        """Orders Assigned or MarkedAsDelivered whose assignee is `participant_id`."""

    @abstractmethod
    async def perform_action(
        self,
        actor: Participant,
        venue_id: int,
        action: Action,
    ) -> tuple[Status, Order | None]:
        """
        The single read-modify-write entry point.

        Returns (previous status, updated order), or (previous status, None)
        when the action deleted the order. Raises OrderNotFoundError or
        NotPermittedError without touching the order.
        """

    # ── Participants ────────────────────────────────────────────────

    @abstractmethod
    async def update_user(self, profile: Participant) -> None:
        """Upsert by id; whole-record replace."""

    @abstractmethod
    async def get_user(self, participant_id: int) -> Participant | None:
        ...

    # ── Venues & membership ─────────────────────────────────────────

    @abstractmethod
    async def update_venue(self, venue_id: int, title: str | None = None) -> None:
        """Upsert venue metadata; a new venue starts with no members. None keeps the current title."""

    @abstractmethod
    async def add_members(self, venue_id: int, participant_ids: list[int]) -> None:
        ...

    @abstractmethod
    async def remove_member(self, venue_id: int, participant_id: int) -> None:
        ...

    @abstractmethod
    async def venues_of(self, participant_id: int) -> list[tuple[int, str]]:
        """(venue id, title) of every venue the participant is a member of."""

    async def venue_for(self, participant_id: int) -> int:
        """
        The single venue `participant_id` belongs to.

        Raises NotInAnyVenueError for none, MultipleVenuesError for several;
        multi-venue membership is not resolved silently.
        """
        venues = await self.venues_of(participant_id)
        if not venues:
            raise NotInAnyVenueError(participant_id)
        if len(venues) > 1:
            venue_ids = sorted(venue_id for venue_id, _title in venues)
            logger.info(f"Participant {participant_id} is in several venues: {venue_ids}")
            raise MultipleVenuesError(participant_id, venue_ids)
        return venues[0][0]

    # ── Notification locations ──────────────────────────────────────

    @abstractmethod
    async def record_notification_location(self, order_id: int, channel_id: int, message_id: int) -> None:
        ...

    @abstractmethod
    async def notification_locations(self, order_id: int) -> list[tuple[int, int]]:
        """(channel id, message id) pairs of messages that displayed the order."""

    # ── Lifecycle ───────────────────────────────────────────────────

    @abstractmethod
    async def stats(self) -> dict:
        """Counts for debugging and health checks."""

    async def close(self) -> None:
        pass


async def create_store(settings: Settings) -> OrderStore:
    """Build the backend named by settings.store_backend."""
    if settings.store_backend == "memory":
        from services.memory_store import MemoryStore
        logger.info("Using in-memory order store")
        return MemoryStore(lock_timeout=settings.lock_timeout_seconds)

    if settings.store_backend == "sql":
        from services.sql_store import SqlStore
        store = SqlStore.from_url(
            settings.async_database_url,
            retry_limit=settings.action_retry_limit,
        )
        await store.init()
        logger.info("Using SQL order store")
        return store

    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
