"""
In-process order store.

The whole venue/participant/order graph sits behind one read/write lock:
readers share it, writers are exclusive. Every public method is a one-shot
call into the guarded region, executed on the shared thread pool, and hands
back deep copies only.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator

from domain.action import Action
from domain.enums import ActionKind, Status
from domain.errors import NotPermittedError, OrderNotFoundError, StoreError, VenueNotFoundError
from domain.order import Order, Participant
from domain.venue import Venue
from services.async_executor import run_blocking
from services.store import OrderStore

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self, timeout: float) -> bool:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0,
                timeout=timeout,
            )
            if ok:
                self._readers += 1
            return ok

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: float) -> bool:
        with self._cond:
            self._writers_waiting += 1
            try:
                ok = self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout=timeout,
                )
                if ok:
                    self._writer = True
                return ok
            finally:
                self._writers_waiting -= 1
                if not self._writer:
                    # a timed-out writer may have been holding readers back
                    self._cond.notify_all()

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self, timeout: float) -> Iterator[None]:
        started = time.monotonic()
        if not self.acquire_read(timeout):
            raise StoreError(f"read lock not acquired after {time.monotonic() - started:.2f}s")
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self, timeout: float) -> Iterator[None]:
        started = time.monotonic()
        if not self.acquire_write(timeout):
            raise StoreError(f"write lock not acquired after {time.monotonic() - started:.2f}s")
        try:
            yield
        finally:
            self.release_write()


class MemoryStore(OrderStore):
    """Single-process store; contents are lost when the process exits."""

    def __init__(self, lock_timeout: float = 5.0) -> None:
        self._lock = ReadWriteLock()
        self._timeout = lock_timeout
        self._max_id = 0
        self._venues: dict[int, Venue] = {}
        self._users: dict[int, Participant] = {}
        # order id -> [(channel id, message id)], insertion ordered, no duplicates
        self._order_messages: dict[int, list[tuple[int, int]]] = {}

    # ── Orders ──────────────────────────────────────────────────────

    async def add_order(self, venue_id: int, order: Order) -> int:
        order_id = await run_blocking(self._add_order, venue_id, order.clone())
        order.id = order_id
        return order_id

    def _add_order(self, venue_id: int, order: Order) -> int:
        with self._lock.write(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                raise VenueNotFoundError(venue_id)
            self._max_id += 1
            order.id = self._max_id
            venue.orders.append(order)
            logger.info(f"Added order {order.id} ({order.name!r}) to venue {venue_id}")
            return order.id

    async def get_order(self, venue_id: int, order_id: int) -> Order | None:
        return await run_blocking(self._get_order, venue_id, order_id)

    def _get_order(self, venue_id: int, order_id: int) -> Order | None:
        with self._lock.read(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                return None
            order = venue.find_order(order_id)
            return order.clone() if order is not None else None

    async def orders_by_status(self, venue_id: int, status: Status) -> list[Order]:
        logger.debug(f"Listing orders of status {status.value} in venue {venue_id}")
        return await run_blocking(self._select, venue_id, lambda o: o.status == status)

    async def orders_submitted_by(self, venue_id: int, participant_id: int) -> list[Order]:
        logger.debug(f"Listing orders submitted by {participant_id} in venue {venue_id}")
        return await run_blocking(self._select, venue_id, lambda o: o.customer.id == participant_id)

    async def active_assignments_to(self, venue_id: int, participant_id: int) -> list[Order]:
        logger.debug(f"Listing active assignments of {participant_id} in venue {venue_id}")
        return await run_blocking(
            self._select,
            venue_id,
            lambda o: o.is_active_assignment() and o.assignee_id == participant_id,
        )

    def _select(self, venue_id: int, predicate) -> list[Order]:
        with self._lock.read(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                raise VenueNotFoundError(venue_id)
            return [o.clone() for o in venue.orders if predicate(o)]

    async def perform_action(
        self,
        actor: Participant,
        venue_id: int,
        action: Action,
    ) -> tuple[Status, Order | None]:
        return await run_blocking(self._perform_action, actor, venue_id, action)

    def _perform_action(
        self,
        actor: Participant,
        venue_id: int,
        action: Action,
    ) -> tuple[Status, Order | None]:
        logger.info(
            f"perform_action actor={actor.id} venue={venue_id} "
            f"order={action.order_id} action={action.kind.id}"
        )
        with self._lock.write(self._timeout):
            venue = self._venues.get(venue_id)
            order = venue.find_order(action.order_id) if venue is not None else None
            if order is None:
                raise OrderNotFoundError(action.order_id)

            if action.kind is ActionKind.DELETE:
                # authorize against the current state before removing anything
                if not order.is_action_permitted(actor.id, action.kind):
                    raise NotPermittedError(
                        details={"order_id": order.id, "action": action.kind.id, "status": order.status.value},
                    )
                prev_status = order.status
                venue.remove_order(action.order_id)
                self._order_messages.pop(action.order_id, None)
                logger.info(f"Deleted order {action.order_id} from venue {venue_id}")
                return prev_status, None

            prev_status = order.perform_action(actor, action)
            logger.info(f"Order {order.id}: {prev_status.value} -> {order.status.value}")
            return prev_status, order.clone()

    # ── Participants ────────────────────────────────────────────────

    async def update_user(self, profile: Participant) -> None:
        await run_blocking(self._update_user, Participant.from_dict(profile.to_dict()))

    def _update_user(self, profile: Participant) -> None:
        with self._lock.write(self._timeout):
            self._users[profile.id] = profile

    async def get_user(self, participant_id: int) -> Participant | None:
        return await run_blocking(self._get_user, participant_id)

    def _get_user(self, participant_id: int) -> Participant | None:
        with self._lock.read(self._timeout):
            user = self._users.get(participant_id)
            return Participant.from_dict(user.to_dict()) if user is not None else None

    # ── Venues & membership ─────────────────────────────────────────

    async def update_venue(self, venue_id: int, title: str | None = None) -> None:
        await run_blocking(self._update_venue, venue_id, title)

    def _update_venue(self, venue_id: int, title: str | None) -> None:
        with self._lock.write(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                logger.info(f"New venue {venue_id} ({title!r})")
                self._venues[venue_id] = Venue(id=venue_id, title=title or "")
            elif title is not None:
                venue.title = title

    async def add_members(self, venue_id: int, participant_ids: list[int]) -> None:
        await run_blocking(self._add_members, venue_id, list(participant_ids))

    def _add_members(self, venue_id: int, participant_ids: list[int]) -> None:
        with self._lock.write(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                raise VenueNotFoundError(venue_id)
            for participant_id in participant_ids:
                venue.add_member(participant_id)

    async def remove_member(self, venue_id: int, participant_id: int) -> None:
        await run_blocking(self._remove_member, venue_id, participant_id)

    def _remove_member(self, venue_id: int, participant_id: int) -> None:
        with self._lock.write(self._timeout):
            venue = self._venues.get(venue_id)
            if venue is None:
                raise VenueNotFoundError(venue_id)
            venue.remove_member(participant_id)

    async def venues_of(self, participant_id: int) -> list[tuple[int, str]]:
        return await run_blocking(self._venues_of, participant_id)

    def _venues_of(self, participant_id: int) -> list[tuple[int, str]]:
        with self._lock.read(self._timeout):
            return sorted(
                (venue.id, venue.title)
                for venue in self._venues.values()
                if venue.has_member(participant_id)
            )

    # ── Notification locations ──────────────────────────────────────

    async def record_notification_location(self, order_id: int, channel_id: int, message_id: int) -> None:
        await run_blocking(self._record_notification_location, order_id, channel_id, message_id)

    def _record_notification_location(self, order_id: int, channel_id: int, message_id: int) -> None:
        with self._lock.write(self._timeout):
            locations = self._order_messages.setdefault(order_id, [])
            if (channel_id, message_id) not in locations:
                locations.append((channel_id, message_id))

    async def notification_locations(self, order_id: int) -> list[tuple[int, int]]:
        return await run_blocking(self._notification_locations, order_id)

    def _notification_locations(self, order_id: int) -> list[tuple[int, int]]:
        with self._lock.read(self._timeout):
            return list(self._order_messages.get(order_id, []))

    # ── Lifecycle ───────────────────────────────────────────────────

    async def stats(self) -> dict:
        return await run_blocking(self._stats)

    def _stats(self) -> dict:
        with self._lock.read(self._timeout):
            return {
                "backend": "memory",
                "max_order_id": self._max_id,
                "venues": len(self._venues),
                "participants": len(self._users),
                "orders": sum(len(v.orders) for v in self._venues.values()),
            }
