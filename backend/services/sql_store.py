"""
SQL order store backed by SQLAlchemy's async ORM.

Atomicity:
    - order ids come from the table's AUTOINCREMENT sequence (never reused)
    - multi-row changes (order + membership rows, delete + notification purge)
      commit in one transaction
    - perform_action is read-authorize-mutate-write guarded by the `version`
      column: the UPDATE/DELETE only matches the version that was read. A
      stale write raises StaleDataError and the whole cycle runs again against
      the fresh row, so the loser of two concurrent claims re-authorizes and
      gets NotPermittedError instead of overwriting the winner.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from database import init_db, make_engine, make_sessionmaker
from db_models import NotificationLocationRow, OrderRow, ParticipantRow, VenueMemberRow, VenueRow
from domain.action import Action
from domain.enums import ActionKind, Status, Urgency
from domain.errors import (
    ConflictError,
    DomainError,
    NotPermittedError,
    OrderNotFoundError,
    StoreError,
    VenueNotFoundError,
)
from domain.order import Assignment, Delivery, Order, Participant
from services.store import OrderStore

logger = logging.getLogger(__name__)

# Largest id a signed 64-bit INTEGER column can hold
MAX_STORED_ID = 2**63 - 1


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _profile(data: dict[str, Any] | None) -> Participant | None:
    return Participant.from_dict(data) if data else None


def row_to_order(row: OrderRow) -> Order:
    assigned = None
    if row.assignee_id is not None:
        assigned = Assignment(
            at=_utc(row.assigned_at),
            assignee_id=row.assignee_id,
            assignee=_profile(row.assignee),
        )
    delivered = None
    if row.delivered_by_id is not None:
        delivered = Delivery(
            by_id=row.delivered_by_id,
            by=_profile(row.delivered_by),
            at=_utc(row.delivered_at),
        )
    return Order(
        id=row.id,
        name=row.name,
        description=row.description,
        price=row.price,
        delivery_reward=row.delivery_reward,
        urgency=Urgency(row.urgency),
        created_at=_utc(row.created_at),
        published_at=_utc(row.published_at),
        customer=Participant.from_dict(row.customer),
        assigned=assigned,
        delivered=delivered,
        delivery_confirmed_at=_utc(row.delivery_confirmed_at),
        canceled_at=_utc(row.canceled_at),
    )


def apply_order_to_row(order: Order, row: OrderRow) -> None:
    """Copy every mutable order field onto the row."""
    row.name = order.name
    row.description = order.description
    row.price = order.price
    row.delivery_reward = order.delivery_reward
    row.urgency = order.urgency.value
    row.created_at = order.created_at
    row.published_at = order.published_at
    row.customer_id = order.customer.id
    row.customer = order.customer.to_dict()

    assigned = order.assigned
    row.assigned_at = assigned.at if assigned else None
    row.assignee_id = assigned.assignee_id if assigned else None
    row.assignee = assigned.assignee.to_dict() if assigned and assigned.assignee else None

    delivered = order.delivered
    row.delivered_at = delivered.at if delivered else None
    row.delivered_by_id = delivered.by_id if delivered else None
    row.delivered_by = delivered.by.to_dict() if delivered and delivered.by else None

    row.delivery_confirmed_at = order.delivery_confirmed_at
    row.canceled_at = order.canceled_at


class SqlStore(OrderStore):
    """Persistent store; one short-lived session per operation."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
        retry_limit: int = 3,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._engine = engine
        self._retry_limit = retry_limit

    @classmethod
    def from_url(cls, url: str, retry_limit: int = 3, **engine_kwargs) -> "SqlStore":
        engine = make_engine(url, **engine_kwargs)
        return cls(make_sessionmaker(engine), engine=engine, retry_limit=retry_limit)

    async def init(self) -> None:
        if self._engine is not None:
            await init_db(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def _run(self, operation: str, func, *args):
        """
        Run `func(session, *args)` in a fresh session.

        Domain errors pass through unchanged; backend failures are logged
        with detail and surface as an opaque StoreError.
        """
        try:
            async with self._sessionmaker() as session:
                return await func(session, *args)
        except DomainError:
            raise
        except StaleDataError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"SQL store {operation} failed: {e}", exc_info=True)
            raise StoreError(f"{operation}: {e.__class__.__name__}") from e

    # ── Orders ──────────────────────────────────────────────────────

    async def add_order(self, venue_id: int, order: Order) -> int:
        order_id = await self._run("add_order", self._add_order, venue_id, order)
        order.id = order_id
        logger.info(f"Added order {order_id} ({order.name!r}) to venue {venue_id}")
        return order_id

    async def _add_order(self, session: AsyncSession, venue_id: int, order: Order) -> int:
        if await session.get(VenueRow, venue_id) is None:
            raise VenueNotFoundError(venue_id)
        row = OrderRow(venue_id=venue_id)
        apply_order_to_row(order, row)
        session.add(row)
        await session.commit()
        return row.id

    async def get_order(self, venue_id: int, order_id: int) -> Order | None:
        return await self._run("get_order", self._get_order, venue_id, order_id)

    async def _get_order(self, session: AsyncSession, venue_id: int, order_id: int) -> Order | None:
        row = await self._load_row(session, venue_id, order_id)
        return row_to_order(row) if row is not None else None

    async def _load_row(self, session: AsyncSession, venue_id: int, order_id: int) -> OrderRow | None:
        if order_id > MAX_STORED_ID:
            return None
        res = await session.execute(
            select(OrderRow).where(OrderRow.id == order_id, OrderRow.venue_id == venue_id)
        )
        return res.scalar_one_or_none()

    async def orders_by_status(self, venue_id: int, status: Status) -> list[Order]:
        # status is derived, so filter after loading; venues hold few live orders
        orders = await self._run("orders_by_status", self._venue_orders, venue_id, None)
        return [o for o in orders if o.status == status]

    async def orders_submitted_by(self, venue_id: int, participant_id: int) -> list[Order]:
        return await self._run(
            "orders_submitted_by", self._venue_orders, venue_id, OrderRow.customer_id == participant_id,
        )

    async def active_assignments_to(self, venue_id: int, participant_id: int) -> list[Order]:
        orders = await self._run(
            "active_assignments_to", self._venue_orders, venue_id, OrderRow.assignee_id == participant_id,
        )
        return [o for o in orders if o.is_active_assignment()]

    async def _venue_orders(self, session: AsyncSession, venue_id: int, condition) -> list[Order]:
        if await session.get(VenueRow, venue_id) is None:
            raise VenueNotFoundError(venue_id)
        query = select(OrderRow).where(OrderRow.venue_id == venue_id)
        if condition is not None:
            query = query.where(condition)
        res = await session.execute(query.order_by(OrderRow.id))
        return [row_to_order(row) for row in res.scalars().all()]

    async def perform_action(
        self,
        actor: Participant,
        venue_id: int,
        action: Action,
    ) -> tuple[Status, Order | None]:
        logger.info(
            f"perform_action actor={actor.id} venue={venue_id} "
            f"order={action.order_id} action={action.kind.id}"
        )
        for attempt in range(1, self._retry_limit + 1):
            try:
                return await self._run("perform_action", self._perform_action, actor, venue_id, action)
            except StaleDataError:
                logger.info(
                    f"Order {action.order_id} changed concurrently "
                    f"(attempt {attempt}/{self._retry_limit}), retrying"
                )
        raise ConflictError(
            "The order is being changed by someone else, please try again",
            details={"order_id": action.order_id},
        )

    async def _perform_action(
        self,
        session: AsyncSession,
        actor: Participant,
        venue_id: int,
        action: Action,
    ) -> tuple[Status, Order | None]:
        row = await self._load_row(session, venue_id, action.order_id)
        if row is None:
            raise OrderNotFoundError(action.order_id)
        order = row_to_order(row)

        if action.kind is ActionKind.DELETE:
            if not order.is_action_permitted(actor.id, action.kind):
                raise NotPermittedError(
                    details={"order_id": order.id, "action": action.kind.id, "status": order.status.value},
                )
            prev_status = order.status
            await session.delete(row)
            await session.execute(
                delete(NotificationLocationRow).where(NotificationLocationRow.order_id == action.order_id)
            )
            await session.commit()
            logger.info(f"Deleted order {action.order_id} from venue {venue_id}")
            return prev_status, None

        prev_status = order.perform_action(actor, action)
        apply_order_to_row(order, row)
        await session.commit()
        logger.info(f"Order {order.id}: {prev_status.value} -> {order.status.value}")
        return prev_status, order

    # ── Participants ────────────────────────────────────────────────

    async def update_user(self, profile: Participant) -> None:
        await self._run("update_user", self._update_user, profile)

    async def _update_user(self, session: AsyncSession, profile: Participant) -> None:
        row = await session.get(ParticipantRow, profile.id)
        if row is None:
            row = ParticipantRow(id=profile.id)
            session.add(row)
        row.first_name = profile.first_name
        row.last_name = profile.last_name
        row.username = profile.username
        await session.commit()

    async def get_user(self, participant_id: int) -> Participant | None:
        return await self._run("get_user", self._get_user, participant_id)

    async def _get_user(self, session: AsyncSession, participant_id: int) -> Participant | None:
        row = await session.get(ParticipantRow, participant_id)
        if row is None:
            return None
        return Participant(
            id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            username=row.username,
        )

    # ── Venues & membership ─────────────────────────────────────────

    async def update_venue(self, venue_id: int, title: str | None = None) -> None:
        await self._run("update_venue", self._update_venue, venue_id, title)

    async def _update_venue(self, session: AsyncSession, venue_id: int, title: str | None) -> None:
        row = await session.get(VenueRow, venue_id)
        if row is None:
            logger.info(f"New venue {venue_id} ({title!r})")
            session.add(VenueRow(id=venue_id, title=title or ""))
        elif title is not None:
            row.title = title
        await session.commit()

    async def add_members(self, venue_id: int, participant_ids: list[int]) -> None:
        await self._run("add_members", self._add_members, venue_id, list(participant_ids))

    async def _add_members(self, session: AsyncSession, venue_id: int, participant_ids: list[int]) -> None:
        if await session.get(VenueRow, venue_id) is None:
            raise VenueNotFoundError(venue_id)
        res = await session.execute(
            select(VenueMemberRow.participant_id).where(VenueMemberRow.venue_id == venue_id)
        )
        existing = set(res.scalars().all())
        for participant_id in participant_ids:
            if participant_id not in existing:
                session.add(VenueMemberRow(venue_id=venue_id, participant_id=participant_id))
                existing.add(participant_id)
        await session.commit()

    async def remove_member(self, venue_id: int, participant_id: int) -> None:
        await self._run("remove_member", self._remove_member, venue_id, participant_id)

    async def _remove_member(self, session: AsyncSession, venue_id: int, participant_id: int) -> None:
        if await session.get(VenueRow, venue_id) is None:
            raise VenueNotFoundError(venue_id)
        await session.execute(
            delete(VenueMemberRow).where(
                VenueMemberRow.venue_id == venue_id,
                VenueMemberRow.participant_id == participant_id,
            )
        )
        await session.commit()

    async def venues_of(self, participant_id: int) -> list[tuple[int, str]]:
        return await self._run("venues_of", self._venues_of, participant_id)

    async def _venues_of(self, session: AsyncSession, participant_id: int) -> list[tuple[int, str]]:
        res = await session.execute(
            select(VenueRow.id, VenueRow.title)
            .join(VenueMemberRow, VenueMemberRow.venue_id == VenueRow.id)
            .where(VenueMemberRow.participant_id == participant_id)
            .order_by(VenueRow.id)
        )
        return [(venue_id, title) for venue_id, title in res.all()]

    # ── Notification locations ──────────────────────────────────────

    async def record_notification_location(self, order_id: int, channel_id: int, message_id: int) -> None:
        await self._run(
            "record_notification_location", self._record_notification_location,
            order_id, channel_id, message_id,
        )

    async def _record_notification_location(
        self, session: AsyncSession, order_id: int, channel_id: int, message_id: int,
    ) -> None:
        if order_id > MAX_STORED_ID:
            logger.warning(f"Not recording location for order {order_id}: no such order can exist")
            return
        res = await session.execute(
            select(NotificationLocationRow.id).where(
                NotificationLocationRow.order_id == order_id,
                NotificationLocationRow.channel_id == channel_id,
                NotificationLocationRow.message_id == message_id,
            )
        )
        if res.scalar_one_or_none() is None:
            session.add(NotificationLocationRow(order_id=order_id, channel_id=channel_id, message_id=message_id))
            await session.commit()

    async def notification_locations(self, order_id: int) -> list[tuple[int, int]]:
        return await self._run("notification_locations", self._notification_locations, order_id)

    async def _notification_locations(self, session: AsyncSession, order_id: int) -> list[tuple[int, int]]:
        if order_id > MAX_STORED_ID:
            return []
        res = await session.execute(
            select(NotificationLocationRow.channel_id, NotificationLocationRow.message_id)
            .where(NotificationLocationRow.order_id == order_id)
            .order_by(NotificationLocationRow.id)
        )
        return [(channel_id, message_id) for channel_id, message_id in res.all()]

    # ── Lifecycle ───────────────────────────────────────────────────

    async def stats(self) -> dict:
        return await self._run("stats", self._stats)

    async def _stats(self, session: AsyncSession) -> dict:
        venues = await session.scalar(select(func.count(VenueRow.id)))
        participants = await session.scalar(select(func.count(ParticipantRow.id)))
        orders = await session.scalar(select(func.count(OrderRow.id)))
        max_order_id = await session.scalar(select(func.max(OrderRow.id)))
        return {
            "backend": "sql",
            "max_order_id": max_order_id or 0,
            "venues": venues or 0,
            "participants": participants or 0,
            "orders": orders or 0,
        }
