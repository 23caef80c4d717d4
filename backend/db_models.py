"""
SQLAlchemy ORM models for the SQL order store.

Tables:
    participants            — last seen profile of every participant
    venues                  — public chats orders are published into
    venue_members           — who is in which venue (drives venue resolution)
    orders                  — one row per order, versioned for optimistic concurrency
    notification_locations  — outbound messages that displayed an order
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, BigInteger, String, DateTime, Text, ForeignKey, JSON,
    UniqueConstraint, Index,
)

from database import Base


# 64-bit everywhere; SQLite needs plain INTEGER for an AUTOINCREMENT rowid alias
OrderId = BigInteger().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ParticipantRow(Base):
    """Participant profiles, keyed by the transport's user id."""
    __tablename__ = "participants"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    first_name = Column(String(200), nullable=False)
    last_name = Column(String(200), nullable=True)
    username = Column(String(100), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class VenueRow(Base):
    """Public chats seen by the service."""
    __tablename__ = "venues"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String(255), nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class VenueMemberRow(Base):
    """Membership set; `id` preserves insertion order."""
    __tablename__ = "venue_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(BigInteger, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("venue_id", "participant_id", name="uq_venue_members_venue_participant"),
    )


class OrderRow(Base):
    """
    Orders. `version` is bumped on every UPDATE/DELETE and checked in the
    WHERE clause, so a write based on a stale read affects zero rows.
    """
    __tablename__ = "orders"

    id = Column(OrderId, primary_key=True, autoincrement=True)
    venue_id = Column(BigInteger, ForeignKey("venues.id"), nullable=False, index=True)
    name = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(BigInteger, nullable=False, default=0)
    delivery_reward = Column(BigInteger, nullable=False, default=0)
    urgency = Column(String(20), nullable=False, default="whenever")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    published_at = Column(DateTime(timezone=True), nullable=True)

    customer_id = Column(BigInteger, nullable=False, index=True)
    customer = Column(JSON, nullable=False)  # profile snapshot at submission

    assigned_at = Column(DateTime(timezone=True), nullable=True)
    assignee_id = Column(BigInteger, nullable=True, index=True)
    assignee = Column(JSON, nullable=True)

    delivered_at = Column(DateTime(timezone=True), nullable=True)
    delivered_by_id = Column(BigInteger, nullable=True)
    delivered_by = Column(JSON, nullable=True)

    delivery_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # For "orders submitted by X in venue V"
        Index("ix_orders_venue_customer", "venue_id", "customer_id"),
        # For "active assignments of X in venue V"
        Index("ix_orders_venue_assignee", "venue_id", "assignee_id"),
        # Ids are never reused, even after the highest order is deleted
        {"sqlite_autoincrement": True},
    )


class NotificationLocationRow(Base):
    """Where an order was displayed, so the message can be edited or retracted."""
    __tablename__ = "notification_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(OrderId, nullable=False, index=True)
    channel_id = Column(BigInteger, nullable=False)
    message_id = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("order_id", "channel_id", "message_id", name="uq_notification_location"),
    )
