"""
Order aggregate: identity, content, timing and participant references.

The order owns its transition logic and the authorization check. Status is a
computed property over the timestamp fields and is never stored.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from domain.action import Action
from domain.enums import (
    ACTION_DISPLAY_ORDER,
    ROLE_ALLOWED_ACTIONS,
    STATUS_AVAILABLE_ACTIONS,
    ActionKind,
    Role,
    Status,
    Urgency,
)
from domain.errors import NotPermittedError

OrderId = int
ParticipantId = int


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_in(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Participant:
    """Profile of any identified actor. Last write wins on every update."""
    id: ParticipantId
    first_name: str
    last_name: str | None = None
    username: str | None = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}" if self.last_name else self.first_name
        return f"@{self.username} {name}" if self.username else name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Participant:
        return cls(
            id=int(data["id"]),
            first_name=data["first_name"],
            last_name=data.get("last_name"),
            username=data.get("username"),
        )


@dataclass
class Assignment:
    at: datetime
    assignee_id: ParticipantId
    # Snapshot of the assignee profile, if we had one at assignment time
    assignee: Participant | None = None


@dataclass
class Delivery:
    by_id: ParticipantId
    by: Participant | None
    at: datetime


@dataclass
class Order:
    """A request for delivery posted by a customer into one venue."""
    name: str
    customer: Participant
    description: str = ""
    # Both amounts are non-negative; zero means "not applicable"
    price: int = 0
    delivery_reward: int = 0
    urgency: Urgency = Urgency.WHENEVER
    created_at: datetime = field(default_factory=utcnow)
    # None until the store persists the order
    id: OrderId | None = None
    published_at: datetime | None = None
    assigned: Assignment | None = None
    delivered: Delivery | None = None
    delivery_confirmed_at: datetime | None = None
    canceled_at: datetime | None = None

    # ── Derived state ───────────────────────────────────────────────

    @property
    def status(self) -> Status:
        # Priority order, not mutual exclusion: later fields may coexist with earlier ones
        if self.canceled_at is not None:
            return Status.UNPUBLISHED
        if self.delivery_confirmed_at is not None:
            return Status.DELIVERY_CONFIRMED
        if self.delivered is not None:
            return Status.MARKED_AS_DELIVERED
        if self.assigned is not None:
            return Status.ASSIGNED
        if self.published_at is not None:
            return Status.PUBLISHED
        return Status.UNPUBLISHED

    @property
    def assignee_id(self) -> ParticipantId | None:
        return self.assigned.assignee_id if self.assigned is not None else None

    def is_active_assignment(self) -> bool:
        """True if assigned and not completed yet."""
        return self.status in (Status.ASSIGNED, Status.MARKED_AS_DELIVERED)

    def role_of(self, participant_id: ParticipantId) -> Role:
        if self.customer.id == participant_id:
            return Role.OWNER
        if self.assigned is not None and self.assigned.assignee_id == participant_id:
            return Role.ASSIGNEE
        return Role.UNRELATED_USER

    def available_actions(self) -> frozenset[ActionKind]:
        """Actions the order exposes in its current status, regardless of who asks."""
        return STATUS_AVAILABLE_ACTIONS[self.status]

    def permitted_actions(self, participant_id: ParticipantId) -> list[ActionKind]:
        """Intersection of the participant's role whitelist and the status whitelist."""
        allowed = ROLE_ALLOWED_ACTIONS[self.role_of(participant_id)] & self.available_actions()
        return [kind for kind in ACTION_DISPLAY_ORDER if kind in allowed]

    def public_actions(self) -> list[ActionKind]:
        """What a bystander may do; used when rendering the order for the whole venue."""
        allowed = ROLE_ALLOWED_ACTIONS[Role.UNRELATED_USER] & self.available_actions()
        return [kind for kind in ACTION_DISPLAY_ORDER if kind in allowed]

    def is_action_permitted(self, participant_id: ParticipantId, kind: ActionKind) -> bool:
        return kind in self.permitted_actions(participant_id)

    # ── Transitions ─────────────────────────────────────────────────

    def perform_action(self, actor: Participant, action: Action) -> Status:
        """
        Apply `action` on behalf of `actor` and return the status before the change.

        Authorization is re-derived from the current fields on every call.
        Delete is a structural removal handled by the store and must not reach here.
        """
        if action.kind is ActionKind.DELETE:
            raise ValueError("Delete must be handled by the store, not by Order.perform_action")

        if not self.is_action_permitted(actor.id, action.kind):
            raise NotPermittedError(
                details={
                    "order_id": self.id,
                    "action": action.kind.id,
                    "status": self.status.value,
                },
            )

        prev_status = self.status
        now = utcnow()

        if action.kind is ActionKind.PUBLISH:
            self.published_at = now
            # Re-publishing a cancelled order must make it visible again
            self.canceled_at = None
        elif action.kind is ActionKind.CANCEL:
            self.canceled_at = now
        elif action.kind is ActionKind.ASSIGN_TO_ME:
            self.assigned = Assignment(at=now, assignee_id=actor.id, assignee=copy.deepcopy(actor))
        elif action.kind is ActionKind.UNASSIGN:
            self.assigned = None
        elif action.kind is ActionKind.MARK_AS_DELIVERED:
            self.delivered = Delivery(by_id=actor.id, by=copy.deepcopy(actor), at=now)
        elif action.kind is ActionKind.CONFIRM_DELIVERY:
            self.delivery_confirmed_at = now

        return prev_status

    # ── Copying / serialization ─────────────────────────────────────

    def clone(self) -> Order:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        assigned = None
        if self.assigned is not None:
            assigned = {
                "at": _dt_out(self.assigned.at),
                "assignee_id": self.assigned.assignee_id,
                "assignee": self.assigned.assignee.to_dict() if self.assigned.assignee else None,
            }
        delivered = None
        if self.delivered is not None:
            delivered = {
                "by_id": self.delivered.by_id,
                "by": self.delivered.by.to_dict() if self.delivered.by else None,
                "at": _dt_out(self.delivered.at),
            }
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "delivery_reward": self.delivery_reward,
            "urgency": self.urgency.value,
            "created_at": _dt_out(self.created_at),
            "published_at": _dt_out(self.published_at),
            "customer": self.customer.to_dict(),
            "assigned": assigned,
            "delivered": delivered,
            "delivery_confirmed_at": _dt_out(self.delivery_confirmed_at),
            "canceled_at": _dt_out(self.canceled_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Order:
        assigned = None
        if data.get("assigned"):
            raw = data["assigned"]
            assigned = Assignment(
                at=_dt_in(raw["at"]),
                assignee_id=int(raw["assignee_id"]),
                assignee=Participant.from_dict(raw["assignee"]) if raw.get("assignee") else None,
            )
        delivered = None
        if data.get("delivered"):
            raw = data["delivered"]
            delivered = Delivery(
                by_id=int(raw["by_id"]),
                by=Participant.from_dict(raw["by"]) if raw.get("by") else None,
                at=_dt_in(raw["at"]),
            )
        return cls(
            id=data.get("id"),
            name=data["name"],
            description=data.get("description", ""),
            price=int(data.get("price", 0)),
            delivery_reward=int(data.get("delivery_reward", 0)),
            urgency=Urgency(data.get("urgency", Urgency.WHENEVER.value)),
            created_at=_dt_in(data["created_at"]),
            published_at=_dt_in(data.get("published_at")),
            customer=Participant.from_dict(data["customer"]),
            assigned=assigned,
            delivered=delivered,
            delivery_confirmed_at=_dt_in(data.get("delivery_confirmed_at")),
            canceled_at=_dt_in(data.get("canceled_at")),
        )
