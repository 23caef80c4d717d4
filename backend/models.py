"""
Pydantic models for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.action import Action
from domain.enums import ActionKind, Status, Urgency
from domain.order import Order, Participant


class ApiBase(BaseModel):
    """Shared base — allows construction by Python name or camelCase alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Participants ────────────────────────────────────────────────────

class ParticipantProfile(ApiBase):
    """Profile fields as reported by the chat platform."""
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=255)
    username: Optional[str] = Field(None, max_length=255)

    def to_domain(self, participant_id: int) -> Participant:
        return Participant(
            id=participant_id,
            first_name=self.first_name,
            last_name=self.last_name,
            username=self.username,
        )


class ParticipantRef(ParticipantProfile):
    """Profile plus the platform id, for payloads that name several participants."""
    id: int

    def to_participant(self) -> Participant:
        return self.to_domain(self.id)


class ParticipantResponse(ApiBase):
    id: int
    first_name: str = Field(..., alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    username: Optional[str] = None
    display_name: str = Field(..., alias="displayName")

    @classmethod
    def from_participant(cls, participant: Participant) -> "ParticipantResponse":
        return cls(
            id=participant.id,
            first_name=participant.first_name,
            last_name=participant.last_name,
            username=participant.username,
            display_name=participant.display_name,
        )


# ── Venues ──────────────────────────────────────────────────────────

class VenueUpdateRequest(ApiBase):
    title: str = Field("", max_length=255)


class AddMembersRequest(ApiBase):
    participant_ids: List[int] = Field(..., alias="participantIds", min_length=1)


class VenueResponse(ApiBase):
    id: int
    title: str


# ── Orders ──────────────────────────────────────────────────────────

class OrderCreateRequest(ApiBase):
    """Draft a new order; it starts unpublished."""
    customer_id: int = Field(..., alias="customerId", description="Submitting participant")
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    price: int = Field(0, ge=0, description="Goods price; 0 if not applicable")
    delivery_reward: int = Field(0, alias="deliveryReward", ge=0)
    urgency: Urgency = Urgency.WHENEVER


class ActionOption(ApiBase):
    """One button: what it does and the token that triggers it."""
    id: str
    name: str
    token: str

    @classmethod
    def for_order(cls, order: Order, kind: ActionKind) -> "ActionOption":
        return cls(id=kind.id, name=kind.human_name, token=Action(order.id, kind).encode())


class OrderResponse(ApiBase):
    id: int
    name: str
    description: str
    price: int
    delivery_reward: int = Field(..., alias="deliveryReward")
    urgency: Urgency
    status: Status
    status_name: str = Field(..., alias="statusName")
    customer: ParticipantResponse
    assignee_id: Optional[int] = Field(None, alias="assigneeId")
    assignee: Optional[ParticipantResponse] = None
    created_at: datetime = Field(..., alias="createdAt")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    assigned_at: Optional[datetime] = Field(None, alias="assignedAt")
    delivered_at: Optional[datetime] = Field(None, alias="deliveredAt")
    delivery_confirmed_at: Optional[datetime] = Field(None, alias="deliveryConfirmedAt")
    canceled_at: Optional[datetime] = Field(None, alias="canceledAt")
    public_actions: List[ActionOption] = Field(default_factory=list, alias="publicActions")

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        assignee = None
        if order.assigned is not None and order.assigned.assignee is not None:
            assignee = ParticipantResponse.from_participant(order.assigned.assignee)
        return cls(
            id=order.id,
            name=order.name,
            description=order.description,
            price=order.price,
            delivery_reward=order.delivery_reward,
            urgency=order.urgency,
            status=order.status,
            status_name=order.status.human_name,
            customer=ParticipantResponse.from_participant(order.customer),
            assignee_id=order.assignee_id,
            assignee=assignee,
            created_at=order.created_at,
            published_at=order.published_at,
            assigned_at=order.assigned.at if order.assigned else None,
            delivered_at=order.delivered.at if order.delivered else None,
            delivery_confirmed_at=order.delivery_confirmed_at,
            canceled_at=order.canceled_at,
            public_actions=[ActionOption.for_order(order, kind) for kind in order.public_actions()],
        )


class OrderActionsResponse(ApiBase):
    order_id: int = Field(..., alias="orderId")
    participant_id: int = Field(..., alias="participantId")
    role: str
    status: Status
    actions: List[ActionOption]


# ── Actions ─────────────────────────────────────────────────────────

class ActionRequest(ApiBase):
    """A pressed button: who pressed it, its callback data, and where."""
    actor: ParticipantRef
    token: str = Field(..., min_length=1, max_length=64)
    venue_id: Optional[int] = Field(
        None,
        alias="venueId",
        description="Set when the press happened inside a venue; omit for private chats",
    )


class ActionResponse(ApiBase):
    action: str
    action_name: str = Field(..., alias="actionName")
    order_id: int = Field(..., alias="orderId")
    previous_status: Status = Field(..., alias="previousStatus")
    status: Optional[Status] = None
    deleted: bool = False
    order: Optional[OrderResponse] = None


# ── Notification locations ──────────────────────────────────────────

class NotificationLocation(ApiBase):
    channel_id: int = Field(..., alias="channelId")
    message_id: int = Field(..., alias="messageId")


# ── Inbound interactions ────────────────────────────────────────────

class InteractionEvent(ApiBase):
    """Anything the chat platform reports; feeds the membership index."""
    sender: Optional[ParticipantRef] = None
    venue_id: Optional[int] = Field(None, alias="venueId")
    venue_title: Optional[str] = Field(None, alias="venueTitle", max_length=255)
    joined: List[ParticipantRef] = Field(default_factory=list)
    left: Optional[ParticipantRef] = None
