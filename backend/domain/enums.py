"""
Domain enums: order lifecycle, participant roles, action catalog, urgency.

Role and status whitelists are plain dict tables keyed by every enum member.
tests/test_enums.py checks they stay exhaustive whenever a member is added.
"""

from enum import Enum


class Status(str, Enum):
    """Lifecycle stage of an order. Always derived, never stored."""
    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"
    ASSIGNED = "assigned"
    MARKED_AS_DELIVERED = "marked_as_delivered"
    DELIVERY_CONFIRMED = "delivery_confirmed"

    @property
    def human_name(self) -> str:
        return _STATUS_NAMES[self]


class ActionKind(str, Enum):
    """State-transition requests. The value is the stable short id used in tokens."""
    PUBLISH = "publish"
    CANCEL = "cancel"
    ASSIGN_TO_ME = "assign_to_me"
    UNASSIGN = "unassign"
    MARK_AS_DELIVERED = "mark_as_delivered"
    CONFIRM_DELIVERY = "confirm_delivery"
    DELETE = "delete"

    @property
    def id(self) -> str:
        return self.value

    @property
    def human_name(self) -> str:
        return _ACTION_NAMES[self]

    @classmethod
    def from_id(cls, action_id: str) -> "ActionKind | None":
        """Exact-match lookup; foreign ids return None."""
        for kind in cls:
            if kind.value == action_id:
                return kind
        return None


class Role(Enum):
    """A participant's relationship to one specific order."""
    OWNER = "owner"
    ASSIGNEE = "assignee"
    UNRELATED_USER = "unrelated_user"

    def allowed_actions(self) -> frozenset[ActionKind]:
        return ROLE_ALLOWED_ACTIONS[self]


class Urgency(str, Enum):
    """How soon the customer needs the items."""
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    WHENEVER = "whenever"

    @property
    def human_name(self) -> str:
        return _URGENCY_NAMES[self]

    @classmethod
    def from_id(cls, urgency_id: str) -> "Urgency | None":
        for urgency in cls:
            if urgency.value == urgency_id:
                return urgency
        return None


_STATUS_NAMES = {
    Status.UNPUBLISHED: "Not published",
    Status.PUBLISHED: "Published",
    Status.ASSIGNED: "Assigned",
    Status.MARKED_AS_DELIVERED: "Marked as delivered",
    Status.DELIVERY_CONFIRMED: "Delivered",
}

_ACTION_NAMES = {
    ActionKind.PUBLISH: "Publish this order",
    ActionKind.CANCEL: "Cancel this order",
    ActionKind.ASSIGN_TO_ME: "Take this order",
    ActionKind.UNASSIGN: "Unassign this order",
    ActionKind.MARK_AS_DELIVERED: "Mark as delivered",
    ActionKind.CONFIRM_DELIVERY: "Confirm that I've received the items",
    ActionKind.DELETE: "Delete this order",
}

_URGENCY_NAMES = {
    Urgency.TODAY: "Today",
    Urgency.THIS_WEEK: "Some time this week",
    Urgency.THIS_MONTH: "Some time this month",
    Urgency.WHENEVER: "Some day",
}

# ── Authorization tables ────────────────────────────────────────────

ROLE_ALLOWED_ACTIONS: dict[Role, frozenset[ActionKind]] = {
    Role.OWNER: frozenset({
        ActionKind.PUBLISH,
        ActionKind.CANCEL,
        ActionKind.CONFIRM_DELIVERY,
        ActionKind.DELETE,
    }),
    Role.ASSIGNEE: frozenset({
        ActionKind.UNASSIGN,
        ActionKind.MARK_AS_DELIVERED,
    }),
    Role.UNRELATED_USER: frozenset({
        ActionKind.ASSIGN_TO_ME,
    }),
}

STATUS_AVAILABLE_ACTIONS: dict[Status, frozenset[ActionKind]] = {
    Status.UNPUBLISHED: frozenset({ActionKind.PUBLISH, ActionKind.DELETE}),
    Status.PUBLISHED: frozenset({ActionKind.ASSIGN_TO_ME, ActionKind.CANCEL}),
    Status.ASSIGNED: frozenset({
        ActionKind.UNASSIGN,
        ActionKind.MARK_AS_DELIVERED,
        ActionKind.CONFIRM_DELIVERY,
    }),
    Status.MARKED_AS_DELIVERED: frozenset({ActionKind.CONFIRM_DELIVERY}),
    Status.DELIVERY_CONFIRMED: frozenset({ActionKind.DELETE}),
}

# Stable ordering for rendering action lists (buttons, API responses)
ACTION_DISPLAY_ORDER: tuple[ActionKind, ...] = tuple(ActionKind)
