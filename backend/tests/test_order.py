"""
Tests for the Order aggregate — derived status, roles, transitions.

Tests: status priority, role_of, permitted_actions, perform_action happy
and denied paths, snapshots, serialization.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import copy
import pytest
from datetime import datetime, timezone

from domain.action import Action
from domain.enums import ActionKind, Role, Status, Urgency
from domain.errors import NotPermittedError
from domain.order import Assignment, Delivery, Order, Participant

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def act(order: Order, actor: Participant, kind: ActionKind) -> Status:
    return order.perform_action(actor, Action(order.id, kind))


@pytest.fixture
def order(draft) -> Order:
    draft.id = 42
    return draft


class TestStatus:
    """Status is derived by priority from the evidence fields."""

    @pytest.mark.unit
    def test_new_order_is_unpublished(self, order):
        assert order.status is Status.UNPUBLISHED

    @pytest.mark.unit
    def test_published(self, order):
        order.published_at = NOW
        assert order.status is Status.PUBLISHED

    @pytest.mark.unit
    def test_assigned(self, order):
        order.published_at = NOW
        order.assigned = Assignment(at=NOW, assignee_id=2)
        assert order.status is Status.ASSIGNED

    @pytest.mark.unit
    def test_delivered_beats_assigned(self, order):
        order.assigned = Assignment(at=NOW, assignee_id=2)
        order.delivered = Delivery(by_id=2, by=None, at=NOW)
        assert order.status is Status.MARKED_AS_DELIVERED

    @pytest.mark.unit
    def test_confirmed_beats_delivered(self, order):
        order.delivered = Delivery(by_id=2, by=None, at=NOW)
        order.delivery_confirmed_at = NOW
        assert order.status is Status.DELIVERY_CONFIRMED

    @pytest.mark.unit
    def test_cancellation_has_top_priority(self, order):
        order.published_at = NOW
        order.delivery_confirmed_at = NOW
        order.canceled_at = NOW
        assert order.status is Status.UNPUBLISHED


class TestRoles:
    """Tests for role_of and the permitted-action intersection."""

    @pytest.mark.unit
    def test_roles(self, order, owner, courier, bystander):
        order.assigned = Assignment(at=NOW, assignee_id=courier.id)
        assert order.role_of(owner.id) is Role.OWNER
        assert order.role_of(courier.id) is Role.ASSIGNEE
        assert order.role_of(bystander.id) is Role.UNRELATED_USER

    @pytest.mark.unit
    def test_owner_actions_on_draft(self, order, owner):
        assert order.permitted_actions(owner.id) == [ActionKind.PUBLISH, ActionKind.DELETE]

    @pytest.mark.unit
    def test_bystander_cannot_touch_draft(self, order, bystander):
        assert order.permitted_actions(bystander.id) == []

    @pytest.mark.unit
    def test_public_actions_of_published_order(self, order):
        order.published_at = NOW
        assert order.public_actions() == [ActionKind.ASSIGN_TO_ME]

    @pytest.mark.unit
    def test_role_follows_current_assignment(self, order, courier, bystander):
        order.published_at = NOW
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        act(order, courier, ActionKind.UNASSIGN)
        # courier is a bystander again and may re-take it, as may anyone
        assert order.role_of(courier.id) is Role.UNRELATED_USER
        assert order.is_action_permitted(bystander.id, ActionKind.ASSIGN_TO_ME)


class TestTransitions:
    """Tests for Order.perform_action."""

    @pytest.mark.unit
    def test_happy_path(self, order, owner, courier):
        seen = [order.status]
        assert act(order, owner, ActionKind.PUBLISH) is Status.UNPUBLISHED
        seen.append(order.status)
        assert act(order, courier, ActionKind.ASSIGN_TO_ME) is Status.PUBLISHED
        seen.append(order.status)
        assert act(order, courier, ActionKind.MARK_AS_DELIVERED) is Status.ASSIGNED
        seen.append(order.status)
        assert act(order, owner, ActionKind.CONFIRM_DELIVERY) is Status.MARKED_AS_DELIVERED
        seen.append(order.status)
        assert seen == [
            Status.UNPUBLISHED,
            Status.PUBLISHED,
            Status.ASSIGNED,
            Status.MARKED_AS_DELIVERED,
            Status.DELIVERY_CONFIRMED,
        ]

    @pytest.mark.unit
    def test_confirm_directly_from_assigned(self, order, owner, courier):
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        assert act(order, owner, ActionKind.CONFIRM_DELIVERY) is Status.ASSIGNED
        assert order.status is Status.DELIVERY_CONFIRMED

    @pytest.mark.unit
    def test_unassign_returns_to_published(self, order, owner, courier):
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        act(order, courier, ActionKind.UNASSIGN)
        assert order.status is Status.PUBLISHED
        assert order.assigned is None

    @pytest.mark.unit
    def test_cancel_returns_to_unpublished(self, order, owner):
        act(order, owner, ActionKind.PUBLISH)
        act(order, owner, ActionKind.CANCEL)
        assert order.status is Status.UNPUBLISHED
        assert order.canceled_at is not None

    @pytest.mark.unit
    def test_republish_clears_cancellation(self, order, owner, courier):
        act(order, owner, ActionKind.PUBLISH)
        act(order, owner, ActionKind.CANCEL)
        act(order, owner, ActionKind.PUBLISH)
        assert order.canceled_at is None
        assert order.status is Status.PUBLISHED
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        act(order, owner, ActionKind.CONFIRM_DELIVERY)
        assert order.status is Status.DELIVERY_CONFIRMED

    @pytest.mark.unit
    def test_assignment_snapshots_actor(self, order, owner, courier):
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        assert order.assigned.assignee_id == courier.id
        assert order.assigned.assignee == courier
        assert order.assigned.assignee is not courier

    @pytest.mark.unit
    def test_delivery_records_actor(self, order, owner, courier):
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        act(order, courier, ActionKind.MARK_AS_DELIVERED)
        assert order.delivered.by_id == courier.id
        assert order.delivered.by == courier

    @pytest.mark.unit
    def test_owner_cannot_take_own_order(self, order, owner):
        act(order, owner, ActionKind.PUBLISH)
        with pytest.raises(NotPermittedError):
            act(order, owner, ActionKind.ASSIGN_TO_ME)

    @pytest.mark.unit
    def test_denied_action_leaves_order_untouched(self, order, owner, bystander):
        act(order, owner, ActionKind.PUBLISH)
        before = copy.deepcopy(order)
        with pytest.raises(NotPermittedError) as exc:
            act(order, bystander, ActionKind.CANCEL)
        assert order == before
        assert exc.value.status_code == 403
        assert exc.value.details["action"] == "cancel"

    @pytest.mark.unit
    def test_bystander_cannot_mark_delivered(self, order, owner, courier, bystander):
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        with pytest.raises(NotPermittedError):
            act(order, bystander, ActionKind.MARK_AS_DELIVERED)

    @pytest.mark.unit
    def test_delete_is_rejected(self, order, owner):
        with pytest.raises(ValueError):
            act(order, owner, ActionKind.DELETE)


class TestSerialization:
    """Tests for clone / to_dict / from_dict."""

    @pytest.mark.unit
    def test_clone_is_independent(self, order, owner):
        clone = order.clone()
        act(clone, owner, ActionKind.PUBLISH)
        assert order.status is Status.UNPUBLISHED

    @pytest.mark.unit
    def test_dict_roundtrip_of_delivered_order(self, order, owner, courier):
        order.urgency = Urgency.TODAY
        act(order, owner, ActionKind.PUBLISH)
        act(order, courier, ActionKind.ASSIGN_TO_ME)
        act(order, courier, ActionKind.MARK_AS_DELIVERED)
        restored = Order.from_dict(order.to_dict())
        assert restored == order
        assert restored.status is Status.MARKED_AS_DELIVERED

    @pytest.mark.unit
    def test_naive_timestamps_are_read_as_utc(self, order):
        data = order.to_dict()
        data["created_at"] = "2024-05-01T12:00:00"
        assert Order.from_dict(data).created_at == NOW

    @pytest.mark.unit
    def test_display_name(self, owner, courier):
        assert owner.display_name == "@olga Olga Owner"
        assert courier.display_name == "Carl"
