"""
Tests for domain enums and the authorization tables.

Tests: exhaustive role/status tables, the permitted-action intersection,
action ids, human-readable names.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest

from domain.enums import (
    ACTION_DISPLAY_ORDER,
    ROLE_ALLOWED_ACTIONS,
    STATUS_AVAILABLE_ACTIONS,
    ActionKind,
    Role,
    Status,
    Urgency,
)

A = ActionKind

# Expected role ∩ status, written out by hand
EXPECTED_PERMITTED = {
    (Role.OWNER, Status.UNPUBLISHED): {A.PUBLISH, A.DELETE},
    (Role.OWNER, Status.PUBLISHED): {A.CANCEL},
    (Role.OWNER, Status.ASSIGNED): {A.CONFIRM_DELIVERY},
    (Role.OWNER, Status.MARKED_AS_DELIVERED): {A.CONFIRM_DELIVERY},
    (Role.OWNER, Status.DELIVERY_CONFIRMED): {A.DELETE},
    (Role.ASSIGNEE, Status.UNPUBLISHED): set(),
    (Role.ASSIGNEE, Status.PUBLISHED): set(),
    (Role.ASSIGNEE, Status.ASSIGNED): {A.UNASSIGN, A.MARK_AS_DELIVERED},
    (Role.ASSIGNEE, Status.MARKED_AS_DELIVERED): set(),
    (Role.ASSIGNEE, Status.DELIVERY_CONFIRMED): set(),
    (Role.UNRELATED_USER, Status.UNPUBLISHED): set(),
    (Role.UNRELATED_USER, Status.PUBLISHED): {A.ASSIGN_TO_ME},
    (Role.UNRELATED_USER, Status.ASSIGNED): set(),
    (Role.UNRELATED_USER, Status.MARKED_AS_DELIVERED): set(),
    (Role.UNRELATED_USER, Status.DELIVERY_CONFIRMED): set(),
}


class TestTables:
    """The whitelists cover every enum member."""

    @pytest.mark.unit
    def test_every_role_has_whitelist(self):
        assert set(ROLE_ALLOWED_ACTIONS) == set(Role)

    @pytest.mark.unit
    def test_every_status_has_whitelist(self):
        assert set(STATUS_AVAILABLE_ACTIONS) == set(Status)

    @pytest.mark.unit
    def test_role_whitelists(self):
        assert Role.OWNER.allowed_actions() == {A.PUBLISH, A.CANCEL, A.CONFIRM_DELIVERY, A.DELETE}
        assert Role.ASSIGNEE.allowed_actions() == {A.UNASSIGN, A.MARK_AS_DELIVERED}
        assert Role.UNRELATED_USER.allowed_actions() == {A.ASSIGN_TO_ME}

    @pytest.mark.unit
    def test_every_action_reachable_by_some_role(self):
        covered = set().union(*ROLE_ALLOWED_ACTIONS.values())
        assert covered == set(ActionKind)

    @pytest.mark.unit
    @pytest.mark.parametrize("role,status", sorted(EXPECTED_PERMITTED, key=lambda k: (k[0].value, k[1].value)))
    def test_intersection(self, role, status):
        permitted = ROLE_ALLOWED_ACTIONS[role] & STATUS_AVAILABLE_ACTIONS[status]
        assert permitted == EXPECTED_PERMITTED[(role, status)]

    @pytest.mark.unit
    def test_display_order_covers_all_actions_once(self):
        assert len(ACTION_DISPLAY_ORDER) == len(set(ACTION_DISPLAY_ORDER)) == len(ActionKind)


class TestActionKind:
    """Tests for action ids and lookup."""

    @pytest.mark.unit
    def test_ids_are_unique(self):
        ids = [kind.id for kind in ActionKind]
        assert len(ids) == len(set(ids))

    @pytest.mark.unit
    def test_ids_have_no_spaces(self):
        """Ids travel inside space-separated tokens."""
        for kind in ActionKind:
            assert " " not in kind.id

    @pytest.mark.unit
    @pytest.mark.parametrize("kind", list(ActionKind))
    def test_from_id_roundtrip(self, kind):
        assert ActionKind.from_id(kind.id) is kind

    @pytest.mark.unit
    @pytest.mark.parametrize("action_id", ["", "Publish", "publish ", "assign", "remove"])
    def test_from_id_rejects_unknown(self, action_id):
        assert ActionKind.from_id(action_id) is None

    @pytest.mark.unit
    def test_every_action_has_human_name(self):
        for kind in ActionKind:
            assert kind.human_name


class TestStatusAndUrgency:
    """Tests for display names and urgency lookup."""

    @pytest.mark.unit
    def test_every_status_has_human_name(self):
        for status in Status:
            assert status.human_name

    @pytest.mark.unit
    def test_urgency_from_id(self):
        assert Urgency.from_id("today") is Urgency.TODAY
        assert Urgency.from_id("tomorrow") is None

    @pytest.mark.unit
    def test_status_values_are_strings(self):
        assert Status.PUBLISHED == "published"
