"""
Tests for the session lifecycle graph and its role rules.
"""

import itertools
import pytest

from scouting.exceptions import InvalidTransition, SessionPermissionError
from scouting.models import SessionStatus, AuditAction
from scouting.services.context import Actor
from scouting.services.state_machine import (
    SESSION_TRANSITIONS,
    validate_transition,
    is_editable,
)


MANAGER = Actor(user_id=None, role='MANAGER')
SCOUT = Actor(user_id=None, role='SCOUT')

ALLOWED = {
    (SessionStatus.NEW, SessionStatus.IN_PROGRESS): AuditAction.STARTED,
    (SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS): AuditAction.STARTED,
    (SessionStatus.IN_PROGRESS, SessionStatus.SUBMITTED): AuditAction.SUBMITTED,
    (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED): AuditAction.COMPLETED,
    (SessionStatus.SUBMITTED, SessionStatus.COMPLETED): AuditAction.COMPLETED,
    (SessionStatus.COMPLETED, SessionStatus.IN_PROGRESS): AuditAction.REOPENED,
}


class TestTransitionGraph:

    @pytest.mark.parametrize('edge,action', ALLOWED.items())
    def test_graph_edges_return_audit_action(self, edge, action):
        current, target = edge
        assert validate_transition(current, target, MANAGER) == action

    def test_every_other_edge_is_rejected(self):
        statuses = SessionStatus.values
        for current, target in itertools.product(statuses, statuses):
            if (current, target) in ALLOWED:
                continue
            with pytest.raises(InvalidTransition):
                validate_transition(current, target, MANAGER)

    def test_graph_table_matches_allowed_edges(self):
        edges = {
            (current, target)
            for current, targets in SESSION_TRANSITIONS.items()
            for target in targets
        }
        assert edges == set(ALLOWED)


class TestRoleRules:

    def test_scout_cannot_complete(self):
        with pytest.raises(SessionPermissionError):
            validate_transition(SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, SCOUT)

    def test_scout_cannot_reopen(self):
        with pytest.raises(SessionPermissionError):
            validate_transition(SessionStatus.COMPLETED, SessionStatus.IN_PROGRESS, SCOUT)

    def test_scout_can_start_and_submit(self):
        assert validate_transition(SessionStatus.NEW, SessionStatus.IN_PROGRESS, SCOUT) == AuditAction.STARTED
        assert validate_transition(SessionStatus.IN_PROGRESS, SessionStatus.SUBMITTED, SCOUT) == AuditAction.SUBMITTED

    @pytest.mark.parametrize('role', ['SUPER_ADMIN', 'FARM_ADMIN', 'MANAGER'])
    def test_privileged_roles_can_complete(self, role):
        actor = Actor(user_id=None, role=role)
        assert validate_transition(SessionStatus.SUBMITTED, SessionStatus.COMPLETED, actor) == AuditAction.COMPLETED

    def test_invalid_edge_wins_over_permission(self):
        with pytest.raises(InvalidTransition):
            validate_transition(SessionStatus.NEW, SessionStatus.COMPLETED, SCOUT)


def test_editable_states():
    assert is_editable(SessionStatus.NEW)
    assert is_editable(SessionStatus.SCHEDULED)
    assert is_editable(SessionStatus.IN_PROGRESS)
    assert not is_editable(SessionStatus.SUBMITTED)
    assert not is_editable(SessionStatus.COMPLETED)
