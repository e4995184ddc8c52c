"""
Session lifecycle graph.

    NEW / SCHEDULED -> IN_PROGRESS -> SUBMITTED -> COMPLETED
                       IN_PROGRESS ------------> COMPLETED
    COMPLETED -> IN_PROGRESS (reopen)

Completing and reopening need a privileged role.
"""

from typing import Dict, FrozenSet

from scouting.exceptions import InvalidTransition, SessionPermissionError
from scouting.models import SessionStatus, AuditAction
from scouting.services.context import Actor


SESSION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SessionStatus.NEW: frozenset({SessionStatus.IN_PROGRESS}),
    SessionStatus.SCHEDULED: frozenset({SessionStatus.IN_PROGRESS}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.SUBMITTED, SessionStatus.COMPLETED}),
    SessionStatus.SUBMITTED: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset({SessionStatus.IN_PROGRESS}),
}

# States in which targets, metadata and observations may still change
EDITABLE_STATES = frozenset({
    SessionStatus.NEW,
    SessionStatus.SCHEDULED,
    SessionStatus.IN_PROGRESS,
})

ENTRY_STATES = frozenset({SessionStatus.NEW, SessionStatus.SCHEDULED})

PRIVILEGED_ACTIONS = frozenset({AuditAction.COMPLETED, AuditAction.REOPENED})


def transition_action(current: str, target: str) -> str:
    """Audit label for an edge of the graph."""
    if target == SessionStatus.IN_PROGRESS:
        return AuditAction.REOPENED if current == SessionStatus.COMPLETED else AuditAction.STARTED
    if target == SessionStatus.SUBMITTED:
        return AuditAction.SUBMITTED
    return AuditAction.COMPLETED


def validate_transition(current: str, target: str, actor: Actor) -> str:
    """
    Check that ``current -> target`` is allowed for ``actor``.

    Returns:
        The audit action recorded for the transition.

    Raises:
        InvalidTransition if the edge is not in the graph
        SessionPermissionError if the edge needs a privileged role
    """
    allowed = SESSION_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransition(
            f"Invalid session status transition: {current} -> {target}",
            details={'current_status': current, 'requested_status': target,
                     'allowed': sorted(allowed)}
        )

    action = transition_action(current, target)
    if action in PRIVILEGED_ACTIONS and not actor.is_privileged:
        raise SessionPermissionError(
            f"Role {actor.role or 'UNKNOWN'} may not perform {action.lower()}",
            details={'action': action, 'role': actor.role}
        )
    return action


def is_editable(status: str) -> bool:
    return status in EDITABLE_STATES
