"""
Append-only audit trail for scouting sessions.

Events are written inside the caller's transaction so an event exists if
and only if the mutation it describes was committed.
"""

import logging

from scouting.models import SessionAuditEvent
from scouting.services.context import Actor, DeviceContext, NO_DEVICE

logger = logging.getLogger(__name__)


def record_event(session, action, actor: Actor, occurred_at, device: DeviceContext = None, comment=''):
    device = device or NO_DEVICE
    event = SessionAuditEvent.objects.create(
        session_id=session.pk,
        farm_id=session.farm_id,
        action=action,
        actor_id=actor.user_id,
        actor_name=actor.name or '',
        actor_email=actor.email or '',
        actor_role=actor.role or '',
        device_id=device.device_id or '',
        device_type=device.device_type or '',
        location=device.location or '',
        comment=comment or '',
        occurred_at=occurred_at,
    )
    logger.debug(f"Audit {action} for session {session.pk} by {actor.user_id}")
    return event


def audit_trail(session_id):
    """Events for a session in the order they happened."""
    return list(
        SessionAuditEvent.objects.filter(session_id=session_id).order_by('occurred_at', 'id')
    )
