"""
Caller context passed explicitly into every scouting operation.
"""

from dataclasses import dataclass
from typing import Callable, Optional
from datetime import datetime
import uuid

from django.conf import settings
from django.utils import timezone

from scouting.models import SyncStatus


Clock = Callable[[], datetime]

PRIVILEGED_ROLES = frozenset({'SUPER_ADMIN', 'FARM_ADMIN', 'MANAGER'})


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation."""
    user_id: Optional[uuid.UUID]
    role: str
    name: str = ''
    email: str = ''

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @classmethod
    def from_user(cls, user) -> 'Actor':
        return cls(
            user_id=user.pk,
            role=getattr(user, 'role', '') or '',
            name=user.get_full_name() if hasattr(user, 'get_full_name') else str(user),
            email=getattr(user, 'email', '') or '',
        )


@dataclass(frozen=True)
class DeviceContext:
    """Where the request came from. All fields are optional."""
    device_id: str = ''
    device_type: str = ''
    location: str = ''

    @classmethod
    def from_request(cls, request) -> 'DeviceContext':
        """Build from X-Device-* headers, falling back to body fields."""
        data = request.data if hasattr(request.data, 'get') else {}
        headers = request.headers
        return cls(
            device_id=headers.get('X-Device-Id') or data.get('device_id') or '',
            device_type=headers.get('X-Device-Type') or data.get('device_type') or '',
            location=headers.get('X-Device-Location') or data.get('location') or '',
        )


NO_DEVICE = DeviceContext()


def default_clock() -> datetime:
    return timezone.now()


def write_sync_status() -> str:
    """Sync status stamped on rows written by this runtime."""
    if getattr(settings, 'SCOUTING_RUNTIME_MODE', 'cloud') == 'edge':
        return SyncStatus.PENDING_UPLOAD
    return SyncStatus.SYNCED
