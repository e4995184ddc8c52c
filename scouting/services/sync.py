"""
Sync Coordinator

Pull-based change feed for offline devices plus the photo upload handshake.

A device asks for everything on a farm that changed strictly after its
last watermark. Each collection is paged on (updated_at, id) and the
position travels back to the client inside an opaque cursor; nothing
about the client is stored on the server.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime
import base64
import binascii
import json
import logging

from django.conf import settings
from django.db.models import Q
from django.utils.dateparse import parse_datetime

from farms.models import Farm
from scouting.exceptions import ScoutingValidationError, ResourceNotFound
from scouting.models import ScoutingSession, ScoutingObservation, ScoutingPhoto, SyncStatus
from scouting.services.context import Actor, default_clock
from scouting.services.photos import PhotoRegistry

logger = logging.getLogger(__name__)


COLLECTIONS = ('sessions', 'observations', 'photos')


@dataclass
class ChangeFeedPage:
    sessions: List[ScoutingSession] = field(default_factory=list)
    observations: List[ScoutingObservation] = field(default_factory=list)
    photos: List[ScoutingPhoto] = field(default_factory=list)
    watermark: Optional[datetime] = None
    next_cursor: Optional[str] = None
    has_more: bool = False


def encode_cursor(since, positions):
    """Pack the per-collection (updated_at, id) positions into a URL-safe token."""
    body = {
        'since': since.isoformat(),
        'positions': {
            name: [updated_at.isoformat(), str(pk)]
            for name, (updated_at, pk) in positions.items()
        },
    }
    raw = json.dumps(body, separators=(',', ':')).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip('=')


def decode_cursor(token, since):
    try:
        padded = token + '=' * (-len(token) % 4)
        body = json.loads(base64.urlsafe_b64decode(padded.encode()))
        if parse_datetime(body['since']) != since:
            raise ScoutingValidationError(
                'Cursor was issued for a different since value',
                details={'field': 'cursor'}
            )
        positions = {}
        for name, (updated_at, pk) in body.get('positions', {}).items():
            if name not in COLLECTIONS:
                continue
            parsed = parse_datetime(updated_at)
            if parsed is None:
                raise ValueError(updated_at)
            positions[name] = (parsed, pk)
        return positions
    except (binascii.Error, ValueError, KeyError, TypeError, AttributeError):
        raise ScoutingValidationError('Malformed cursor', details={'field': 'cursor'})


class SyncCoordinator:

    def __init__(self, clock=None, photos=None):
        self.clock = clock or default_clock
        self.photos = photos or PhotoRegistry(clock=self.clock)

    def change_feed(self, farm_id, since, include_deleted=False, cursor=None, limit=None):
        """
        Rows of the farm with ``updated_at > since``.

        Returns:
            ChangeFeedPage. ``watermark`` is the newest updated_at returned,
            or ``since`` when the page is empty. Follow ``next_cursor`` while
            ``has_more`` is true.
        """
        if since is None:
            raise ScoutingValidationError("Parameter 'since' is required for sync.", details={'field': 'since'})
        if not Farm.objects.filter(pk=farm_id).exists():
            raise ResourceNotFound(f"Farm {farm_id} not found", details={'farm_id': str(farm_id)})

        limit = self._page_size(limit)
        positions = decode_cursor(cursor, since) if cursor else {}

        querysets = {
            'sessions': ScoutingSession.objects.filter(farm_id=farm_id),
            'observations': ScoutingObservation.objects.filter(session__farm_id=farm_id),
            'photos': ScoutingPhoto.objects.filter(farm_id=farm_id),
        }
        if not include_deleted:
            querysets['sessions'] = querysets['sessions'].filter(deleted=False)
            querysets['observations'] = querysets['observations'].filter(deleted=False, session__deleted=False)
            querysets['photos'] = querysets['photos'].filter(session__deleted=False)

        page = ChangeFeedPage()
        next_positions = dict(positions)
        for name, queryset in querysets.items():
            queryset = queryset.filter(updated_at__gt=since)
            if name in positions:
                updated_at, pk = positions[name]
                queryset = queryset.filter(
                    Q(updated_at__gt=updated_at) | Q(updated_at=updated_at, id__gt=pk)
                )
            rows = list(queryset.order_by('updated_at', 'id')[:limit + 1])
            if len(rows) > limit:
                page.has_more = True
                rows = rows[:limit]
            if rows:
                next_positions[name] = (rows[-1].updated_at, rows[-1].pk)
            setattr(page, name, rows)

        stamps = [row.updated_at for name in COLLECTIONS for row in getattr(page, name)]
        page.watermark = max(stamps) if stamps else since
        if page.has_more:
            page.next_cursor = encode_cursor(since, next_positions)

        logger.debug(
            f"Change feed for farm {farm_id} since {since.isoformat()}: "
            f"{len(page.sessions)} sessions, {len(page.observations)} observations, "
            f"{len(page.photos)} photos, has_more={page.has_more}"
        )
        return page

    def register_photo_metadata(self, actor: Actor, session_id, local_photo_id, purpose='',
                                observation_id=None, captured_at=None, farm_id=None):
        return self.photos.register(
            actor, session_id, local_photo_id,
            purpose=purpose,
            observation_id=observation_id,
            captured_at=captured_at,
            farm_id=farm_id,
        )

    def confirm_upload(self, actor: Actor, session_id, local_photo_id, object_key, farm_id=None):
        return self.photos.confirm(actor, session_id, local_photo_id, object_key, farm_id=farm_id)

    def pending_upload_counts(self):
        """Rows written by this runtime that are still waiting to be uploaded."""
        return {
            'sessions': ScoutingSession.objects.filter(sync_status=SyncStatus.PENDING_UPLOAD).count(),
            'observations': ScoutingObservation.objects.filter(sync_status=SyncStatus.PENDING_UPLOAD).count(),
            'photos': ScoutingPhoto.objects.filter(sync_status=SyncStatus.PENDING_UPLOAD).count(),
        }

    def _page_size(self, limit):
        default = getattr(settings, 'SCOUTING_SYNC_PAGE_SIZE', 500)
        maximum = getattr(settings, 'SCOUTING_SYNC_MAX_PAGE_SIZE', 2000)
        if limit is None:
            return min(default, maximum)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ScoutingValidationError('limit must be a positive integer', details={'field': 'limit'})
        return min(limit, maximum)
