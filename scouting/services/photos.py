"""
Photo metadata registry.

Devices register a photo by their own local id before uploading the binary,
then confirm it with the storage object key once the upload finished.
Registration is idempotent per farm and local id.
"""

from django.db import transaction, IntegrityError
import logging

from scouting.exceptions import ScoutingValidationError, ResourceNotFound, PhotoConflict
from scouting.models import ScoutingSession, ScoutingObservation, ScoutingPhoto, SyncStatus
from scouting.services.context import Actor, default_clock

logger = logging.getLogger(__name__)


class PhotoRegistry:

    def __init__(self, clock=None):
        self.clock = clock or default_clock

    @transaction.atomic
    def register(self, actor: Actor, session_id, local_photo_id, purpose='',
                 observation_id=None, captured_at=None, farm_id=None):
        session = self._session(session_id, farm_id)
        local_photo_id = (local_photo_id or '').strip()
        if not local_photo_id:
            raise ScoutingValidationError('local_photo_id is required', details={'field': 'local_photo_id'})

        if observation_id is not None:
            if not ScoutingObservation.objects.filter(pk=observation_id, session=session).exists():
                raise ScoutingValidationError(
                    'Observation does not belong to this session',
                    details={'field': 'observation_id', 'observation_id': str(observation_id)}
                )

        existing = ScoutingPhoto.objects.filter(farm_id=session.farm_id, local_photo_id=local_photo_id).first()
        if existing is not None:
            return self._replay(existing, session)

        now = self.clock()
        photo = ScoutingPhoto(
            session=session,
            farm_id=session.farm_id,
            observation_id=observation_id,
            local_photo_id=local_photo_id,
            purpose=purpose or '',
            captured_at=captured_at,
            sync_status=SyncStatus.PENDING_UPLOAD,
            created_at=now,
            updated_at=now,
        )
        try:
            with transaction.atomic():
                photo.save(force_insert=True)
        except IntegrityError:
            existing = ScoutingPhoto.objects.filter(
                farm_id=session.farm_id, local_photo_id=local_photo_id
            ).first()
            if existing is None:
                raise
            return self._replay(existing, session)

        logger.info(f"Photo {local_photo_id} registered on session {session.pk} by {actor.user_id}")
        return photo

    @transaction.atomic
    def confirm(self, actor: Actor, session_id, local_photo_id, object_key, farm_id=None):
        session = self._session(session_id, farm_id)
        if not object_key or not str(object_key).strip():
            raise ScoutingValidationError('object_key is required', details={'field': 'object_key'})

        photo = ScoutingPhoto.objects.filter(session=session, local_photo_id=local_photo_id).first()
        if photo is None:
            raise ResourceNotFound(
                f"Photo {local_photo_id} is not registered on session {session_id}",
                details={'local_photo_id': local_photo_id}
            )

        now = self.clock()
        updated = ScoutingPhoto.objects.filter(pk=photo.pk, object_key__isnull=True).update(
            object_key=str(object_key).strip(),
            sync_status=SyncStatus.SYNCED,
            updated_at=now,
        )
        if updated == 0:
            logger.warning(f"Photo {local_photo_id} on session {session.pk} already confirmed")
            raise PhotoConflict(
                'Photo upload already confirmed',
                details={'local_photo_id': local_photo_id}
            )

        logger.info(f"Photo {local_photo_id} confirmed on session {session.pk}")
        return ScoutingPhoto.objects.get(pk=photo.pk)

    def _session(self, session_id, farm_id):
        queryset = ScoutingSession.objects.filter(pk=session_id, deleted=False)
        if farm_id is not None:
            queryset = queryset.filter(farm_id=farm_id)
        session = queryset.first()
        if session is None:
            raise ResourceNotFound(
                f"Scouting session {session_id} not found",
                details={'session_id': str(session_id)}
            )
        return session

    def _replay(self, existing, session):
        if existing.session_id != session.pk:
            logger.warning(
                f"Photo {existing.local_photo_id} already registered on session {existing.session_id}"
            )
            raise PhotoConflict(
                'Photo already registered for another session',
                details={'local_photo_id': existing.local_photo_id}
            )
        return existing
