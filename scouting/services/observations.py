"""
Observation Reconciler

Turns upserts from devices that may retry, replay or race each other into
at most one live row per observation cell:

- every applied client_request_id is recorded with a fingerprint of its
  payload, so a late retry is answered as a replay and never applied twice,
  and a key is never reused for another cell;
- a version supplied by the caller is compared by a conditional UPDATE;
- without a version the last writer wins and the row is flagged CONFLICT
  if it changed after the caller's last sync;
- concurrent inserts are settled by the database unique constraints;
- the session row is locked while writing so it cannot be completed
  underneath the write.
"""

from collections import namedtuple
from django.db import transaction, IntegrityError
from django.db.models import F
import logging
import uuid

from scouting.exceptions import (
    ScoutingValidationError,
    ResourceNotFound,
    VersionConflict,
    IdempotencyMismatch,
)
from scouting.models import (
    ScoutingSession,
    ScoutingObservation,
    ObservationRequest,
    SyncStatus,
    AuditAction,
)
from scouting.services import audit
from scouting.services.context import Actor, default_clock, write_sync_status
from scouting.services.species import normalize_species_code, resolve_category
from scouting.services.state_machine import is_editable

logger = logging.getLogger(__name__)


Coordinate = namedtuple('Coordinate', ['bay_index', 'bench_index', 'spot_index'])


def _non_negative_int(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ScoutingValidationError(
            f"{field} must be a non-negative integer",
            details={'field': field}
        )
    return value


def _as_uuid(value, field):
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError):
        raise ScoutingValidationError(f"{field} must be a UUID", details={'field': field})


class ObservationReconciler:

    def __init__(self, clock=None):
        self.clock = clock or default_clock

    # ------------------------------------------------------------------
    # Upsert
    # ------------------------------------------------------------------

    @transaction.atomic
    def upsert(self, actor: Actor, session_id, target_id, coordinate, species_code, count,
               notes='', client_request_id=None, version=None, category=None,
               bay_label=None, bench_label=None, last_synced_at=None,
               farm_id=None, device=None):
        """
        Create or update the observation for one cell.

        Returns:
            The stored ScoutingObservation (unchanged on an idempotent replay).
        """
        session = self._editable_session(session_id, farm_id)

        target = session.targets.filter(pk=target_id).first() if target_id else None
        if target is None:
            raise ScoutingValidationError(
                'Target does not belong to this session',
                details={'field': 'session_target_id', 'session_target_id': str(target_id)}
            )

        coordinate = Coordinate(*coordinate)
        for field, value in coordinate._asdict().items():
            _non_negative_int(value, field)
        count = _non_negative_int(count, 'count')
        species_code = normalize_species_code(species_code)
        category = resolve_category(species_code, category)
        notes = notes or ''
        key = _as_uuid(client_request_id, 'client_request_id')

        if not target.admits(bay_label, bench_label):
            raise ScoutingValidationError(
                'Selected bay or bench is not part of this session target.',
                details={'bay_label': bay_label, 'bench_label': bench_label}
            )

        payload = {
            'count': count,
            'notes': notes,
            'category': category,
            'bay_label': bay_label,
            'bench_label': bench_label,
        }
        fingerprint = ObservationRequest.generate_fingerprint(payload)
        cell = (target.pk,) + tuple(coordinate) + (species_code,)

        if key is not None:
            applied = ObservationRequest.objects.filter(pk=key).first()
            if applied is not None:
                return self._apply_keyed(actor, session, applied, cell, payload, fingerprint,
                                         version, last_synced_at, device)

        try:
            with transaction.atomic():
                observation = self._apply_to_cell(actor, session, target, coordinate, species_code,
                                                  payload, key, version, last_synced_at, device)
                if key is not None:
                    ObservationRequest.objects.create(
                        client_request_id=key,
                        observation=observation,
                        payload_fingerprint=fingerprint,
                        created_at=observation.updated_at,
                    )
        except IntegrityError:
            # Either the same key or the same cell was written concurrently
            applied = ObservationRequest.objects.filter(pk=key).first() if key is not None else None
            if applied is not None:
                return self._apply_keyed(actor, session, applied, cell, payload, fingerprint,
                                         version, last_synced_at, device)
            logger.warning(
                f"Concurrent insert on session {session.pk} cell "
                f"{tuple(coordinate)} {species_code}"
            )
            raise VersionConflict(
                'Observation was created concurrently. Please sync and retry.',
                details={'species_code': species_code}
            )
        return observation

    @transaction.atomic
    def bulk_upsert(self, actor: Actor, session_id, items, farm_id=None, device=None):
        """Upsert every item in one transaction; any failure rolls back the batch."""
        if not items:
            raise ScoutingValidationError('No observations supplied', details={'field': 'observations'})

        results = []
        for item in items:
            item = dict(item)
            item_session = item.pop('session_id', None)
            if item_session is not None and str(item_session) != str(session_id):
                raise ScoutingValidationError(
                    'Bulk payload does not match session.',
                    details={'session_id': str(item_session)}
                )
            results.append(self.upsert(actor, session_id, farm_id=farm_id, device=device, **item))

        logger.info(f"Bulk upsert of {len(results)} observations on session {session_id}")
        return results

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def delete(self, actor: Actor, session_id, observation_id, version=None, farm_id=None, device=None):
        """Soft delete. Deleting a tombstone again returns it unchanged."""
        session = self._editable_session(session_id, farm_id)

        observation = ScoutingObservation.objects.filter(pk=observation_id).first()
        if observation is None or observation.session_id != session.pk:
            raise ResourceNotFound(
                f"Observation {observation_id} not found in session {session_id}",
                details={'observation_id': str(observation_id)}
            )
        if observation.deleted:
            return observation

        if version is not None and version != observation.version:
            raise self._conflict(observation, version)

        now = self.clock()
        observation = self._cas_update(
            observation, version if version is not None else observation.version, now,
            deleted=True,
            deleted_at=now,
            sync_status=write_sync_status(),
        )
        audit.record_event(session, AuditAction.OBSERVATION_DELETED, actor, now, device)

        logger.info(f"Observation {observation.pk} deleted from session {session.pk}")
        return observation

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session_queryset(self, session_id, farm_id):
        """Live session row, locked until the surrounding transaction ends."""
        queryset = ScoutingSession.objects.select_for_update().filter(pk=session_id, deleted=False)
        if farm_id is not None:
            queryset = queryset.filter(farm_id=farm_id)
        return queryset

    def _editable_session(self, session_id, farm_id):
        session = self._session_queryset(session_id, farm_id).first()
        if session is None:
            raise ResourceNotFound(
                f"Scouting session {session_id} not found",
                details={'session_id': str(session_id)}
            )
        if not is_editable(session.status):
            raise ScoutingValidationError(
                'Locked sessions cannot be edited.',
                details={'status': session.status}
            )
        return session

    def _apply_keyed(self, actor, session, applied, cell, payload, fingerprint, version,
                     last_synced_at, device):
        """Answer a request whose client_request_id has already been applied."""
        key = applied.client_request_id
        observation = ScoutingObservation.objects.get(pk=applied.observation_id)
        if observation.session_id != session.pk or observation.cell != cell:
            logger.warning(f"client_request_id {key} reused for a different observation")
            raise IdempotencyMismatch(
                'Idempotency key already used for another observation.',
                details={'client_request_id': str(key)}
            )

        if applied.payload_fingerprint == fingerprint:
            logger.debug(f"Replay of client_request_id {key}")
            return observation

        if observation.deleted:
            raise IdempotencyMismatch(
                'Idempotency key belongs to a deleted observation.',
                details={'client_request_id': str(key)}
            )
        observation = self._apply_update(actor, session, observation, payload, version, key,
                                         last_synced_at, device)
        ObservationRequest.objects.filter(pk=key).update(payload_fingerprint=fingerprint)
        return observation

    def _apply_to_cell(self, actor, session, target, coordinate, species_code, payload, key,
                       version, last_synced_at, device):
        existing = ScoutingObservation.objects.filter(
            session=session,
            session_target=target,
            bay_index=coordinate.bay_index,
            bench_index=coordinate.bench_index,
            spot_index=coordinate.spot_index,
            species_code=species_code,
            deleted=False,
        ).first()
        if existing is not None:
            return self._apply_update(actor, session, existing, payload, version, key,
                                      last_synced_at, device)
        return self._insert(actor, session, target, coordinate, species_code, payload, key, device)

    def _apply_update(self, actor, session, existing, payload, version, key, last_synced_at, device):
        if version is not None and version != existing.version:
            raise self._conflict(existing, version)

        sync_status = write_sync_status()
        if version is None and last_synced_at is not None and existing.updated_at > last_synced_at:
            sync_status = SyncStatus.CONFLICT
            logger.warning(
                f"Observation {existing.pk} changed after the device's last sync; "
                f"overwriting and flagging as conflict"
            )

        fields = dict(payload, sync_status=sync_status)
        if key is not None:
            fields['client_request_id'] = key

        now = self.clock()
        observation = self._cas_update(
            existing, version if version is not None else existing.version, now, **fields
        )
        audit.record_event(session, AuditAction.OBSERVATION_UPDATED, actor, now, device)

        logger.info(f"Observation {observation.pk} updated to version {observation.version}")
        return observation

    def _insert(self, actor, session, target, coordinate, species_code, payload, key, device):
        now = self.clock()
        observation = ScoutingObservation(
            session=session,
            session_target=target,
            species_code=species_code,
            bay_index=coordinate.bay_index,
            bench_index=coordinate.bench_index,
            spot_index=coordinate.spot_index,
            client_request_id=key,
            version=1,
            sync_status=write_sync_status(),
            created_at=now,
            updated_at=now,
            **payload
        )
        observation.save(force_insert=True)
        audit.record_event(session, AuditAction.OBSERVATION_ADDED, actor, now, device)

        logger.info(
            f"Observation {observation.pk} added to session {session.pk}: "
            f"{species_code} x{observation.count}"
        )
        return observation

    def _cas_update(self, observation, expected_version, now, **fields):
        updated = ScoutingObservation.objects.filter(
            pk=observation.pk,
            version=expected_version,
            deleted=False,
        ).update(version=F('version') + 1, updated_at=now, **fields)

        if updated == 0:
            current = ScoutingObservation.objects.filter(pk=observation.pk).first()
            if current is None:
                raise ResourceNotFound(
                    f"Observation {observation.pk} not found",
                    details={'observation_id': str(observation.pk)}
                )
            raise self._conflict(current, expected_version)
        return ScoutingObservation.objects.get(pk=observation.pk)

    def _conflict(self, current, expected_version):
        logger.warning(
            f"Version conflict on observation {current.pk}: "
            f"expected {expected_version}, stored {current.version}"
        )
        return VersionConflict(
            'Observation has changed on the server. Please sync and retry.',
            details={
                'observation_id': str(current.pk),
                'expected_version': expected_version,
                'current_version': current.version,
            }
        )
