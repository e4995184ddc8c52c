"""
Scouting Session Lifecycle Service

Creates, edits and moves sessions through their lifecycle. Every mutation
runs in one transaction that holds both the conditional version update and
the matching audit event, so a committed change always has exactly one
event and a failed one leaves neither behind.

Concurrency is optimistic: the UPDATE is filtered on the caller's version
and a zero row count is reported as a VersionConflict (or NotFound when the
row is gone). No row locks are taken.
"""

from django.db import transaction, IntegrityError
from django.db.models import F
from django.utils import timezone
import logging
import uuid

from accounts.models import User
from farms.models import Farm, Greenhouse, FieldBlock
from scouting.exceptions import (
    ScoutingValidationError,
    ResourceNotFound,
    VersionConflict,
    IdempotencyMismatch,
    InvalidTransition,
)
from scouting.models import (
    ScoutingSession,
    SessionTarget,
    SessionStatus,
    SyncStatus,
    AuditAction,
    RecommendationType,
)
from scouting.services import audit
from scouting.services.context import Actor, PRIVILEGED_ROLES, default_clock, write_sync_status
from scouting.services.state_machine import (
    validate_transition,
    is_editable,
    ENTRY_STATES,
)

logger = logging.getLogger(__name__)


METADATA_FIELDS = (
    'week_number',
    'crop_type',
    'crop_variety',
    'temperature',
    'relative_humidity',
    'observation_time',
    'weather_notes',
    'notes',
    'recommendations',
)


def normalize_tags(tags):
    """Trim, drop blanks and de-duplicate while keeping first-seen order."""
    if not tags:
        return []
    seen = []
    for tag in tags:
        if tag is None:
            continue
        value = str(tag).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def _as_uuid(value, field):
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError):
        raise ScoutingValidationError(f"{field} must be a UUID", details={'field': field})


class SessionLifecycleService:
    """
    Operations on scouting sessions.

    Args:
        clock: callable returning the current aware datetime
    """

    def __init__(self, clock=None):
        self.clock = clock or default_clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, session_id, farm_id=None):
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

    def list(self, farm_id):
        if not Farm.objects.filter(pk=farm_id).exists():
            raise ResourceNotFound(f"Farm {farm_id} not found", details={'farm_id': str(farm_id)})
        return (
            ScoutingSession.objects
            .filter(farm_id=farm_id, deleted=False)
            .select_related('farm', 'scout', 'manager')
            .prefetch_related('targets')
        )

    def audit_trail(self, session_id):
        self.get(session_id)
        return audit.audit_trail(session_id)

    # ------------------------------------------------------------------
    # Create / edit
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, actor: Actor, farm_id, targets, session_date, scout_id=None,
               manager_id=None, metadata=None, session_id=None, device=None):
        """
        Create a session with at least one target.

        A session id generated on the device makes the call retry-safe: the
        same id for the same farm returns the stored session unchanged.
        """
        farm = Farm.objects.filter(pk=farm_id).first()
        if farm is None:
            raise ResourceNotFound(f"Farm {farm_id} not found", details={'farm_id': str(farm_id)})

        session_id = _as_uuid(session_id, 'session_id')
        if session_id is not None:
            existing = self._existing_for_retry(session_id, farm.pk)
            if existing is not None:
                return existing

        if session_date is None:
            raise ScoutingValidationError('session_date is required', details={'field': 'session_date'})

        resolved_targets = self._resolve_targets(farm, targets)
        scout = self._resolve_scout(scout_id)
        fields = self._clean_metadata(metadata or {})

        now = self.clock()
        if fields.get('week_number') is None:
            fields['week_number'] = session_date.isocalendar()[1]

        if manager_id is not None:
            manager_id = self._resolve_manager(manager_id).pk
        elif actor.is_privileged:
            manager_id = actor.user_id

        session = ScoutingSession(
            id=session_id or uuid.uuid4(),
            farm=farm,
            scout=scout,
            manager_id=manager_id,
            session_date=session_date,
            status=self._entry_status(session_date, now),
            version=1,
            sync_status=write_sync_status(),
            created_at=now,
            updated_at=now,
            **fields
        )
        try:
            with transaction.atomic():
                session.save(force_insert=True)
        except IntegrityError:
            # Another request inserted the same client-generated id first
            existing = self._existing_for_retry(session.pk, farm.pk)
            if existing is None:
                raise
            return existing

        SessionTarget.objects.bulk_create([
            SessionTarget(session=session, **target) for target in resolved_targets
        ])
        audit.record_event(session, AuditAction.CREATED, actor, now, device)

        logger.info(
            f"Scouting session {session.pk} created for farm {farm.pk} "
            f"({session.status}, {len(resolved_targets)} targets)"
        )
        return session

    @transaction.atomic
    def update(self, actor: Actor, session_id, version, patch, device=None):
        """
        Apply the non-null fields of ``patch``. Passing ``targets`` replaces
        the session's target list and is audited as TARGETS_UPDATED.
        """
        if version is None:
            raise ScoutingValidationError('version is required', details={'field': 'version'})

        session = self.get(session_id)
        self._ensure_editable(session)

        patch = {key: value for key, value in (patch or {}).items() if value is not None}
        fields = self._clean_metadata({k: v for k, v in patch.items() if k in METADATA_FIELDS})

        if 'scout_id' in patch:
            fields['scout'] = self._resolve_scout(patch['scout_id'])
        if 'manager_id' in patch:
            fields['manager_id'] = self._resolve_manager(patch['manager_id']).pk

        now = self.clock()
        if 'session_date' in patch and patch['session_date'] != session.session_date:
            fields['session_date'] = patch['session_date']
            if 'week_number' not in fields:
                fields['week_number'] = patch['session_date'].isocalendar()[1]
            if session.status in ENTRY_STATES:
                fields['status'] = self._entry_status(patch['session_date'], now)

        targets = patch.get('targets')
        resolved_targets = None
        if targets is not None:
            resolved_targets = self._resolve_targets(session.farm, targets)

        session = self._cas_update(session_id, version, now, **fields)

        if resolved_targets is not None:
            self._replace_targets(session, resolved_targets)
            audit.record_event(session, AuditAction.TARGETS_UPDATED, actor, now, device)

        logger.info(f"Scouting session {session.pk} updated to version {session.version}")
        return session

    @transaction.atomic
    def delete(self, actor: Actor, session_id, version, device=None):
        """Soft delete. The row stays behind as a tombstone for the change feed."""
        if version is None:
            raise ScoutingValidationError('version is required', details={'field': 'version'})

        session = self.get(session_id)
        self._ensure_editable(session)

        now = self.clock()
        session = self._cas_update(session_id, version, now, deleted=True, deleted_at=now)
        audit.record_event(session, AuditAction.DELETED, actor, now, device)

        logger.info(f"Scouting session {session.pk} deleted")
        return session

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def start(self, actor: Actor, session_id, version=None, device=None):
        session = self.get(session_id)
        if session.status not in ENTRY_STATES:
            raise InvalidTransition(
                f"Cannot start a session that is {session.status}",
                details={'current_status': session.status, 'requested_status': SessionStatus.IN_PROGRESS}
            )
        action = validate_transition(session.status, SessionStatus.IN_PROGRESS, actor)

        now = self.clock()
        expected = version if version is not None else session.version
        session = self._cas_update(
            session_id, expected, now,
            status=SessionStatus.IN_PROGRESS,
            started_at=session.started_at or now,
        )
        audit.record_event(session, action, actor, now, device)

        logger.info(f"Scouting session {session.pk} started by {actor.user_id}")
        return session

    @transaction.atomic
    def submit(self, actor: Actor, session_id, version, confirmation_acknowledged=False,
               comment='', device=None):
        if version is None:
            raise ScoutingValidationError('version is required', details={'field': 'version'})

        session = self.get(session_id)
        action = validate_transition(session.status, SessionStatus.SUBMITTED, actor)

        now = self.clock()
        session = self._cas_update(
            session_id, version, now,
            status=SessionStatus.SUBMITTED,
            submitted_at=now,
            confirmation_acknowledged=bool(confirmation_acknowledged),
        )
        audit.record_event(session, action, actor, now, device, comment)

        logger.info(f"Scouting session {session.pk} submitted by {actor.user_id}")
        return session

    @transaction.atomic
    def complete(self, actor: Actor, session_id, version, confirmation_acknowledged=False,
                 comment='', device=None):
        if version is None:
            raise ScoutingValidationError('version is required', details={'field': 'version'})

        session = self.get(session_id)
        action = validate_transition(session.status, SessionStatus.COMPLETED, actor)

        if not confirmation_acknowledged:
            raise ScoutingValidationError(
                'Please confirm all information is correct before completing the session.',
                details={'field': 'confirmation_acknowledged'}
            )

        now = self.clock()
        session = self._cas_update(
            session_id, version, now,
            status=SessionStatus.COMPLETED,
            completed_at=now,
            submitted_at=session.submitted_at or now,
            confirmation_acknowledged=True,
        )
        audit.record_event(session, action, actor, now, device, comment)

        logger.info(f"Scouting session {session.pk} completed by {actor.user_id}")
        return session

    @transaction.atomic
    def reopen(self, actor: Actor, session_id, comment, version=None, device=None):
        session = self.get(session_id)
        if session.status != SessionStatus.COMPLETED:
            raise InvalidTransition(
                f"Only completed sessions can be reopened, session is {session.status}",
                details={'current_status': session.status, 'requested_status': SessionStatus.IN_PROGRESS}
            )
        action = validate_transition(session.status, SessionStatus.IN_PROGRESS, actor)

        if not comment or not str(comment).strip():
            raise ScoutingValidationError(
                'A comment is required to reopen a session',
                details={'field': 'comment'}
            )
        comment = str(comment).strip()

        now = self.clock()
        expected = version if version is not None else session.version
        session = self._cas_update(
            session_id, expected, now,
            status=SessionStatus.IN_PROGRESS,
            completed_at=None,
            submitted_at=None,
            confirmation_acknowledged=False,
            reopen_comment=comment,
        )
        audit.record_event(session, action, actor, now, device, comment)

        logger.info(f"Scouting session {session.pk} reopened by {actor.user_id}")
        return session

    @transaction.atomic
    def mark_synced(self, actor: Actor, session_id, version, device=None):
        """Acknowledge that a device has reconciled the session."""
        if version is None:
            raise ScoutingValidationError('version is required', details={'field': 'version'})

        self.get(session_id)
        now = self.clock()
        session = self._cas_update(
            session_id, version, now,
            sync_status=SyncStatus.SYNCED,
        )
        audit.record_event(session, AuditAction.SYNCED, actor, now, device)

        logger.info(f"Scouting session {session.pk} marked synced")
        return session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cas_update(self, session_id, expected_version, now, **fields):
        """Conditional update on ``version``; returns the refreshed row."""
        fields.setdefault('sync_status', write_sync_status())
        updated = ScoutingSession.objects.filter(
            pk=session_id,
            version=expected_version,
            deleted=False,
        ).update(version=F('version') + 1, updated_at=now, **fields)

        if updated == 0:
            current = ScoutingSession.objects.filter(pk=session_id, deleted=False).first()
            if current is None:
                raise ResourceNotFound(
                    f"Scouting session {session_id} not found",
                    details={'session_id': str(session_id)}
                )
            logger.warning(
                f"Version conflict on session {session_id}: "
                f"expected {expected_version}, stored {current.version}"
            )
            raise VersionConflict(
                'Session has changed on the server. Please sync and retry.',
                details={'expected_version': expected_version, 'current_version': current.version}
            )
        return ScoutingSession.objects.select_related('farm').get(pk=session_id)

    def _existing_for_retry(self, session_id, farm_id):
        existing = ScoutingSession.objects.filter(pk=session_id).first()
        if existing is None:
            return None
        if existing.farm_id != farm_id:
            raise IdempotencyMismatch(
                'Session id already used for another farm',
                details={'session_id': str(session_id)}
            )
        if existing.deleted:
            raise IdempotencyMismatch(
                'Session id belongs to a deleted session',
                details={'session_id': str(session_id)}
            )
        logger.info(f"Scouting session {session_id} already exists, returning stored copy")
        return existing

    def _entry_status(self, session_date, now):
        today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
        return SessionStatus.SCHEDULED if session_date > today else SessionStatus.NEW

    def _ensure_editable(self, session):
        if not is_editable(session.status):
            raise ScoutingValidationError(
                'Locked sessions must be reopened before editing.',
                details={'status': session.status}
            )

    def _resolve_scout(self, scout_id):
        if scout_id is None:
            return None
        scout = User.objects.filter(pk=scout_id).first()
        if scout is None:
            raise ResourceNotFound(f"User {scout_id} not found", details={'scout_id': str(scout_id)})
        if scout.role != User.UserRole.SCOUT:
            raise ScoutingValidationError('Assigned user must be a scout.', details={'field': 'scout_id'})
        if not scout.is_active:
            raise ScoutingValidationError('Assigned scout is inactive.', details={'field': 'scout_id'})
        return scout

    def _resolve_manager(self, manager_id):
        manager = User.objects.filter(pk=manager_id).first()
        if manager is None:
            raise ResourceNotFound(f"User {manager_id} not found", details={'manager_id': str(manager_id)})
        if manager.role not in PRIVILEGED_ROLES:
            raise ScoutingValidationError('Assigned manager must be a manager.', details={'field': 'manager_id'})
        if not manager.is_active:
            raise ScoutingValidationError('Assigned manager is inactive.', details={'field': 'manager_id'})
        return manager

    def _clean_metadata(self, metadata):
        fields = {key: metadata[key] for key in METADATA_FIELDS if metadata.get(key) is not None}
        recommendations = fields.get('recommendations')
        if recommendations is not None:
            if not isinstance(recommendations, dict):
                raise ScoutingValidationError(
                    'recommendations must be an object',
                    details={'field': 'recommendations'}
                )
            unknown = set(recommendations) - set(RecommendationType.values)
            if unknown:
                raise ScoutingValidationError(
                    f"Unknown recommendation types: {', '.join(sorted(unknown))}",
                    details={'field': 'recommendations', 'allowed': RecommendationType.values}
                )
        return fields

    def _resolve_targets(self, farm, targets):
        """
        Validate target requests against the farm's structures.

        Returns a list of SessionTarget field dicts.
        """
        if not targets:
            raise ScoutingValidationError(
                'At least one greenhouse or field block target is required',
                details={'field': 'targets'}
            )

        resolved = []
        seen = set()
        for index, target in enumerate(targets):
            greenhouse_id = target.get('greenhouse_id')
            field_block_id = target.get('field_block_id')
            if (greenhouse_id is None) == (field_block_id is None):
                raise ScoutingValidationError(
                    'Each target needs exactly one of greenhouse_id or field_block_id',
                    details={'field': 'targets', 'index': index}
                )

            greenhouse = field_block = None
            if greenhouse_id is not None:
                greenhouse = Greenhouse.objects.filter(pk=greenhouse_id, farm=farm).first()
                if greenhouse is None:
                    raise ScoutingValidationError(
                        f"Greenhouse {greenhouse_id} does not belong to this farm",
                        details={'field': 'targets', 'index': index}
                    )
            else:
                field_block = FieldBlock.objects.filter(pk=field_block_id, farm=farm).first()
                if field_block is None:
                    raise ScoutingValidationError(
                        f"Field block {field_block_id} does not belong to this farm",
                        details={'field': 'targets', 'index': index}
                    )

            key = (greenhouse.pk if greenhouse else None, field_block.pk if field_block else None)
            if key in seen:
                raise ScoutingValidationError(
                    'The same structure is targeted twice',
                    details={'field': 'targets', 'index': index}
                )
            seen.add(key)

            include_all_bays = target.get('include_all_bays')
            include_all_bays = True if include_all_bays is None else bool(include_all_bays)
            include_all_benches = target.get('include_all_benches')
            include_all_benches = True if include_all_benches is None else bool(include_all_benches)
            bay_tags = normalize_tags(target.get('bay_tags'))
            bench_tags = normalize_tags(target.get('bench_tags'))

            if not include_all_bays and not bay_tags:
                raise ScoutingValidationError(
                    'Provide bay_tags when include_all_bays is false.',
                    details={'field': 'targets', 'index': index}
                )
            if not include_all_benches and not bench_tags:
                raise ScoutingValidationError(
                    'Provide bench_tags when include_all_benches is false.',
                    details={'field': 'targets', 'index': index}
                )

            resolved.append({
                'greenhouse': greenhouse,
                'field_block': field_block,
                'include_all_bays': include_all_bays,
                'include_all_benches': include_all_benches,
                'bay_tags': bay_tags,
                'bench_tags': bench_tags,
            })
        return resolved

    def _replace_targets(self, session, resolved_targets):
        """
        Make the session's targets match ``resolved_targets``. Targets for
        the same structure are edited in place so their observations keep
        pointing at them.
        """
        existing = {
            (target.greenhouse_id, target.field_block_id): target
            for target in session.targets.all()
        }
        wanted = set()

        for fields in resolved_targets:
            key = (
                fields['greenhouse'].pk if fields['greenhouse'] else None,
                fields['field_block'].pk if fields['field_block'] else None,
            )
            wanted.add(key)
            current = existing.get(key)
            if current is None:
                SessionTarget.objects.create(session=session, **fields)
                continue
            current.include_all_bays = fields['include_all_bays']
            current.include_all_benches = fields['include_all_benches']
            current.bay_tags = fields['bay_tags']
            current.bench_tags = fields['bench_tags']
            current.save(update_fields=['include_all_bays', 'include_all_benches', 'bay_tags', 'bench_tags'])

        for key, target in existing.items():
            if key in wanted:
                continue
            if target.observations.filter(deleted=False).exists():
                raise ScoutingValidationError(
                    'Cannot remove a target that still has observations',
                    details={'field': 'targets', 'target_id': str(target.pk)}
                )
            target.delete()
