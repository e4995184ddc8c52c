"""
Scouting Models

Sessions, their targets, observation cells, photo metadata and the
append-only audit trail. Every syncable row carries an integer ``version``
used for optimistic concurrency and a ``deleted`` flag so removals travel
to offline devices as tombstones.
"""

from django.db import models
from django.db.models import Q
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.utils import timezone
import hashlib
import json
import uuid


class SessionStatus(models.TextChoices):
    NEW = 'NEW', 'New'
    SCHEDULED = 'SCHEDULED', 'Scheduled'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    SUBMITTED = 'SUBMITTED', 'Submitted'
    COMPLETED = 'COMPLETED', 'Completed'


class SyncStatus(models.TextChoices):
    LOCAL_ONLY = 'LOCAL_ONLY', 'Local Only'
    PENDING_UPLOAD = 'PENDING_UPLOAD', 'Pending Upload'
    SYNCED = 'SYNCED', 'Synced'
    CONFLICT = 'CONFLICT', 'Conflict'


class ObservationCategory(models.TextChoices):
    PEST = 'PEST', 'Pest'
    DISEASE = 'DISEASE', 'Disease'
    BENEFICIAL = 'BENEFICIAL', 'Beneficial'


class RecommendationType(models.TextChoices):
    BIOLOGICAL_CONTROL = 'BIOLOGICAL_CONTROL', 'Biological Control'
    CHEMICAL_SPRAYS = 'CHEMICAL_SPRAYS', 'Chemical Sprays'
    OTHER_METHODS = 'OTHER_METHODS', 'Other Methods'


class AuditAction(models.TextChoices):
    CREATED = 'CREATED', 'Created'
    STARTED = 'STARTED', 'Started'
    SUBMITTED = 'SUBMITTED', 'Submitted'
    TARGETS_UPDATED = 'TARGETS_UPDATED', 'Targets Updated'
    OBSERVATION_ADDED = 'OBSERVATION_ADDED', 'Observation Added'
    OBSERVATION_UPDATED = 'OBSERVATION_UPDATED', 'Observation Updated'
    OBSERVATION_DELETED = 'OBSERVATION_DELETED', 'Observation Deleted'
    COMPLETED = 'COMPLETED', 'Completed'
    REOPENED = 'REOPENED', 'Reopened'
    SYNCED = 'SYNCED', 'Synced'
    DELETED = 'DELETED', 'Deleted'


# =============================================================================
# SESSION
# =============================================================================

class ScoutingSession(models.Model):
    """
    One scouting walk over a farm on a given date.

    The primary key may be generated on the device so a session created
    offline keeps its identity when it is uploaded.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    farm = models.ForeignKey(
        'farms.Farm',
        on_delete=models.PROTECT,
        related_name='scouting_sessions'
    )
    manager = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='managed_scouting_sessions'
    )
    scout = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='scouting_sessions'
    )

    session_date = models.DateField(db_index=True)
    week_number = models.PositiveSmallIntegerField(null=True, blank=True)

    # Field sheet metadata
    crop_type = models.CharField(max_length=100, blank=True)
    crop_variety = models.CharField(max_length=100, blank=True)
    temperature = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    relative_humidity = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    observation_time = models.TimeField(null=True, blank=True)
    weather_notes = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    recommendations = models.JSONField(
        default=dict,
        blank=True,
        help_text="Keyed by BIOLOGICAL_CONTROL, CHEMICAL_SPRAYS, OTHER_METHODS"
    )

    status = models.CharField(
        max_length=20,
        choices=SessionStatus.choices,
        default=SessionStatus.NEW,
        db_index=True
    )
    version = models.PositiveIntegerField(default=1)
    sync_status = models.CharField(
        max_length=20,
        choices=SyncStatus.choices,
        default=SyncStatus.SYNCED
    )

    started_at = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    confirmation_acknowledged = models.BooleanField(default=False)
    reopen_comment = models.TextField(blank=True)

    deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Set explicitly from the service clock, never by auto_now
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'scouting_sessions'
        ordering = ['-session_date', '-created_at']
        indexes = [
            models.Index(fields=['farm', 'updated_at', 'id'], name='scout_session_feed_idx'),
            models.Index(fields=['farm', 'status'], name='scout_session_status_idx'),
        ]

    def __str__(self):
        return f"Scouting {self.farm_id} on {self.session_date} ({self.status})"

    def clean(self):
        errors = {}
        if self.version is not None and self.version < 1:
            errors['version'] = 'Version starts at 1'
        unknown = set(self.recommendations or {}) - set(RecommendationType.values)
        if unknown:
            errors['recommendations'] = f"Unknown recommendation types: {', '.join(sorted(unknown))}"
        if errors:
            raise ValidationError(errors)


class SessionTarget(models.Model):
    """A greenhouse or field block selected for a session, with optional bay/bench filters."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.ForeignKey(
        ScoutingSession,
        on_delete=models.CASCADE,
        related_name='targets'
    )
    greenhouse = models.ForeignKey(
        'farms.Greenhouse',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='session_targets'
    )
    field_block = models.ForeignKey(
        'farms.FieldBlock',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='session_targets'
    )

    include_all_bays = models.BooleanField(default=True)
    include_all_benches = models.BooleanField(default=True)
    bay_tags = models.JSONField(default=list, blank=True)
    bench_tags = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'scouting_session_targets'
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(greenhouse__isnull=False, field_block__isnull=True)
                    | Q(greenhouse__isnull=True, field_block__isnull=False)
                ),
                name='session_target_one_structure',
            ),
        ]

    def __str__(self):
        return f"Target {self.greenhouse_id or self.field_block_id} for {self.session_id}"

    def admits(self, bay_label, bench_label):
        """Whether the bay/bench labels fall inside this target's tag filters."""
        if not self.include_all_bays and bay_label and bay_label not in self.bay_tags:
            return False
        if not self.include_all_benches and bench_label and bench_label not in self.bench_tags:
            return False
        return True


# =============================================================================
# OBSERVATIONS
# =============================================================================

class ScoutingObservation(models.Model):
    """
    Absolute count of one species at one spot of a target.

    A cell is (session, target, bay, bench, spot, species); at most one live
    row exists per cell. Deleted rows stay behind as tombstones.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.ForeignKey(
        ScoutingSession,
        on_delete=models.CASCADE,
        related_name='observations'
    )
    session_target = models.ForeignKey(
        SessionTarget,
        on_delete=models.SET_NULL,
        null=True,
        related_name='observations'
    )

    species_code = models.CharField(max_length=64)
    category = models.CharField(max_length=20, choices=ObservationCategory.choices)

    bay_index = models.PositiveIntegerField()
    bench_index = models.PositiveIntegerField()
    spot_index = models.PositiveIntegerField()
    bay_label = models.CharField(max_length=100, null=True, blank=True)
    bench_label = models.CharField(max_length=100, null=True, blank=True)

    count = models.PositiveIntegerField(validators=[MinValueValidator(0)])
    notes = models.TextField(blank=True)

    version = models.PositiveIntegerField(default=1)
    sync_status = models.CharField(
        max_length=20,
        choices=SyncStatus.choices,
        default=SyncStatus.SYNCED
    )
    client_request_id = models.UUIDField(null=True, blank=True, unique=True)

    deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'scouting_observations'
        ordering = ['bay_index', 'bench_index', 'spot_index', 'species_code']
        constraints = [
            models.UniqueConstraint(
                fields=['session', 'session_target', 'bay_index', 'bench_index', 'spot_index', 'species_code'],
                condition=Q(deleted=False),
                name='unique_live_observation_cell',
            ),
        ]
        indexes = [
            models.Index(fields=['session', 'updated_at'], name='scout_obs_session_upd_idx'),
            models.Index(fields=['updated_at', 'id'], name='scout_obs_feed_idx'),
        ]

    def __str__(self):
        return f"{self.species_code} x{self.count} @ {self.bay_index}/{self.bench_index}/{self.spot_index}"

    @property
    def cell(self):
        return (
            self.session_target_id,
            self.bay_index,
            self.bench_index,
            self.spot_index,
            self.species_code,
        )


class ObservationRequest(models.Model):
    """
    A client_request_id that has been applied to an observation.

    An observation only remembers its latest key, so every applied key is
    kept here as well. A late retry of an older request still finds its
    key and is answered as a replay instead of being applied again.
    """

    client_request_id = models.UUIDField(primary_key=True)
    observation = models.ForeignKey(
        ScoutingObservation,
        on_delete=models.CASCADE,
        related_name='requests'
    )
    payload_fingerprint = models.CharField(max_length=64)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'scouting_observation_requests'

    def __str__(self):
        return f"Request {self.client_request_id} -> {self.observation_id}"

    @staticmethod
    def generate_fingerprint(payload):
        """Hash of the mutable observation fields a request carried."""
        data = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()


# =============================================================================
# AUDIT
# =============================================================================

class SessionAuditEvent(models.Model):
    """
    Append-only record of every state change on a session.

    The session reference is weak so events outlive the session row. Rows
    are never updated or deleted once written.
    """

    id = models.BigAutoField(primary_key=True)

    session = models.ForeignKey(
        ScoutingSession,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='audit_events'
    )
    farm = models.ForeignKey(
        'farms.Farm',
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='+'
    )
    action = models.CharField(max_length=30, choices=AuditAction.choices, db_index=True)

    # Who did it
    actor_id = models.UUIDField(null=True, blank=True)
    actor_name = models.CharField(max_length=255, blank=True)
    actor_email = models.CharField(max_length=255, blank=True)
    actor_role = models.CharField(max_length=50, blank=True)

    # From where
    device_id = models.CharField(max_length=255, blank=True)
    device_type = models.CharField(max_length=100, blank=True)
    location = models.CharField(max_length=255, blank=True)

    comment = models.TextField(blank=True)
    occurred_at = models.DateTimeField(db_index=True)

    class Meta:
        db_table = 'scouting_session_audit_events'
        ordering = ['occurred_at', 'id']
        indexes = [
            models.Index(fields=['session', 'occurred_at', 'id'], name='scout_audit_session_idx'),
        ]

    def __str__(self):
        return f"{self.action} on {self.session_id} at {self.occurred_at}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError('Audit events are append-only')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Audit events are append-only')


# =============================================================================
# PHOTOS
# =============================================================================

class ScoutingPhoto(models.Model):
    """Metadata for a photo taken on a device; the binary lives in object storage."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.ForeignKey(
        ScoutingSession,
        on_delete=models.CASCADE,
        related_name='photos'
    )
    observation = models.ForeignKey(
        ScoutingObservation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='photos'
    )
    farm = models.ForeignKey(
        'farms.Farm',
        on_delete=models.PROTECT,
        related_name='scouting_photos'
    )

    local_photo_id = models.CharField(max_length=255)
    purpose = models.CharField(max_length=255, blank=True)
    object_key = models.CharField(max_length=1024, null=True, blank=True)
    captured_at = models.DateTimeField(null=True, blank=True)

    sync_status = models.CharField(
        max_length=20,
        choices=SyncStatus.choices,
        default=SyncStatus.LOCAL_ONLY
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'scouting_photos'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['farm', 'local_photo_id'], name='unique_farm_local_photo'),
        ]
        indexes = [
            models.Index(fields=['farm', 'updated_at', 'id'], name='scout_photo_feed_idx'),
        ]

    def __str__(self):
        return f"Photo {self.local_photo_id} ({self.sync_status})"
