"""
Serializers for the scouting API.

Input serializers only check shapes and types; business rules live in the
service layer so they hold for every caller.
"""

from rest_framework import serializers

from scouting.models import (
    ScoutingSession,
    SessionTarget,
    ScoutingObservation,
    SessionAuditEvent,
    ScoutingPhoto,
)


# =============================================================================
# INPUT
# =============================================================================

class TargetInputSerializer(serializers.Serializer):
    greenhouse_id = serializers.UUIDField(required=False, allow_null=True)
    field_block_id = serializers.UUIDField(required=False, allow_null=True)
    include_all_bays = serializers.BooleanField(required=False, allow_null=True, default=None)
    include_all_benches = serializers.BooleanField(required=False, allow_null=True, default=None)
    bay_tags = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False, default=list
    )
    bench_tags = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False, default=list
    )


class SessionMetadataSerializer(serializers.Serializer):
    week_number = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=53)
    crop_type = serializers.CharField(required=False, allow_blank=True, max_length=100)
    crop_variety = serializers.CharField(required=False, allow_blank=True, max_length=100)
    temperature = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    relative_humidity = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    observation_time = serializers.TimeField(required=False, allow_null=True)
    weather_notes = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    recommendations = serializers.DictField(
        child=serializers.CharField(allow_blank=True), required=False, allow_null=True
    )


class SessionCreateSerializer(SessionMetadataSerializer):
    session_id = serializers.UUIDField(required=False, allow_null=True)
    farm_id = serializers.UUIDField()
    session_date = serializers.DateField()
    scout_id = serializers.UUIDField(required=False, allow_null=True)
    manager_id = serializers.UUIDField(required=False, allow_null=True)
    targets = TargetInputSerializer(many=True)


class SessionUpdateSerializer(SessionMetadataSerializer):
    version = serializers.IntegerField(min_value=1)
    session_date = serializers.DateField(required=False, allow_null=True)
    scout_id = serializers.UUIDField(required=False, allow_null=True)
    manager_id = serializers.UUIDField(required=False, allow_null=True)
    targets = TargetInputSerializer(many=True, required=False, allow_null=True)


class VersionSerializer(serializers.Serializer):
    version = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class SessionTransitionSerializer(VersionSerializer):
    confirmation_acknowledged = serializers.BooleanField(required=False, default=False)
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class ReopenSerializer(VersionSerializer):
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class ObservationUpsertSerializer(serializers.Serializer):
    session_target_id = serializers.UUIDField()
    bay_index = serializers.IntegerField(min_value=0)
    bench_index = serializers.IntegerField(min_value=0)
    spot_index = serializers.IntegerField(min_value=0)
    bay_label = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    bench_label = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    species_code = serializers.CharField(max_length=64)
    category = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    count = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    client_request_id = serializers.UUIDField(required=False, allow_null=True)
    version = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    last_synced_at = serializers.DateTimeField(required=False, allow_null=True)

    def to_service_kwargs(self, data=None):
        """Map validated fields onto ObservationReconciler.upsert arguments."""
        data = dict(data if data is not None else self.validated_data)
        return {
            'target_id': data['session_target_id'],
            'coordinate': (data['bay_index'], data['bench_index'], data['spot_index']),
            'species_code': data['species_code'],
            'count': data['count'],
            'notes': data.get('notes') or '',
            'client_request_id': data.get('client_request_id'),
            'version': data.get('version'),
            'category': data.get('category') or None,
            'bay_label': data.get('bay_label') or None,
            'bench_label': data.get('bench_label') or None,
            'last_synced_at': data.get('last_synced_at'),
        }


class BulkObservationSerializer(serializers.Serializer):
    observations = ObservationUpsertSerializer(many=True, allow_empty=False)


class ObservationDeleteSerializer(VersionSerializer):
    pass


class SessionListQuerySerializer(serializers.Serializer):
    farm_id = serializers.UUIDField()


class ChangeFeedQuerySerializer(serializers.Serializer):
    farm_id = serializers.UUIDField()
    # Checked by the sync service so a missing value gets the domain error shape
    since = serializers.DateTimeField(required=False, allow_null=True)
    include_deleted = serializers.BooleanField(required=False, default=False)
    cursor = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    limit = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class PhotoRegisterSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    local_photo_id = serializers.CharField(max_length=255)
    purpose = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')
    observation_id = serializers.UUIDField(required=False, allow_null=True)
    captured_at = serializers.DateTimeField(required=False, allow_null=True)


class PhotoConfirmSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    local_photo_id = serializers.CharField(max_length=255)
    object_key = serializers.CharField(max_length=1024)


# =============================================================================
# OUTPUT
# =============================================================================

class SessionTargetSerializer(serializers.ModelSerializer):
    class Meta:
        model = SessionTarget
        fields = [
            'id', 'greenhouse_id', 'field_block_id',
            'include_all_bays', 'include_all_benches', 'bay_tags', 'bench_tags',
        ]


class ScoutingSessionSerializer(serializers.ModelSerializer):
    targets = SessionTargetSerializer(many=True, read_only=True)
    farm_id = serializers.UUIDField(read_only=True)
    scout_id = serializers.UUIDField(read_only=True)
    manager_id = serializers.UUIDField(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = ScoutingSession
        fields = [
            'id', 'farm_id', 'scout_id', 'manager_id',
            'session_date', 'week_number',
            'crop_type', 'crop_variety', 'temperature', 'relative_humidity',
            'observation_time', 'weather_notes', 'notes', 'recommendations',
            'status', 'status_display', 'version', 'sync_status',
            'started_at', 'submitted_at', 'completed_at',
            'confirmation_acknowledged', 'reopen_comment',
            'deleted', 'deleted_at', 'created_at', 'updated_at',
            'targets',
        ]
        read_only_fields = fields


class ScoutingObservationSerializer(serializers.ModelSerializer):
    session_id = serializers.UUIDField(read_only=True)
    session_target_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ScoutingObservation
        fields = [
            'id', 'session_id', 'session_target_id',
            'species_code', 'category',
            'bay_index', 'bench_index', 'spot_index', 'bay_label', 'bench_label',
            'count', 'notes', 'version', 'sync_status', 'client_request_id',
            'deleted', 'deleted_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SessionAuditEventSerializer(serializers.ModelSerializer):
    session_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = SessionAuditEvent
        fields = [
            'id', 'session_id', 'action',
            'actor_id', 'actor_name', 'actor_email', 'actor_role',
            'device_id', 'device_type', 'location',
            'comment', 'occurred_at',
        ]
        read_only_fields = fields


class ScoutingPhotoSerializer(serializers.ModelSerializer):
    session_id = serializers.UUIDField(read_only=True)
    observation_id = serializers.UUIDField(read_only=True)
    farm_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ScoutingPhoto
        fields = [
            'id', 'session_id', 'observation_id', 'farm_id',
            'local_photo_id', 'purpose', 'object_key', 'captured_at',
            'sync_status', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


def serialize_change_feed(page):
    return {
        'sessions': ScoutingSessionSerializer(page.sessions, many=True).data,
        'observations': ScoutingObservationSerializer(page.observations, many=True).data,
        'photos': ScoutingPhotoSerializer(page.photos, many=True).data,
        'watermark': serializers.DateTimeField().to_representation(page.watermark),
        'next_cursor': page.next_cursor,
        'has_more': page.has_more,
    }
