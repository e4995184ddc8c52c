"""
Admin interface for scouting sessions and their audit trail.

Sessions and observations are read-only here: edits must go through the
service layer so versions and audit events stay consistent.
"""

from django.contrib import admin
from .models import (
    ScoutingSession,
    SessionTarget,
    ScoutingObservation,
    SessionAuditEvent,
    ScoutingPhoto,
)


class SessionTargetInline(admin.TabularInline):
    model = SessionTarget
    extra = 0
    can_delete = False
    readonly_fields = ['greenhouse', 'field_block', 'include_all_bays', 'include_all_benches',
                       'bay_tags', 'bench_tags']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ScoutingSession)
class ScoutingSessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'farm', 'session_date', 'status', 'version', 'sync_status', 'scout', 'deleted']
    list_filter = ['status', 'sync_status', 'deleted', 'session_date']
    search_fields = ['id', 'farm__name', 'scout__email', 'crop_type']
    date_hierarchy = 'session_date'
    inlines = [SessionTargetInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ScoutingObservation)
class ScoutingObservationAdmin(admin.ModelAdmin):
    list_display = ['species_code', 'category', 'count', 'bay_index', 'bench_index', 'spot_index',
                    'session', 'version', 'sync_status', 'deleted']
    list_filter = ['category', 'sync_status', 'deleted']
    search_fields = ['species_code', 'session__id', 'client_request_id']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SessionAuditEvent)
class SessionAuditEventAdmin(admin.ModelAdmin):
    list_display = ['occurred_at', 'action', 'session', 'actor_name', 'actor_role', 'device_id']
    list_filter = ['action', 'actor_role']
    search_fields = ['session__id', 'actor_email', 'comment']
    ordering = ['-occurred_at', '-id']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ScoutingPhoto)
class ScoutingPhotoAdmin(admin.ModelAdmin):
    list_display = ['local_photo_id', 'session', 'purpose', 'sync_status', 'object_key', 'created_at']
    list_filter = ['sync_status', 'created_at']
    search_fields = ['local_photo_id', 'object_key', 'session__id']
    readonly_fields = ['id', 'created_at', 'updated_at']
