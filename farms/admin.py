"""
Admin interface for farms and their scoutable structures.
"""

from django.contrib import admin
from .models import Farm, Greenhouse, FieldBlock


class GreenhouseInline(admin.TabularInline):
    model = Greenhouse
    extra = 0
    fields = ['name', 'is_active']


class FieldBlockInline(admin.TabularInline):
    model = FieldBlock
    extra = 0
    fields = ['name', 'is_active']


@admin.register(Farm)
class FarmAdmin(admin.ModelAdmin):
    list_display = ['name', 'farm_tag', 'owner', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'farm_tag', 'owner__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [GreenhouseInline, FieldBlockInline]


@admin.register(Greenhouse)
class GreenhouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'farm', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'farm__name']


@admin.register(FieldBlock)
class FieldBlockAdmin(admin.ModelAdmin):
    list_display = ['name', 'farm', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'farm__name']
