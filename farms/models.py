"""
Farm Structure Models

The scouting core only reads these rows: a session target must point at a
greenhouse or a field block that belongs to the session's farm. Creating
and editing farms and their structures is handled elsewhere (admin).
"""

from django.db import models
from accounts.models import User
import uuid


class Farm(models.Model):
    """A customer farm that owns greenhouses and field blocks."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    farm_tag = models.CharField(
        max_length=50,
        blank=True,
        help_text="Short code printed on scouting sheets"
    )
    owner = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='owned_farms'
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'farms'
        ordering = ['name']

    def __str__(self):
        return self.name


class Greenhouse(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    farm = models.ForeignKey(Farm, on_delete=models.CASCADE, related_name='greenhouses')
    name = models.CharField(max_length=255, help_text="e.g. Tomato House 1")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'greenhouses'
        ordering = ['name']
        indexes = [
            models.Index(fields=['farm', 'name'], name='greenhouse_farm_name_idx'),
        ]

    def __str__(self):
        return f"{self.farm.name} - {self.name}"


class FieldBlock(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    farm = models.ForeignKey(Farm, on_delete=models.CASCADE, related_name='field_blocks')
    name = models.CharField(max_length=255, help_text="e.g. North Field A")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'field_blocks'
        ordering = ['name']
        indexes = [
            models.Index(fields=['farm', 'name'], name='fieldblock_farm_name_idx'),
        ]

    def __str__(self):
        return f"{self.farm.name} - {self.name}"

