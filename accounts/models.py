from django.contrib.auth.models import AbstractUser
from django.db import models
import uuid


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Authentication itself lives outside the scouting core; the user only
    carries the identity and role that every scouting command is executed as.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class UserRole(models.TextChoices):
        SUPER_ADMIN = 'SUPER_ADMIN', 'Super Administrator'
        FARM_ADMIN = 'FARM_ADMIN', 'Farm Administrator'
        MANAGER = 'MANAGER', 'Farm Manager'
        SCOUT = 'SCOUT', 'Scout'

    role = models.CharField(
        max_length=50,
        choices=UserRole.choices,
        default=UserRole.SCOUT,
        db_index=True,
        help_text="User's primary role in the system"
    )

    phone = models.CharField(
        max_length=20,
        blank=True,
        help_text="Contact number shown on scouting sheets"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role', 'is_active'], name='users_role_active_idx'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.get_role_display()})"

    def get_full_name(self):
        """Return the user's full name or username if name is not set."""
        full_name = super().get_full_name()
        return full_name if full_name else self.username

    @property
    def is_scout(self):
        return self.role == self.UserRole.SCOUT
