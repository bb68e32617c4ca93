from django.db import models
from django.core.cache import cache
from django.core.validators import MinValueValidator, MaxValueValidator


# Hard ceiling for a preference list; SystemSettings may lower it.
PREFERENCE_LIMIT_CEILING = 10
# Hard ceiling for group size, per group and in SystemSettings.
GROUP_SIZE_CEILING = 10

SETTINGS_CACHE_KEY = 'system_settings'
SETTINGS_CACHE_TIMEOUT = 60 * 60


class SystemSettings(models.Model):
    """
    Singleton model for system-wide allocation settings.
    Only one instance should exist.
    """

    # Preference list settings
    max_faculty_preferences = models.PositiveSmallIntegerField(
        default=7,
        validators=[MinValueValidator(1), MaxValueValidator(PREFERENCE_LIMIT_CEILING)],
        help_text="Maximum number of ranked faculty a project may list (priorities 1..N)"
    )
    min_faculty_preferences = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(PREFERENCE_LIMIT_CEILING)],
        help_text="Minimum number of ranked faculty required to submit preferences"
    )

    # Group formation settings
    min_group_members = models.PositiveSmallIntegerField(
        default=4,
        validators=[MinValueValidator(1)],
        help_text="Minimum active members before a group can be finalized"
    )
    max_group_members = models.PositiveSmallIntegerField(
        default=5,
        validators=[MinValueValidator(1), MaxValueValidator(GROUP_SIZE_CEILING)],
        help_text="Maximum active members in a group"
    )

    # Notifications
    notify_faculty_by_email = models.BooleanField(
        default=True,
        help_text="Send an email in addition to the in-app notification when a project is presented"
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "System Settings"
        verbose_name_plural = "System Settings"

    def save(self, *args, **kwargs):
        # Singleton: always row 1
        self.pk = 1
        super().save(*args, **kwargs)
        cache.delete(SETTINGS_CACHE_KEY)

    def delete(self, *args, **kwargs):
        """Settings are never deleted; edit them instead."""

    @classmethod
    def load(cls):
        """
        Current settings, created with defaults on first use.

        Cached for an hour; save() drops the cached copy.
        """
        current = cache.get(SETTINGS_CACHE_KEY)
        if current is None:
            current, _ = cls.objects.get_or_create(pk=1)
            cache.set(SETTINGS_CACHE_KEY, current, SETTINGS_CACHE_TIMEOUT)
        return current

    @property
    def group_bounds(self):
        """(min_group_members, max_group_members)"""
        return self.min_group_members, self.max_group_members

    def __str__(self):
        return "System Settings"
