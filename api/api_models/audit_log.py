"""
Audit trail for allocation overrides, cancellations, reconciler repairs
and disbanded groups.
"""

from django.db import models
from django.utils import timezone


class AuditLog(models.Model):
    """
    One administrative or repair action on a Project or Group.

    `user` is null when the action came from a scheduled job (the reconcile
    sweep). `changes` maps field names to {'old': ..., 'new': ...}.
    """

    class Action(models.TextChoices):
        ADMIN_OVERRIDE = 'ADMIN_OVERRIDE', 'Admin Override'
        CANCEL = 'CANCEL', 'Cancelled'
        RECONCILE = 'RECONCILE', 'Reconciled'
        DISBAND = 'DISBAND', 'Disbanded'

    user = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="Acting admin; empty for scheduled repairs"
    )
    action = models.CharField(max_length=20, choices=Action.choices)

    # Target
    model_name = models.CharField(max_length=100, help_text="'Project' or 'Group'")
    object_id = models.CharField(max_length=255, null=True, blank=True)
    object_repr = models.CharField(max_length=255)

    changes = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['-timestamp'], name='api_auditlo_timesta_idx'),
            models.Index(fields=['model_name', 'object_id'], name='api_auditlo_model_n_idx'),
        ]

    def __str__(self):
        who = self.user or 'system'
        return f"{who} {self.action} {self.model_name} at {self.timestamp.strftime('%Y-%m-%d %H:%M')}"

    @classmethod
    def log_action(cls, action, instance, changes=None, user=None):
        """
        Record `action` on `instance`.

        Anonymous or missing users are stored as null (system action).
        """
        return cls.objects.create(
            user=user if user is not None and user.is_authenticated else None,
            action=action,
            model_name=type(instance).__name__,
            object_id=str(instance.pk),
            object_repr=str(instance)[:255],
            changes=_stringify_changes(changes or {}),
        )


def _stringify_changes(changes):
    """Make old/new values JSON-safe (model instances, dates, enums)"""
    return {
        field: {
            'old': str(values.get('old')) if values.get('old') is not None else None,
            'new': str(values.get('new')) if values.get('new') is not None else None,
        }
        for field, values in changes.items()
    }
