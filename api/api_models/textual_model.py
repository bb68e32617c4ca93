from django.db import models


class FacultyNotification(models.Model):
    """
    In-app notification for a faculty member.

    Created when a project is presented to them, when an admin changes an
    allocation they were part of, or when a project is cancelled.
    """

    class Type(models.TextChoices):
        ALLOCATION_OFFER = 'allocation_offer', 'Allocation Offer'
        ALLOCATION_CHANGE = 'allocation_change', 'Allocation Change'
        PROJECT_CANCELLED = 'project_cancelled', 'Project Cancelled'

    faculty = models.ForeignKey(
        'Faculty',
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField(max_length=1000)
    project = models.ForeignKey(
        'Project',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='faculty_notifications'
    )
    dismissed = models.BooleanField(default=False)
    dismissed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Faculty Notification"
        verbose_name_plural = "Faculty Notifications"
        indexes = [
            models.Index(fields=['faculty', 'dismissed', '-created_at'], name='api_faculty_faculty_idx'),
            models.Index(fields=['type', 'dismissed'], name='api_faculty_type_idx'),
        ]

    def __str__(self):
        return f"{self.faculty.user.username}: {self.title}"
