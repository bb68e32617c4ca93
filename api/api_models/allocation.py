from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from .group import default_academic_year
from .system_settings import PREFERENCE_LIMIT_CEILING
from .versioning import VersionedModel


class AllocatedBy(models.TextChoices):
    CANDIDATE_CHOICE = 'candidate_choice', 'Faculty choice'
    ADMIN_OVERRIDE = 'admin_override', 'Admin override'


class Project(VersionedModel):
    """
    A student project (solo or group-owned) awaiting or holding a faculty supervisor.

    `current_faculty_index` mirrors FacultyPreference.current_faculty_index and is
    the authoritative copy; the reconciler repairs the preference list from it.
    """

    class Status(models.TextChoices):
        REGISTERED = 'registered', 'Registered'
        PENDING_ALLOCATION = 'pending_allocation', 'Pending Allocation'
        PENDING_ADMIN_ALLOCATION = 'pending_admin_allocation', 'Pending Admin Allocation'
        FACULTY_ALLOCATED = 'faculty_allocated', 'Faculty Allocated'
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    # Statuses from which an admin may still allocate directly
    OVERRIDABLE_STATUSES = (
        Status.REGISTERED,
        Status.PENDING_ALLOCATION,
        Status.PENDING_ADMIN_ALLOCATION,
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    project_type = models.CharField(max_length=30, blank=True, default='')
    semester = models.PositiveSmallIntegerField(null=True, blank=True)
    academic_year = models.CharField(max_length=7, default=default_academic_year)

    student = models.ForeignKey(
        'Student',
        on_delete=models.CASCADE,
        related_name='projects',
        help_text="Owner (the submitting student; the leader for group projects)"
    )
    group = models.OneToOneField(
        'Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='project'
    )

    status = models.CharField(
        max_length=30,
        choices=Status.choices,
        default=Status.REGISTERED,
    )
    faculty = models.ForeignKey(
        'Faculty',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='supervised_projects'
    )
    allocated_by = models.CharField(
        max_length=20,
        choices=AllocatedBy.choices,
        blank=True,
        default='',
    )
    current_faculty_index = models.PositiveSmallIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='api_project_status_idx'),
            models.Index(fields=['faculty', 'status'], name='api_project_faculty_idx'),
            models.Index(fields=['semester', 'academic_year'], name='api_project_semeste_idx'),
        ]

    def __str__(self):
        return self.title

    def has_been_presented(self, faculty_id):
        return self.allocation_history.filter(
            faculty_id=faculty_id,
            action=AllocationHistory.Action.PRESENTED,
        ).exists()


class FacultyPreference(VersionedModel):
    """
    Ranked list of faculty a project wants as supervisor.

    Entries live in PreferenceEntry; lower priority = offered earlier.
    `current_faculty_index` points into the priority-sorted entries.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ALLOCATED = 'allocated', 'Allocated'
        REJECTED = 'rejected', 'Rejected'
        CANCELLED = 'cancelled', 'Cancelled'

    class RejectionReason(models.TextChoices):
        CAPACITY_FULL = 'capacity_full', 'Capacity full'
        NOT_AVAILABLE = 'not_available', 'Not available'
        NOT_SUITABLE = 'not_suitable', 'Not suitable'
        OTHER = 'other', 'Other'

    project = models.OneToOneField(
        Project,
        on_delete=models.CASCADE,
        related_name='faculty_preference'
    )
    student = models.ForeignKey(
        'Student',
        on_delete=models.CASCADE,
        related_name='faculty_preferences'
    )
    group = models.ForeignKey(
        'Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='faculty_preferences'
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    current_faculty_index = models.PositiveSmallIntegerField(default=0)

    allocated_faculty = models.ForeignKey(
        'Faculty',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='allocated_preferences'
    )
    allocated_by = models.CharField(
        max_length=20,
        choices=AllocatedBy.choices,
        blank=True,
        default='',
    )
    allocated_at = models.DateTimeField(null=True, blank=True)

    rejection_reason = models.CharField(
        max_length=20,
        choices=RejectionReason.choices,
        blank=True,
        default='',
    )
    rejection_comments = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['status'], name='api_faculty_status_idx'),
            models.Index(fields=['allocated_faculty', 'status'], name='api_faculty_allocat_idx'),
        ]

    def __str__(self):
        return f"Preferences for {self.project.title} ({self.status})"

    def sorted_entries(self):
        """Entries in cascade order (ascending priority)"""
        return list(self.entries.select_related('faculty__user').order_by('priority'))

    def entry_at(self, index):
        entries = self.sorted_entries()
        if 0 <= index < len(entries):
            return entries[index]
        return None

    @property
    def preference_count(self):
        return self.entries.count()

    @property
    def all_faculty_presented(self):
        return self.current_faculty_index >= self.preference_count


class PreferenceEntry(models.Model):
    """One ranked faculty in a FacultyPreference list."""

    preference = models.ForeignKey(
        FacultyPreference,
        on_delete=models.CASCADE,
        related_name='entries'
    )
    faculty = models.ForeignKey(
        'Faculty',
        on_delete=models.CASCADE,
        related_name='preference_entries'
    )
    priority = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(PREFERENCE_LIMIT_CEILING)],
        help_text="1 = offered first"
    )
    submitted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['preference', 'priority']
        verbose_name_plural = "Preference Entries"
        constraints = [
            models.UniqueConstraint(fields=['preference', 'priority'], name='unique_preference_priority'),
            models.UniqueConstraint(fields=['preference', 'faculty'], name='unique_preference_faculty'),
        ]

    def __str__(self):
        return f"#{self.priority} {self.faculty.full_name}"


class AllocationHistory(models.Model):
    """
    Append-only log of cascade steps for a project.

    Ordered by insertion (id); rows are never updated or deleted by the cascade.
    """

    class Action(models.TextChoices):
        PRESENTED = 'presented', 'Presented'
        CHOSEN = 'chosen', 'Chosen'
        PASSED = 'passed', 'Passed'

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='allocation_history'
    )
    faculty = models.ForeignKey(
        'Faculty',
        on_delete=models.CASCADE,
        related_name='allocation_history'
    )
    priority = models.PositiveSmallIntegerField(null=True, blank=True)
    action = models.CharField(max_length=10, choices=Action.choices)
    comments = models.CharField(max_length=500, blank=True, default='')
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        verbose_name_plural = "Allocation History"
        indexes = [
            models.Index(fields=['project', 'action'], name='api_allocat_project_idx'),
            models.Index(fields=['faculty', 'action'], name='api_allocat_faculty_idx'),
        ]

    def __str__(self):
        return f"{self.project.title}: {self.action} {self.faculty.full_name} at {self.timestamp}"
