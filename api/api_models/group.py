from django.db import models
from django.utils import timezone

from .versioning import VersionedModel


def default_academic_year():
    """Academic year in YYYY-YY format, e.g. 2024-25"""
    year = timezone.now().year
    return f"{year}-{str(year + 1)[-2:]}"


class Group(VersionedModel):
    """
    Student group that owns a group project.

    Membership (including pending invitations) lives in GroupMembership.
    The group must be finalized before its project can enter faculty allocation.
    """

    class Status(models.TextChoices):
        FORMING = 'forming', 'Forming'
        COMPLETE = 'complete', 'Complete'
        FINALIZED = 'finalized', 'Finalized'
        LOCKED = 'locked', 'Locked'
        DISBANDED = 'disbanded', 'Disbanded'

    # Statuses in which membership can no longer change
    FROZEN_STATUSES = (Status.FINALIZED, Status.LOCKED)

    name = models.CharField(max_length=100, blank=True, default='')
    description = models.CharField(max_length=500, blank=True, default='')
    semester = models.PositiveSmallIntegerField(null=True, blank=True)
    academic_year = models.CharField(max_length=7, default=default_academic_year)

    min_members = models.PositiveSmallIntegerField(default=4)
    max_members = models.PositiveSmallIntegerField(default=5)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.FORMING,
    )

    created_by = models.ForeignKey(
        'Student',
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_groups'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    finalized_at = models.DateTimeField(null=True, blank=True)
    finalized_by = models.ForeignKey(
        'Student',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='finalized_groups'
    )
    disbanded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='api_group_status_idx'),
            models.Index(fields=['semester', 'academic_year'], name='api_group_semeste_idx'),
        ]

    def __str__(self):
        return self.name or f"Group #{self.pk}"

    @property
    def is_frozen(self):
        return self.status in self.FROZEN_STATUSES

    def active_members(self):
        """Active members who accepted their invitation (leader included)"""
        return self.memberships.filter(
            is_active=True,
            invite_status=GroupMembership.InviteStatus.ACCEPTED,
        )

    def pending_invites(self):
        return self.memberships.filter(
            is_active=True,
            invite_status=GroupMembership.InviteStatus.PENDING,
        )

    @property
    def active_member_count(self):
        return self.active_members().count()

    @property
    def available_slots(self):
        return self.max_members - self.active_member_count

    @property
    def leader_membership(self):
        return self.active_members().filter(role=GroupMembership.Role.LEADER).first()

    def is_leader(self, student):
        leader = self.leader_membership
        return leader is not None and leader.student_id == student.pk


class GroupMembership(models.Model):
    """
    A student's membership in a group, from invitation onwards.

    One row per (group, student). A pending row is an open invitation;
    `is_active` is False once the invitation was declined or the member left.
    """

    class Role(models.TextChoices):
        LEADER = 'leader', 'Leader'
        MEMBER = 'member', 'Member'

    class InviteStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ACCEPTED = 'accepted', 'Accepted'
        REJECTED = 'rejected', 'Rejected'
        AUTO_REJECTED = 'auto-rejected', 'Auto-rejected'

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    student = models.ForeignKey(
        'Student',
        on_delete=models.CASCADE,
        related_name='group_memberships'
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    invite_status = models.CharField(
        max_length=15,
        choices=InviteStatus.choices,
        default=InviteStatus.PENDING,
    )
    is_active = models.BooleanField(default=True)

    invited_by = models.ForeignKey(
        'Student',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_invitations'
    )
    invited_at = models.DateTimeField(default=timezone.now)
    responded_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['invited_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['group', 'student'], name='unique_group_membership'),
        ]
        indexes = [
            models.Index(fields=['student', 'invite_status'], name='api_groupme_student_idx'),
            models.Index(fields=['group', 'is_active'], name='api_groupme_group_i_idx'),
        ]

    def __str__(self):
        return f"{self.student} in {self.group} ({self.role}, {self.invite_status})"
