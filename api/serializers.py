from rest_framework import serializers
from .api_models import (
    User,
    Faculty,
    Student,
    Group,
    GroupMembership,
    Project,
    FacultyPreference,
    PreferenceEntry,
    AllocationHistory,
    FacultyNotification,
    AuditLog,
)


# ========================================
# USER SERIALIZERS
# ========================================

class UserBasicSerializer(serializers.ModelSerializer):
    """
    Basic User info for public lists and references.
    Contains only essential, safe information.
    """
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'full_name', 'role']
        read_only_fields = ['id', 'username', 'role', 'full_name']

    def get_full_name(self, obj):
        """Return formatted full name or username as fallback"""
        full_name = f"{obj.first_name} {obj.last_name}".strip()
        return full_name if full_name else obj.username


class FacultyBasicSerializer(serializers.ModelSerializer):
    user = UserBasicSerializer(read_only=True)

    class Meta:
        model = Faculty
        fields = ['id', 'user', 'full_name', 'department', 'designation']
        read_only_fields = fields


class StudentBasicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Student
        fields = ['id', 'full_name', 'roll_number', 'semester']
        read_only_fields = fields


# ========================================
# GROUP SERIALIZERS
# ========================================

class GroupMembershipSerializer(serializers.ModelSerializer):
    student = StudentBasicSerializer(read_only=True)

    class Meta:
        model = GroupMembership
        fields = [
            'id', 'student', 'role', 'invite_status', 'is_active',
            'invited_by', 'invited_at', 'responded_at', 'rejection_reason'
        ]
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    """
    Group with its memberships.
    Pending and declined invitations are included so the leader can follow them up.
    """
    memberships = GroupMembershipSerializer(many=True, read_only=True)
    member_count = serializers.IntegerField(source='active_member_count', read_only=True)
    project_id = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id', 'name', 'description', 'semester', 'academic_year',
            'min_members', 'max_members', 'status', 'member_count', 'memberships',
            'project_id', 'created_by', 'created_at', 'finalized_at', 'disbanded_at', 'version'
        ]
        read_only_fields = fields

    def get_project_id(self, obj):
        project = Project.objects.filter(group=obj).only('id').first()
        return project.id if project else None


class GroupCreateSerializer(serializers.Serializer):
    """Input for POST /api/groups/ (bounds default to SystemSettings)"""
    name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    min_members = serializers.IntegerField(required=False, min_value=1)
    max_members = serializers.IntegerField(required=False, min_value=1)
    semester = serializers.IntegerField(required=False, min_value=1)
    academic_year = serializers.RegexField(r'^\d{4}-\d{2}$', required=False)


class InviteSerializer(serializers.Serializer):
    student_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )


class InviteResponseSerializer(serializers.Serializer):
    accept = serializers.BooleanField()


class TransferLeadershipSerializer(serializers.Serializer):
    new_leader_id = serializers.IntegerField(min_value=1)


# ========================================
# PROJECT / ALLOCATION SERIALIZERS
# ========================================

class PreferenceEntrySerializer(serializers.ModelSerializer):
    faculty = FacultyBasicSerializer(read_only=True)

    class Meta:
        model = PreferenceEntry
        fields = ['id', 'faculty', 'priority', 'submitted_at']
        read_only_fields = fields


class FacultyPreferenceSerializer(serializers.ModelSerializer):
    entries = serializers.SerializerMethodField()

    class Meta:
        model = FacultyPreference
        fields = [
            'id', 'status', 'current_faculty_index', 'allocated_faculty',
            'allocated_by', 'allocated_at', 'rejection_reason', 'entries'
        ]
        read_only_fields = fields

    def get_entries(self, obj):
        return PreferenceEntrySerializer(obj.sorted_entries(), many=True).data


class AllocationHistorySerializer(serializers.ModelSerializer):
    faculty_name = serializers.CharField(source='faculty.full_name', read_only=True)

    class Meta:
        model = AllocationHistory
        fields = ['id', 'faculty', 'faculty_name', 'priority', 'action', 'comments', 'timestamp']
        read_only_fields = fields


class ProjectBasicSerializer(serializers.ModelSerializer):
    """Project info for lists and faculty inboxes"""
    student = StudentBasicSerializer(read_only=True)
    faculty = FacultyBasicSerializer(read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'title', 'project_type', 'semester', 'academic_year',
            'student', 'group', 'status', 'faculty', 'allocated_by', 'created_at'
        ]
        read_only_fields = fields


class ProjectDetailSerializer(ProjectBasicSerializer):
    """
    Project with its preference list, cascade history and allocation progress.
    """
    faculty_preference = FacultyPreferenceSerializer(read_only=True)
    allocation_history = AllocationHistorySerializer(many=True, read_only=True)
    allocation_status = serializers.SerializerMethodField()

    class Meta(ProjectBasicSerializer.Meta):
        fields = ProjectBasicSerializer.Meta.fields + [
            'description', 'current_faculty_index', 'version',
            'faculty_preference', 'allocation_history', 'allocation_status'
        ]
        read_only_fields = fields

    def get_allocation_status(self, obj):
        from .utils.cascade import allocation_status  # Avoid circular import
        return allocation_status(obj)


class PreferenceInputSerializer(serializers.Serializer):
    faculty_id = serializers.IntegerField(min_value=1)
    priority = serializers.IntegerField()


class SubmitPreferencesSerializer(serializers.Serializer):
    """
    Input for POST /api/groups/{id}/submit_preferences/ and /api/projects/ (solo).

    Priority range and uniqueness are checked by the registration utility so
    the limit follows SystemSettings.
    """
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    project_type = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    preferences = PreferenceInputSerializer(many=True, allow_empty=False)


class ChooseSerializer(serializers.Serializer):
    comments = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class PassSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(
        choices=FacultyPreference.RejectionReason.choices,
        default=FacultyPreference.RejectionReason.OTHER,
    )
    comments = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class AdminOverrideSerializer(serializers.Serializer):
    faculty_id = serializers.IntegerField(min_value=1)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


# ========================================
# NOTIFICATION & AUDIT SERIALIZERS
# ========================================

class FacultyNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = FacultyNotification
        fields = ['id', 'type', 'title', 'message', 'project', 'dismissed', 'dismissed_at', 'created_at']
        read_only_fields = fields


class AuditLogSerializer(serializers.ModelSerializer):
    """Read-only audit entries for admins"""
    user = UserBasicSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_repr', 'changes', 'timestamp']
        read_only_fields = fields
