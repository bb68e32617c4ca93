from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .api_models import (
    User, Faculty, Student, Group, GroupMembership, Project, FacultyPreference,
    PreferenceEntry, AllocationHistory, FacultyNotification, AuditLog, SystemSettings
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom User admin with role field"""
    list_display = ['username', 'email', 'role', 'is_active', 'is_staff', 'is_superuser', 'date_joined', 'updated_at']
    list_filter = ['role', 'is_active', 'is_staff', 'is_superuser', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    date_hierarchy = 'date_joined'
    readonly_fields = ['last_login', 'date_joined', 'updated_at']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Role', {'fields': ('role', 'updated_at')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'password1', 'password2', 'role', 'email'),
        }),
    )

    def has_delete_permission(self, request, obj=None):
        """Only superusers can truly delete users"""
        return request.user.is_superuser


@admin.register(Faculty)
class FacultyAdmin(admin.ModelAdmin):
    list_display = ['user', 'department', 'designation']
    search_fields = ['user__username', 'user__first_name', 'user__last_name', 'department']
    raw_id_fields = ['user']


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ['user', 'roll_number', 'semester']
    list_filter = ['semester']
    search_fields = ['user__username', 'roll_number']
    raw_id_fields = ['user']


class GroupMembershipInline(admin.TabularInline):
    model = GroupMembership
    fk_name = 'group'
    extra = 0
    fields = ('student', 'role', 'invite_status', 'is_active', 'invited_at', 'responded_at')
    readonly_fields = fields
    can_delete = False


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'status', 'member_count', 'min_members', 'max_members', 'academic_year', 'created_at']
    list_filter = ['status', 'academic_year', 'semester']
    search_fields = ['name', 'memberships__student__user__username']
    readonly_fields = ['version', 'finalized_at', 'finalized_by', 'disbanded_at']
    inlines = [GroupMembershipInline]

    def member_count(self, obj):
        return obj.active_member_count
    member_count.short_description = 'Members'


class PreferenceEntryInline(admin.TabularInline):
    model = PreferenceEntry
    extra = 0
    raw_id_fields = ['faculty']


@admin.register(FacultyPreference)
class FacultyPreferenceAdmin(admin.ModelAdmin):
    list_display = ['project', 'status', 'current_faculty_index', 'allocated_faculty', 'allocated_by']
    list_filter = ['status', 'allocated_by']
    search_fields = ['project__title']
    raw_id_fields = ['project', 'student', 'group', 'allocated_faculty']
    readonly_fields = ['version']
    inlines = [PreferenceEntryInline]


class AllocationHistoryInline(admin.TabularInline):
    model = AllocationHistory
    extra = 0
    fields = ('faculty', 'priority', 'action', 'comments', 'timestamp')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """
    Projects are moved through the cascade by the API; the admin only
    offers the reconciler as a repair action.
    """
    list_display = ['title', 'status', 'current_faculty_index', 'faculty', 'allocated_by', 'created_at']
    list_filter = ['status', 'allocated_by', 'academic_year']
    search_fields = ['title', 'student__user__username']
    date_hierarchy = 'created_at'
    raw_id_fields = ['student', 'group', 'faculty']
    readonly_fields = ['status', 'current_faculty_index', 'faculty', 'allocated_by', 'version']
    inlines = [AllocationHistoryInline]

    actions = ['reconcile_projects']

    @admin.action(description='Reconcile selected projects')
    def reconcile_projects(self, request, queryset):
        from .utils.reconciliation import reconcile

        repaired = 0
        for project in queryset:
            result = reconcile(project.pk, user=request.user)
            if result['ok'] and result['data']['repaired']:
                repaired += 1
        self.message_user(request, f'{repaired} project(s) repaired.')


@admin.register(FacultyNotification)
class FacultyNotificationAdmin(admin.ModelAdmin):
    list_display = ['faculty', 'type', 'title', 'dismissed', 'created_at']
    list_filter = ['type', 'dismissed', 'created_at']
    search_fields = ['faculty__user__username', 'title', 'message']
    date_hierarchy = 'created_at'
    raw_id_fields = ['faculty', 'project']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'user', 'action', 'model_name', 'object_repr']
    list_filter = ['action', 'model_name']
    search_fields = ['object_repr', 'user__username']
    date_hierarchy = 'timestamp'
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_repr', 'changes', 'timestamp']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    """
    Admin for system-wide settings.
    Only superusers can access this.
    """

    fieldsets = (
        ('Faculty Preferences', {
            'fields': ('max_faculty_preferences', 'min_faculty_preferences'),
            'description': 'How many ranked faculty a project may list'
        }),
        ('Groups', {
            'fields': ('min_group_members', 'max_group_members'),
            'description': 'Default member bounds for new groups'
        }),
        ('Notifications', {
            'fields': ('notify_faculty_by_email',),
        }),
    )

    def has_add_permission(self, request):
        """Prevent adding more than one settings instance"""
        return not SystemSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        """Prevent deletion of settings"""
        return False

    def has_module_permission(self, request):
        """Only superusers can see this in admin"""
        return request.user.is_superuser
