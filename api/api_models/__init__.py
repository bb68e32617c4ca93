# Import all models so Django can discover them
from .user_type import User, Faculty, Student
from .group import Group, GroupMembership
from .allocation import Project, FacultyPreference, PreferenceEntry, AllocationHistory, AllocatedBy
from .textual_model import FacultyNotification
from .audit_log import AuditLog
from .system_settings import SystemSettings

__all__ = [
    # User models
    'User',
    'Faculty',
    'Student',
    # Group models
    'Group',
    'GroupMembership',
    # Allocation models
    'Project',
    'FacultyPreference',
    'PreferenceEntry',
    'AllocationHistory',
    'AllocatedBy',
    # Textual models
    'FacultyNotification',
    # Audit
    'AuditLog',
    # Settings
    'SystemSettings',
]
