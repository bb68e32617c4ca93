"""
API Views Module
Each ViewSet lives in its own file.
"""

# Import all ViewSets
from .project_viewset import ProjectViewSet
from .group_viewset import GroupViewSet, InvitationViewSet
from .faculty_notification_viewset import FacultyNotificationViewSet
from .audit_log_viewset import AuditLogViewSet

# Import standalone view functions
from .general_views import health_check
from .jwt_views import TokenObtainPairView

__all__ = [
    # ViewSets
    'ProjectViewSet',
    'GroupViewSet',
    'InvitationViewSet',
    'FacultyNotificationViewSet',
    'AuditLogViewSet',
    # Standalone views
    'health_check',
    'TokenObtainPairView',
]
