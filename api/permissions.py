"""
Role-based permissions for the allocation backend.
"""
from rest_framework import permissions
from .api_models import User


class IsAdminRole(permissions.BasePermission):
    """
    Permission for ROLE_ADMIN users only.

    Checks both the business role and Django is_staff; User.save() keeps
    them in sync.
    """
    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_ADMIN and
            request.user.is_staff
        )


class IsFacultyRole(permissions.BasePermission):
    """Faculty users with a Faculty profile"""
    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_FACULTY and
            hasattr(request.user, 'faculty')
        )


class IsStudentRole(permissions.BasePermission):
    """Student users with a Student profile"""
    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role == User.ROLE_STUDENT and
            hasattr(request.user, 'student')
        )
