"""
Custom throttle classes for specific actions.
"""

from rest_framework.throttling import UserRateThrottle


class CascadeDecisionThrottle(UserRateThrottle):
    """Throttle for faculty choose/pass decisions - max 30 per minute"""
    scope = 'cascade_decision'


class GroupInviteThrottle(UserRateThrottle):
    """Throttle for group invitations - max 20 per hour"""
    scope = 'group_invite'


class LoginThrottle(UserRateThrottle):
    """Throttle for login attempts - max 10 per minute"""
    scope = 'login'
