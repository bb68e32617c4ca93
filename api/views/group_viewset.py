from rest_framework import viewsets, mixins, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db.models import Q

from ..api_models import Group, GroupMembership, User
from ..serializers import (
    GroupSerializer,
    GroupMembershipSerializer,
    GroupCreateSerializer,
    InviteSerializer,
    InviteResponseSerializer,
    TransferLeadershipSerializer,
    SubmitPreferencesSerializer,
)
from ..permissions import IsAdminRole, IsStudentRole
from ..throttles import GroupInviteThrottle
from ..mixins import OperationResponseMixin
from ..utils import group_lifecycle, registration


class GroupViewSet(OperationResponseMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet for student groups.

    - Admins see every group and may disband one
    - Students see groups they belong to or are invited to

    Custom actions:
    - POST /groups/ - Create a group led by the current student
    - POST /groups/{id}/invite/ - Invite students (leader)
    - POST /groups/{id}/leave/ - Leave the group (non-leader member)
    - POST /groups/{id}/transfer_leadership/ - Hand over the leader role (leader)
    - POST /groups/{id}/finalize/ - Freeze membership (leader)
    - POST /groups/{id}/disband/ - Dissolve the group (admin)
    - POST /groups/{id}/submit_preferences/ - Register the group project (leader)
    """

    queryset = Group.objects.all()
    serializer_class = GroupSerializer
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        """Set permissions based on action"""
        if self.action == 'disband':
            return [IsAdminRole()]
        if self.action in ['create', 'invite', 'leave', 'transfer_leadership', 'finalize', 'submit_preferences']:
            return [IsStudentRole()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        queryset = Group.objects.prefetch_related('memberships__student__user').order_by('-created_at')
        user = self.request.user

        if user.role == User.ROLE_ADMIN:
            return queryset
        if user.role == User.ROLE_STUDENT and hasattr(user, 'student'):
            return queryset.filter(
                Q(memberships__student=user.student, memberships__is_active=True) |
                Q(created_by=user.student)
            ).distinct()
        return queryset.none()

    def create(self, request):
        """
        POST /api/groups/
        {"name": "Team Rocket", "min_members": 4, "max_members": 5}
        """
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = group_lifecycle.create_group(request.user.student, **serializer.validated_data)
        return self.operation_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], throttle_classes=[GroupInviteThrottle])
    def invite(self, request, pk=None):
        """
        POST /api/groups/{id}/invite/
        {"student_ids": [12, 15]}
        """
        serializer = InviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = group_lifecycle.invite(pk, request.user.student, serializer.validated_data['student_ids'])
        return self.operation_response(result)

    @action(detail=True, methods=['post'])
    def leave(self, request, pk=None):
        """POST /api/groups/{id}/leave/"""
        return self.operation_response(group_lifecycle.leave(pk, request.user.student))

    @action(detail=True, methods=['post'])
    def transfer_leadership(self, request, pk=None):
        """
        POST /api/groups/{id}/transfer_leadership/
        {"new_leader_id": 15}
        """
        serializer = TransferLeadershipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = group_lifecycle.transfer_leadership(
            pk, request.user.student, serializer.validated_data['new_leader_id']
        )
        return self.operation_response(result)

    @action(detail=True, methods=['post'])
    def finalize(self, request, pk=None):
        """POST /api/groups/{id}/finalize/"""
        return self.operation_response(group_lifecycle.finalize(pk, request.user.student))

    @action(detail=True, methods=['post'])
    def disband(self, request, pk=None):
        """POST /api/groups/{id}/disband/"""
        return self.operation_response(group_lifecycle.disband(pk, admin_user=request.user))

    @action(detail=True, methods=['post'])
    def submit_preferences(self, request, pk=None):
        """
        Register the group project with ranked faculty.

        POST /api/groups/{id}/submit_preferences/
        {
            "title": "Campus navigation app",
            "preferences": [{"faculty_id": 3, "priority": 1}, {"faculty_id": 5, "priority": 2}]
        }
        """
        serializer = SubmitPreferencesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = registration.submit_preferences(
            request.user.student,
            data['preferences'],
            title=data['title'],
            description=data['description'],
            project_type=data['project_type'],
            group_id=int(pk),
        )
        return self.operation_response(result, success_status=status.HTTP_201_CREATED)


class InvitationViewSet(OperationResponseMixin, viewsets.GenericViewSet):
    """
    Invitations addressed to the current student.

    - GET /invitations/ - Pending invitations
    - POST /invitations/{id}/respond/ - Accept or reject
    """

    queryset = GroupMembership.objects.all()
    permission_classes = [IsStudentRole]
    lookup_value_regex = r'\d+'

    def list(self, request):
        invitations = GroupMembership.objects.filter(
            student=request.user.student,
            is_active=True,
            invite_status=GroupMembership.InviteStatus.PENDING,
        ).select_related('group', 'student__user')
        data = GroupMembershipSerializer(invitations, many=True).data
        for item, invitation in zip(data, invitations):
            item['group'] = {'id': invitation.group_id, 'name': str(invitation.group)}
        return Response(data)

    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """
        POST /api/invitations/{id}/respond/
        {"accept": true}
        """
        serializer = InviteResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = group_lifecycle.respond_to_invite(
            pk, request.user.student, serializer.validated_data['accept']
        )
        return self.operation_response(result)
