from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db.models import Q
from django_filters import rest_framework as filters

from ..api_models import Project, User
from ..serializers import (
    ProjectBasicSerializer,
    ProjectDetailSerializer,
    SubmitPreferencesSerializer,
    ChooseSerializer,
    PassSerializer,
    AdminOverrideSerializer,
    CancelSerializer,
)
from ..permissions import IsAdminRole, IsFacultyRole, IsStudentRole
from ..throttles import CascadeDecisionThrottle
from ..mixins import OperationResponseMixin
from ..utils import cascade, reconciliation, registration


class ProjectFilter(filters.FilterSet):
    """Filter for Project queryset"""
    status = filters.ChoiceFilter(choices=Project.Status.choices)
    faculty = filters.NumberFilter(field_name='faculty__id')
    semester = filters.NumberFilter()
    academic_year = filters.CharFilter()

    class Meta:
        model = Project
        fields = ['status', 'faculty', 'semester', 'academic_year']


class ProjectViewSet(OperationResponseMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for projects and the faculty allocation cascade.

    - Admins see every project
    - Faculty see projects presented to them or supervised by them
    - Students see their own and their groups' projects

    Custom actions:
    - POST /projects/ - Register a solo project with ranked faculty (student)
    - POST /projects/{id}/present/ - Re-send the offer to the current candidate (admin)
    - POST /projects/{id}/choose/ - Current candidate accepts (faculty)
    - POST /projects/{id}/pass/ - Current candidate declines (faculty)
    - POST /projects/{id}/admin_override/ - Allocate any faculty (admin)
    - POST /projects/{id}/cancel/ - Cancel a pending project (admin)
    - POST /projects/{id}/reconcile/ - Repair cascade state (admin)
    - GET /projects/presented_to_me/ - Faculty decision inbox
    - GET /projects/awaiting_admin/ - Projects with exhausted preferences (admin)
    """

    queryset = Project.objects.all()
    filterset_class = ProjectFilter
    lookup_value_regex = r'\d+'

    def get_serializer_class(self):
        """Return appropriate serializer based on action"""
        if self.action in ['list', 'presented_to_me', 'awaiting_admin']:
            return ProjectBasicSerializer
        return ProjectDetailSerializer

    def get_permissions(self):
        """Set permissions based on action"""
        if self.action in ['present', 'admin_override', 'cancel', 'reconcile', 'awaiting_admin']:
            return [IsAdminRole()]
        if self.action in ['choose', 'pass_project', 'presented_to_me']:
            return [IsFacultyRole()]
        if self.action == 'create':
            return [IsStudentRole()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        queryset = Project.objects.select_related(
            'student__user', 'faculty__user', 'group'
        ).order_by('-created_at')
        user = self.request.user

        if user.role == User.ROLE_ADMIN:
            return queryset
        if user.role == User.ROLE_FACULTY and hasattr(user, 'faculty'):
            return queryset.filter(
                Q(faculty_preference__entries__faculty=user.faculty) | Q(faculty=user.faculty)
            ).distinct()
        if user.role == User.ROLE_STUDENT and hasattr(user, 'student'):
            return queryset.filter(
                Q(student=user.student) |
                Q(group__memberships__student=user.student, group__memberships__is_active=True)
            ).distinct()
        return queryset.none()

    def create(self, request):
        """
        Register a solo project and present it to the first-ranked faculty.

        POST /api/projects/
        {
            "title": "Compiler for a toy language",
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
        )
        return self.operation_response(result, success_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def present(self, request, pk=None):
        """
        POST /api/projects/{id}/present/

        Idempotent; 200 with "Awaiting admin allocation" when the list is exhausted.
        """
        project = self.get_object()
        return self.operation_response(cascade.present(project.pk))

    @action(detail=True, methods=['post'], throttle_classes=[CascadeDecisionThrottle])
    def choose(self, request, pk=None):
        """
        Accept the project currently presented to you.

        POST /api/projects/{id}/choose/
        {"comments": "Happy to supervise"}
        """
        serializer = ChooseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cascade.choose(pk, request.user.faculty.pk, comments=serializer.validated_data['comments'])
        return self.operation_response(result)

    @action(detail=True, methods=['post'], url_path='pass', throttle_classes=[CascadeDecisionThrottle])
    def pass_project(self, request, pk=None):
        """
        Decline the project currently presented to you.

        POST /api/projects/{id}/pass/
        {"reason": "capacity_full", "comments": "Already supervising five projects"}
        """
        serializer = PassSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cascade.pass_(
            pk,
            request.user.faculty.pk,
            reason=serializer.validated_data['reason'],
            comments=serializer.validated_data['comments'],
        )
        return self.operation_response(result)

    @action(detail=True, methods=['post'])
    def admin_override(self, request, pk=None):
        """
        POST /api/projects/{id}/admin_override/
        {"faculty_id": 7}
        """
        serializer = AdminOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cascade.admin_override(pk, serializer.validated_data['faculty_id'], admin_user=request.user)
        return self.operation_response(result)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """POST /api/projects/{id}/cancel/"""
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cascade.cancel(pk, admin_user=request.user, reason=serializer.validated_data['reason'])
        return self.operation_response(result)

    @action(detail=True, methods=['post'])
    def reconcile(self, request, pk=None):
        """POST /api/projects/{id}/reconcile/"""
        result = reconciliation.reconcile(pk, user=request.user)
        return self.operation_response(result)

    @action(detail=False, methods=['get'])
    def presented_to_me(self, request):
        """
        Projects waiting for your decision, oldest first.

        GET /api/projects/presented_to_me/
        """
        projects = cascade.projects_presented_to(request.user.faculty)
        serializer = self.get_serializer(projects, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def awaiting_admin(self, request):
        """GET /api/projects/awaiting_admin/"""
        projects = cascade.projects_awaiting_admin().select_related('student__user', 'faculty__user')
        serializer = self.get_serializer(projects, many=True)
        return Response(serializer.data)
