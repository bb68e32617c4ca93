from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.utils import timezone

from ..api_models import FacultyNotification
from ..serializers import FacultyNotificationSerializer
from ..permissions import IsFacultyRole


class FacultyNotificationViewSet(mixins.ListModelMixin,
                                 mixins.RetrieveModelMixin,
                                 viewsets.GenericViewSet):
    """
    In-app notifications for the current faculty member.

    Query params:
        dismissed: 'true' to include dismissed notifications (default: only open ones)

    Custom actions:
    - POST /notifications/{id}/dismiss/
    """

    serializer_class = FacultyNotificationSerializer
    permission_classes = [IsFacultyRole]
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        queryset = FacultyNotification.objects.filter(faculty=self.request.user.faculty)
        if self.request.query_params.get('dismissed') != 'true':
            queryset = queryset.filter(dismissed=False)
        return queryset.order_by('-created_at')

    @action(detail=True, methods=['post'])
    def dismiss(self, request, pk=None):
        notification = FacultyNotification.objects.filter(
            pk=pk, faculty=request.user.faculty
        ).first()
        if notification is None:
            return Response({'error': 'Notification not found'}, status=status.HTTP_404_NOT_FOUND)

        if not notification.dismissed:
            notification.dismissed = True
            notification.dismissed_at = timezone.now()
            notification.save(update_fields=['dismissed', 'dismissed_at'])

        return Response(self.get_serializer(notification).data)
