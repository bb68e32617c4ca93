"""
ViewSet for AuditLog.

Admins review overrides, cancellations, reconciler repairs and disbanded groups.
"""

from rest_framework import viewsets
from django_filters import rest_framework as filters

from ..api_models import AuditLog
from ..serializers import AuditLogSerializer
from ..permissions import IsAdminRole


class AuditLogFilter(filters.FilterSet):
    """Filter for AuditLog queryset"""
    user = filters.NumberFilter(field_name='user__id')
    model = filters.CharFilter(field_name='model_name', lookup_expr='iexact')
    object_id = filters.CharFilter()
    action = filters.ChoiceFilter(choices=AuditLog.Action.choices)
    date_from = filters.DateTimeFilter(field_name='timestamp', lookup_expr='gte')
    date_to = filters.DateTimeFilter(field_name='timestamp', lookup_expr='lte')

    class Meta:
        model = AuditLog
        fields = ['user', 'model', 'object_id', 'action', 'date_from', 'date_to']


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only audit trail.

    Only admins can access audit logs. Filter by user, model, object,
    action and date range, e.g. GET /api/audit-logs/?model=Project&object_id=12
    """

    queryset = AuditLog.objects.all().select_related('user').order_by('-timestamp')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminRole]
    filterset_class = AuditLogFilter
