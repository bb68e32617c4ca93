"""
General standalone view functions.
"""

from django.core.cache import cache
from django.db import DatabaseError, connection
from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
import structlog

from ..api_models import Project

logger = structlog.get_logger(__name__)

HEALTH_CACHE_KEY = 'health_check'


def _check_database():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")


def _check_cache():
    cache.set(HEALTH_CACHE_KEY, 'ok', 10)
    if cache.get(HEALTH_CACHE_KEY) != 'ok':
        raise RuntimeError('value mismatch')


def _allocation_backlog():
    """Projects still waiting on a faculty decision or on an admin."""
    return {
        'pending_allocation': Project.objects.filter(status=Project.Status.PENDING_ALLOCATION).count(),
        'awaiting_admin': Project.objects.filter(status=Project.Status.PENDING_ADMIN_ALLOCATION).count(),
    }


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def health_check(request):
    """
    Liveness probe for the load balancer.

    GET /api/health/

    200 with {'status': 'healthy', 'database': 'ok', 'cache': 'ok', 'backlog': {...}}
    503 when the database or the cache (Redis in production) is unreachable.
    """
    checks = {'database': _check_database, 'cache': _check_cache}
    report = {'status': 'healthy'}

    for name, check in checks.items():
        try:
            check()
            report[name] = 'ok'
        except Exception as e:
            report[name] = f'error: {e}'
            report['status'] = 'unhealthy'

    if report['database'] == 'ok':
        try:
            report['backlog'] = _allocation_backlog()
        except DatabaseError:
            logger.exception("health_check_backlog_failed")

    if report['status'] != 'healthy':
        logger.warning("health_check_failed", **{k: v for k, v in report.items() if k != 'backlog'})
        return Response(report, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    return Response(report)
