from celery import shared_task
from django.core.mail import send_mail
from django.conf import settings
import structlog

from api.api_models import FacultyNotification
from api.utils.reconciliation import reconcile_all

logger = structlog.get_logger(__name__)


@shared_task
def reconcile_stuck_allocations():
    """
    Repair projects whose allocation cascade got stuck.

    Syncs divergent cursors, presents projects that were never presented to
    their current candidate and hands exhausted lists over to admins.

    Runs every 15 minutes (see CELERY_BEAT_SCHEDULE).
    """
    stats = reconcile_all()

    if stats['errors']:
        logger.error(
            "reconcile_sweep_errors",
            error_count=len(stats['errors']),
            project_ids=[e['project_id'] for e in stats['errors']],
        )

    return (
        f"Checked {stats['checked']} projects: {stats['repaired']} repaired, "
        f"{stats['skipped']} consistent, {len(stats['errors'])} errors"
    )


@shared_task
def send_allocation_email(notification_id):
    """
    Send the email copy of a faculty notification.

    Args:
        notification_id: ID of the FacultyNotification to send

    Failures are re-raised to mark the task as FAILURE; the in-app
    notification already exists either way.
    """
    logger.info("allocation_email_started", notification_id=notification_id)

    try:
        notification = FacultyNotification.objects.select_related(
            'faculty__user', 'project'
        ).get(id=notification_id)

        recipient = notification.faculty.user.email
        if not recipient:
            logger.warning("allocation_email_skipped", notification_id=notification_id, reason="no email address")
            return 0

        message = f"""
Dear {notification.faculty.full_name},

{notification.message}

Please log in to review the project and record your decision.
        """

        result = send_mail(
            notification.title,
            message,
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
            fail_silently=False,
        )

        logger.info("allocation_email_sent", notification_id=notification_id, recipient=recipient)
        return result

    except FacultyNotification.DoesNotExist:
        logger.error("allocation_email_failed", notification_id=notification_id, reason="notification not found")
        raise
    except Exception:
        logger.exception("allocation_email_failed", notification_id=notification_id)
        raise
