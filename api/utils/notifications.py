"""
Faculty notification utilities.

Notifications are fire-and-forget: they are scheduled to run after the
cascade transaction commits, and any failure is logged instead of raised.
"""
import structlog
from django.db import transaction

from api.api_models import FacultyNotification, SystemSettings

logger = structlog.get_logger(__name__)


def unit_summary(project):
    """
    Short description of a project for notifications and events.

    Returns:
        dict: {'project_id', 'title', 'group', 'members', 'student', 'status'}
    """
    members = []
    group_name = None
    if project.group_id:
        group_name = str(project.group)
        members = [
            m.student.full_name
            for m in project.group.active_members().select_related('student__user')
        ]

    return {
        'project_id': project.id,
        'title': project.title,
        'group': group_name,
        'members': members,
        'student': project.student.full_name,
        'status': project.status,
    }


def notify_faculty(faculty, project, notification_type=FacultyNotification.Type.ALLOCATION_OFFER,
                   title=None, message=None):
    """
    Create an in-app notification and queue the email.

    Never raises: failures are logged and None is returned.

    Args:
        faculty: Faculty to notify
        project: Project the notification is about
        notification_type: FacultyNotification.Type value
        title: optional title (defaults by type)
        message: optional message (defaults to a project summary)

    Returns:
        FacultyNotification or None
    """
    try:
        summary = unit_summary(project)
        if title is None:
            title = _default_title(notification_type)
        if message is None:
            message = _default_message(summary)

        notification = FacultyNotification.objects.create(
            faculty=faculty,
            type=notification_type,
            title=title,
            message=message,
            project=project,
        )

        if SystemSettings.load().notify_faculty_by_email and faculty.user.email:
            from background_tasks.tasks import send_allocation_email
            send_allocation_email.delay(notification.id)

        logger.info(
            "faculty_notified",
            faculty_id=faculty.id,
            project_id=project.id,
            notification_type=notification_type,
        )
        return notification
    except Exception:
        logger.exception(
            "faculty_notification_failed",
            faculty_id=getattr(faculty, 'id', None),
            project_id=getattr(project, 'id', None),
        )
        return None


def schedule_faculty_notification(faculty, project, notification_type=FacultyNotification.Type.ALLOCATION_OFFER):
    """Notify once the surrounding transaction commits (immediately if there is none)."""
    transaction.on_commit(
        lambda: notify_faculty(faculty, project, notification_type=notification_type)
    )


def _default_title(notification_type):
    titles = {
        FacultyNotification.Type.ALLOCATION_OFFER: "New project awaiting your decision",
        FacultyNotification.Type.ALLOCATION_CHANGE: "Project allocation changed",
        FacultyNotification.Type.PROJECT_CANCELLED: "Project cancelled",
    }
    return titles.get(notification_type, "Project update")


def _default_message(summary):
    lines = [f"Project: {summary['title']}"]
    if summary['group']:
        lines.append(f"Group: {summary['group']}")
        if summary['members']:
            lines.append(f"Members: {', '.join(summary['members'])}")
    else:
        lines.append(f"Student: {summary['student']}")
    return "\n".join(lines)
