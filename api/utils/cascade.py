"""
Faculty allocation cascade.

A project is offered to the faculty in its preference list one at a time,
in ascending priority. The faculty currently being offered the project
either chooses it (allocation is final) or passes it on to the next
candidate. When the list runs out the project waits for an admin, who may
allocate any faculty directly.

Project.current_faculty_index is the authoritative cursor. Every step
writes the same value to FacultyPreference.current_faculty_index inside the
same transaction; api.utils.reconciliation repairs records where the two
drifted apart anyway.

Public operations return result dicts (see api.utils.results).
"""
import structlog
from django.db import transaction
from django.utils import timezone

from api.api_models import (
    AllocatedBy,
    AllocationHistory,
    AuditLog,
    Faculty,
    FacultyNotification,
    FacultyPreference,
    Group,
    Project,
)
from api.exceptions import (
    AlreadyAllocatedError,
    ConflictError,
    ExhaustedError,
    NotCurrentCandidateError,
    NotFoundError,
    ValidationError,
)
from .events import emit
from .notifications import schedule_faculty_notification
from .results import operation_result

logger = structlog.get_logger(__name__)


# ============= LOOKUPS & PREDICATES =============

def load_for_update(project_id):
    """
    Lock and return (project, preference) for one cascade step.

    Must be called inside transaction.atomic().

    A preference cursor that disagrees with the project cursor is logged and
    left as is; callers work from the project cursor. pass_() and the
    allocating operations write the mirror back. Otherwise the reconciler
    repairs it, and it needs to see the divergence to do so.
    """
    try:
        project = Project.objects.select_for_update().get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFoundError(f"Project {project_id} not found")

    try:
        preference = FacultyPreference.objects.select_for_update().get(project_id=project.pk)
    except FacultyPreference.DoesNotExist:
        raise NotFoundError(f"Project {project_id} has no faculty preferences")

    if project.current_faculty_index != preference.current_faculty_index:
        logger.warning(
            "cursor_divergence_detected",
            project_id=project.pk,
            project_index=project.current_faculty_index,
            preference_index=preference.current_faculty_index,
        )

    return project, preference


def current_entry(project, preference):
    """PreferenceEntry at the project's cursor, or None when the list is exhausted"""
    return preference.entry_at(project.current_faculty_index)


def is_current_candidate(project, preference, faculty_id):
    """
    True if `faculty_id` is the faculty the project is currently offered to.

    The only candidate check used by choose/pass and the faculty inbox.
    """
    if preference.status != FacultyPreference.Status.PENDING:
        return False
    entry = current_entry(project, preference)
    return entry is not None and entry.faculty_id == _as_id(faculty_id)


def _as_id(faculty_or_id):
    if isinstance(faculty_or_id, Faculty):
        return faculty_or_id.pk
    try:
        return int(faculty_or_id)
    except (TypeError, ValueError):
        return None


def _ensure_pending(project, preference):
    if preference.status != FacultyPreference.Status.PENDING:
        raise AlreadyAllocatedError(
            f"Project {project.pk} is {preference.status}, not pending allocation"
        )
    if project.status not in Project.OVERRIDABLE_STATUSES:
        raise AlreadyAllocatedError(
            f"Project {project.pk} is {project.status}, not pending allocation"
        )


def _require_current_candidate(project, preference, faculty_id):
    _ensure_pending(project, preference)
    if not is_current_candidate(project, preference, faculty_id):
        raise NotCurrentCandidateError(project_id=project.pk)
    return current_entry(project, preference)


def _emit_on_commit(event_type, payload):
    transaction.on_commit(lambda: emit(event_type, payload))


# ============= STEPS (caller holds the locks) =============

def present_locked(project, preference):
    """
    Record that the project is presented to the faculty at the cursor.

    Idempotent: no history entry and no notification if that faculty
    already has a 'presented' entry.

    Returns:
        tuple: (PreferenceEntry, created: bool)

    Raises:
        ExhaustedError: cursor is past the end of the preference list
    """
    entry = current_entry(project, preference)
    if entry is None:
        raise ExhaustedError(
            project_id=project.pk,
            current_faculty_index=project.current_faculty_index,
        )

    if project.has_been_presented(entry.faculty_id):
        return entry, False

    AllocationHistory.objects.create(
        project=project,
        faculty=entry.faculty,
        priority=entry.priority,
        action=AllocationHistory.Action.PRESENTED,
    )
    if project.status == Project.Status.REGISTERED:
        project.status = Project.Status.PENDING_ALLOCATION
    project.save_versioned(['status'])

    schedule_faculty_notification(entry.faculty, project)
    _emit_on_commit('project_presented', {
        'project_id': project.pk,
        'faculty_id': entry.faculty_id,
        'priority': entry.priority,
    })

    logger.info(
        "project_presented",
        project_id=project.pk,
        faculty_id=entry.faculty_id,
        priority=entry.priority,
        current_faculty_index=project.current_faculty_index,
    )
    return entry, True


def mark_awaiting_admin(project):
    """Move a project whose preference list is exhausted to the admin queue."""
    project.status = Project.Status.PENDING_ADMIN_ALLOCATION
    project.save_versioned(['status'])

    _emit_on_commit('project_awaiting_admin', {'project_id': project.pk})
    logger.info(
        "project_awaiting_admin_allocation",
        project_id=project.pk,
        current_faculty_index=project.current_faculty_index,
    )


def _lock_group_after_allocation(project):
    if not project.group_id:
        return
    group = Group.objects.select_for_update().get(pk=project.group_id)
    if group.status == Group.Status.FINALIZED:
        group.status = Group.Status.LOCKED
        group.save_versioned(['status'])


def _allocate(project, preference, faculty, allocated_by):
    now = timezone.now()

    project.faculty = faculty
    project.status = Project.Status.FACULTY_ALLOCATED
    project.allocated_by = allocated_by
    project.save_versioned(['faculty', 'status', 'allocated_by'])

    preference.status = FacultyPreference.Status.ALLOCATED
    preference.allocated_faculty = faculty
    preference.allocated_by = allocated_by
    preference.allocated_at = now
    preference.current_faculty_index = project.current_faculty_index
    preference.save_versioned([
        'status', 'allocated_faculty', 'allocated_by', 'allocated_at', 'current_faculty_index',
    ])

    _lock_group_after_allocation(project)


def _step_data(project, preference):
    return {
        'project_id': project.pk,
        'status': project.status,
        'preference_status': preference.status,
        'faculty_id': project.faculty_id,
        'allocated_by': project.allocated_by or None,
        'current_faculty_index': project.current_faculty_index,
    }


# ============= PUBLIC OPERATIONS =============

@operation_result
def present(project_id):
    """
    Present a project to the faculty at its cursor (idempotent).

    Fails with 'exhausted' when every preference has been offered.
    """
    with transaction.atomic():
        project, preference = load_for_update(project_id)
        _ensure_pending(project, preference)
        entry, created = present_locked(project, preference)

    data = _step_data(project, preference)
    data['presented_to'] = entry.faculty_id
    data['newly_presented'] = created
    return data, 'Project presented' if created else 'Project already presented'


@operation_result
def choose(project_id, faculty_id, comments=''):
    """
    Current candidate accepts the project.

    Preconditions: preference list pending, faculty is the current candidate.
    """
    with transaction.atomic():
        project, preference = load_for_update(project_id)
        entry = _require_current_candidate(project, preference, faculty_id)

        # A stuck project may never have been presented; keep the history ordered
        present_locked(project, preference)

        AllocationHistory.objects.create(
            project=project,
            faculty=entry.faculty,
            priority=entry.priority,
            action=AllocationHistory.Action.CHOSEN,
            comments=comments[:500],
        )
        _allocate(project, preference, entry.faculty, AllocatedBy.CANDIDATE_CHOICE)

        _emit_on_commit('project_allocated', {
            'project_id': project.pk,
            'faculty_id': entry.faculty_id,
            'allocated_by': AllocatedBy.CANDIDATE_CHOICE,
        })

    logger.info(
        "project_chosen",
        project_id=project.pk,
        faculty_id=entry.faculty_id,
        priority=entry.priority,
    )
    return _step_data(project, preference), 'Project allocated to you'


@operation_result
def pass_(project_id, faculty_id, reason=FacultyPreference.RejectionReason.OTHER, comments=''):
    """
    Current candidate declines; the project moves to the next preference.

    The cursor advances by exactly one on both records. If no preference is
    left the project waits for admin allocation (not an error).
    """
    if reason not in FacultyPreference.RejectionReason.values:
        raise ValidationError(
            f"Unknown pass reason {reason!r}; expected one of {FacultyPreference.RejectionReason.values}"
        )

    with transaction.atomic():
        project, preference = load_for_update(project_id)
        entry = _require_current_candidate(project, preference, faculty_id)

        present_locked(project, preference)

        AllocationHistory.objects.create(
            project=project,
            faculty=entry.faculty,
            priority=entry.priority,
            action=AllocationHistory.Action.PASSED,
            comments=comments[:500],
        )

        new_index = project.current_faculty_index + 1
        project.current_faculty_index = new_index
        project.save_versioned(['current_faculty_index'])

        preference.current_faculty_index = new_index
        preference.rejection_reason = reason
        preference.rejection_comments = comments
        preference.save_versioned(['current_faculty_index', 'rejection_reason', 'rejection_comments'])

        if new_index < preference.preference_count:
            next_entry, _ = present_locked(project, preference)
            message = 'Project passed to the next preferred faculty'
        else:
            next_entry = None
            mark_awaiting_admin(project)
            message = 'Awaiting admin allocation'

        _emit_on_commit('project_passed', {
            'project_id': project.pk,
            'faculty_id': entry.faculty_id,
            'current_faculty_index': new_index,
        })

    logger.info(
        "project_passed",
        project_id=project.pk,
        faculty_id=entry.faculty_id,
        reason=reason,
        current_faculty_index=new_index,
        next_faculty_id=next_entry.faculty_id if next_entry else None,
    )
    data = _step_data(project, preference)
    data['next_faculty_id'] = next_entry.faculty_id if next_entry else None
    return data, message


@operation_result
def admin_override(project_id, faculty_id, admin_user=None):
    """
    Allocate a faculty directly, regardless of cursor or list membership.

    Valid while the preference list is pending and the project has not
    been allocated or cancelled.
    """
    faculty = Faculty.objects.select_related('user').filter(pk=_as_id(faculty_id)).first()
    if faculty is None:
        raise NotFoundError(f"Faculty {faculty_id} not found")

    with transaction.atomic():
        project, preference = load_for_update(project_id)
        _ensure_pending(project, preference)

        previous_status = project.status
        _allocate(project, preference, faculty, AllocatedBy.ADMIN_OVERRIDE)

        AuditLog.log_action(
            AuditLog.Action.ADMIN_OVERRIDE,
            project,
            changes={
                'faculty': {'old': None, 'new': faculty.full_name},
                'status': {'old': previous_status, 'new': project.status},
            },
            user=admin_user,
        )
        schedule_faculty_notification(faculty, project, FacultyNotification.Type.ALLOCATION_CHANGE)
        _emit_on_commit('project_allocated', {
            'project_id': project.pk,
            'faculty_id': faculty.pk,
            'allocated_by': AllocatedBy.ADMIN_OVERRIDE,
        })

    logger.info(
        "project_admin_override",
        project_id=project.pk,
        faculty_id=faculty.pk,
        previous_status=previous_status,
        admin_id=getattr(admin_user, 'id', None),
    )
    return _step_data(project, preference), 'Faculty allocated by admin'


@operation_result
def cancel(project_id, admin_user=None, reason=''):
    """Administrative cancellation of a project that is still pending allocation."""
    with transaction.atomic():
        project, preference = load_for_update(project_id)
        if project.status == Project.Status.CANCELLED:
            raise ConflictError(f"Project {project.pk} is already cancelled")
        _ensure_pending(project, preference)

        candidate = current_entry(project, preference)
        previous_status = project.status

        project.status = Project.Status.CANCELLED
        project.save_versioned(['status'])
        preference.status = FacultyPreference.Status.CANCELLED
        preference.rejection_comments = reason
        preference.save_versioned(['status', 'rejection_comments'])

        AuditLog.log_action(
            AuditLog.Action.CANCEL,
            project,
            changes={'status': {'old': previous_status, 'new': project.status}},
            user=admin_user,
        )
        if candidate is not None and project.has_been_presented(candidate.faculty_id):
            schedule_faculty_notification(
                candidate.faculty, project, FacultyNotification.Type.PROJECT_CANCELLED
            )
        _emit_on_commit('project_cancelled', {'project_id': project.pk})

    logger.info("project_cancelled", project_id=project.pk, admin_id=getattr(admin_user, 'id', None))
    return _step_data(project, preference), 'Project cancelled'


# ============= QUERIES =============

def projects_presented_to(faculty):
    """
    Projects currently offered to `faculty` (its decision inbox).

    Returns:
        list of Project, oldest first
    """
    preferences = (
        FacultyPreference.objects
        .filter(status=FacultyPreference.Status.PENDING, entries__faculty=faculty)
        .select_related('project')
        .order_by('created_at')
        .distinct()
    )
    return [
        preference.project for preference in preferences
        if preference.project.status in Project.OVERRIDABLE_STATUSES
        and is_current_candidate(preference.project, preference, faculty.pk)
    ]


def projects_awaiting_admin():
    return Project.objects.filter(
        status=Project.Status.PENDING_ADMIN_ALLOCATION,
        faculty__isnull=True,
    ).order_by('created_at')


def allocation_status(project):
    """
    Human-readable allocation progress for a project.

    Returns:
        dict with 'status', 'message' and cursor details
    """
    preference = FacultyPreference.objects.filter(project=project).first()

    if project.faculty_id:
        return {
            'status': 'allocated',
            'allocated_faculty': project.faculty_id,
            'allocated_by': project.allocated_by,
            'message': 'Project has been allocated to faculty',
        }
    if project.status == Project.Status.CANCELLED:
        return {'status': 'cancelled', 'message': 'Project was cancelled'}
    if preference is None:
        return {'status': 'not_submitted', 'message': 'Faculty preferences not submitted'}

    total = preference.preference_count
    index = project.current_faculty_index
    if index >= total:
        return {
            'status': 'awaiting_admin',
            'message': 'All faculty have passed - awaiting admin allocation',
            'current_faculty_index': index,
            'total_faculty': total,
        }

    entry = current_entry(project, preference)
    return {
        'status': 'pending',
        'current_faculty': entry.faculty_id if entry else None,
        'current_faculty_index': index,
        'total_faculty': total,
        'message': f"Presented to faculty {index + 1} of {total}",
    }
