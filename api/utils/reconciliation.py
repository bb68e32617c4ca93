"""
Allocation reconciliation.

Repairs projects whose cascade state is inconsistent:
- Project and FacultyPreference cursors disagree (Project wins)
- the faculty at the cursor never got a 'presented' entry ("stuck" project)
- the cursor is past the end of the list but the project is still pending

Safe to re-run and safe to run alongside live cascade operations: every
repair happens under the same row locks the cascade uses, and a project
that needs nothing is left untouched.
"""
import structlog
from django.db import transaction

from api.api_models import AuditLog, FacultyPreference, Project
from api.exceptions import DivergenceError, NotFoundError
from .cascade import current_entry, load_for_update, mark_awaiting_admin, present_locked
from .results import operation_result

logger = structlog.get_logger(__name__)

# Projects the sweep looks at: unallocated and not cancelled
RECONCILABLE_STATUSES = (
    Project.Status.REGISTERED,
    Project.Status.PENDING_ALLOCATION,
    Project.Status.PENDING_ADMIN_ALLOCATION,
)


def check_cursor_agreement(project, preference):
    """
    Raises:
        DivergenceError: when the two cursors differ
    """
    if project.current_faculty_index != preference.current_faculty_index:
        raise DivergenceError(project.current_faculty_index, preference.current_faculty_index)


def diagnose(project, preference):
    """
    Report what is wrong with a project without changing anything.

    Returns:
        dict: {'needs_repair': bool, 'issues': [str, ...]}
    """
    issues = []

    if preference is None:
        return {'needs_repair': False, 'issues': ['Project has no faculty preferences']}
    if project.faculty_id or project.status not in RECONCILABLE_STATUSES:
        return {'needs_repair': False, 'issues': []}
    if preference.status != FacultyPreference.Status.PENDING:
        return {'needs_repair': False, 'issues': []}

    try:
        check_cursor_agreement(project, preference)
    except DivergenceError as e:
        issues.append(e.message)

    entry = current_entry(project, preference)
    if entry is None:
        if project.status != Project.Status.PENDING_ADMIN_ALLOCATION:
            issues.append('All preferences exhausted but project is not awaiting admin allocation')
    elif not project.has_been_presented(entry.faculty_id):
        if project.current_faculty_index == 0:
            issues.append('Project at index 0 but never presented to first faculty')
        else:
            issues.append('Project was passed but not presented to current faculty')

    return {'needs_repair': bool(issues), 'issues': issues}


def reconcile_locked(project, preference, user=None):
    """
    Repair one project. Caller holds the row locks.

    Returns:
        dict: {'project_id', 'repaired', 'actions': [str, ...]}
    """
    actions = []

    if project.faculty_id or project.status not in RECONCILABLE_STATUSES:
        return {'project_id': project.pk, 'repaired': False, 'actions': actions}
    if preference.status != FacultyPreference.Status.PENDING:
        return {'project_id': project.pk, 'repaired': False, 'actions': actions}

    # 1. Project cursor is authoritative
    try:
        check_cursor_agreement(project, preference)
    except DivergenceError as e:
        preference.current_faculty_index = e.project_index
        preference.save_versioned(['current_faculty_index'])
        actions.append(f"synced preference index {e.preference_index} -> {e.project_index}")

    # 2. Present to the current candidate if that never happened
    if current_entry(project, preference) is not None:
        entry, created = present_locked(project, preference)
        if created:
            actions.append(f"presented to faculty {entry.faculty_id}")
    # 3. Exhausted list: hand over to admin
    elif project.status != Project.Status.PENDING_ADMIN_ALLOCATION:
        mark_awaiting_admin(project)
        actions.append('moved to pending_admin_allocation')

    if actions:
        AuditLog.log_action(
            AuditLog.Action.RECONCILE,
            project,
            changes={'repairs': {'old': None, 'new': '; '.join(actions)}},
            user=user,
        )
        logger.info("project_reconciled", project_id=project.pk, actions=actions)

    return {'project_id': project.pk, 'repaired': bool(actions), 'actions': actions}


@operation_result
def reconcile(project_id, user=None):
    """Reconcile a single project on demand."""
    with transaction.atomic():
        project, preference = load_for_update(project_id)
        outcome = reconcile_locked(project, preference, user=user)

    message = 'Project repaired' if outcome['repaired'] else 'Project is consistent'
    return outcome, message


def reconcile_all(dry_run=False, user=None):
    """
    Sweep every unallocated project and repair the inconsistent ones.

    Each project is handled in its own transaction so one failure does not
    undo the others.

    Returns:
        dict: {'checked', 'repaired', 'skipped', 'errors': [{'project_id', 'error'}], 'details': [...]}
    """
    stats = {'checked': 0, 'repaired': 0, 'skipped': 0, 'errors': [], 'details': []}

    candidates = (
        Project.objects
        .filter(status__in=RECONCILABLE_STATUSES, faculty__isnull=True)
        .order_by('pk')
        .values_list('pk', flat=True)
    )

    for project_id in candidates:
        stats['checked'] += 1

        if dry_run:
            project = Project.objects.get(pk=project_id)
            preference = FacultyPreference.objects.filter(project=project).first()
            report = diagnose(project, preference)
            if report['needs_repair']:
                stats['details'].append({'project_id': project_id, 'issues': report['issues']})
            else:
                stats['skipped'] += 1
            continue

        try:
            with transaction.atomic():
                project, preference = load_for_update(project_id)
                outcome = reconcile_locked(project, preference, user=user)
        except NotFoundError as e:
            stats['skipped'] += 1
            logger.info("reconcile_skipped", project_id=project_id, reason=e.message)
            continue
        except Exception as e:
            logger.exception("reconcile_failed", project_id=project_id)
            stats['errors'].append({'project_id': project_id, 'error': str(e)})
            continue

        if outcome['repaired']:
            stats['repaired'] += 1
            stats['details'].append(outcome)
        else:
            stats['skipped'] += 1

    logger.info(
        "reconcile_sweep_finished",
        checked=stats['checked'],
        repaired=stats['repaired'],
        skipped=stats['skipped'],
        errors=len(stats['errors']),
        dry_run=dry_run,
    )
    return stats
