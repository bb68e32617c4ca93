"""
Project registration with ranked faculty preferences.

Registering creates the Project, its FacultyPreference list and the entries,
then presents the project to the first-ranked faculty, all in one
transaction.
"""
import structlog
from django.db import transaction

from api.api_models import Faculty, FacultyPreference, Group, PreferenceEntry, Project, SystemSettings
from api.exceptions import ConflictError, NotFoundError, ValidationError
from .cascade import present_locked
from .invariants import validate_preference_entries
from .results import operation_result

logger = structlog.get_logger(__name__)


def _normalize_entries(entries):
    """Accept [{'faculty_id', 'priority'}, ...] or [(faculty_id, priority), ...]"""
    pairs = []
    for item in entries or []:
        if isinstance(item, dict):
            if 'faculty_id' not in item or 'priority' not in item:
                raise ValidationError("Each preference needs a faculty_id and a priority")
            faculty_id, priority = item['faculty_id'], item['priority']
        else:
            try:
                faculty_id, priority = item
            except (TypeError, ValueError):
                raise ValidationError(f"Malformed preference entry {item!r}")
        if isinstance(faculty_id, bool):
            raise ValidationError(f"Invalid faculty id {faculty_id!r}")
        try:
            faculty_id = int(faculty_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid faculty id {faculty_id!r}")
        pairs.append((faculty_id, priority))
    return pairs


@operation_result
def submit_preferences(student, entries, title, description='', project_type='', group_id=None):
    """
    Register a project and start its allocation cascade.

    For a group project the group must be finalized and `student` must be
    its leader. A group or a solo student can hold only one live project.

    Args:
        student: submitting Student
        entries: ranked faculty, see _normalize_entries
        title: project title
        group_id: owning group, or None for a solo project

    Returns:
        result dict; data has project_id, status and presented_to
    """
    if not title or not str(title).strip():
        raise ValidationError("Project title is required")

    settings = SystemSettings.load()
    pairs = validate_preference_entries(
        _normalize_entries(entries),
        max_preferences=settings.max_faculty_preferences,
        min_preferences=settings.min_faculty_preferences,
    )

    faculty_ids = [faculty_id for faculty_id, _ in pairs]
    faculty = Faculty.objects.in_bulk(faculty_ids)
    missing = [fid for fid in faculty_ids if fid not in faculty]
    if missing:
        raise NotFoundError(f"Faculty not found: {missing}")

    with transaction.atomic():
        group = None
        if group_id is not None:
            try:
                group = Group.objects.select_for_update().get(pk=group_id)
            except Group.DoesNotExist:
                raise NotFoundError(f"Group {group_id} not found")
            if not group.is_leader(student):
                raise ConflictError("Only the group leader can submit faculty preferences")
            if group.status != Group.Status.FINALIZED:
                raise ConflictError("Group must be finalized before submitting faculty preferences")
            if Project.objects.filter(group=group).exists():
                raise ConflictError("This group already has a project")
        else:
            live = Project.objects.filter(student=student, group__isnull=True).exclude(
                status=Project.Status.CANCELLED
            )
            if live.exists():
                raise ConflictError("You already have a registered project")

        project = Project.objects.create(
            title=str(title).strip(),
            description=description,
            project_type=project_type,
            semester=group.semester if group else student.semester,
            student=student,
            group=group,
            **({'academic_year': group.academic_year} if group else {}),
        )
        preference = FacultyPreference.objects.create(
            project=project,
            student=student,
            group=group,
        )
        PreferenceEntry.objects.bulk_create([
            PreferenceEntry(preference=preference, faculty=faculty[faculty_id], priority=priority)
            for faculty_id, priority in pairs
        ])

        entry, _ = present_locked(project, preference)

    logger.info(
        "project_registered",
        project_id=project.pk,
        student_id=student.pk,
        group_id=group.pk if group else None,
        preference_count=len(pairs),
        presented_to=entry.faculty_id,
    )
    return {
        'project_id': project.pk,
        'status': project.status,
        'current_faculty_index': project.current_faculty_index,
        'presented_to': entry.faculty_id,
    }, 'Preferences submitted'
