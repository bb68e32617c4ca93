"""
Invariant checks for preference lists, allocation history and groups.

Write-time validators raise ValidationError before anything is
persisted. The check_* helpers return a list of human-readable violations
and are used by the reconciler's diagnosis and by tests.
"""
from api.api_models import AllocatedBy, AllocationHistory, FacultyPreference, GroupMembership
from api.api_models.system_settings import PREFERENCE_LIMIT_CEILING
from api.exceptions import ValidationError


def validate_preference_entries(entries, max_preferences, min_preferences=1):
    """
    Validate ranked faculty entries before a preference list is written.

    Args:
        entries: iterable of (faculty_id, priority) pairs
        max_preferences: N, priorities must lie in 1..N
        min_preferences: minimum number of entries required

    Returns:
        list of (faculty_id, priority) sorted by priority

    Raises:
        ValidationError: on empty/short/long lists, priorities
            out of range, duplicate priorities or duplicate faculty
    """
    entries = list(entries)
    max_preferences = min(max_preferences, PREFERENCE_LIMIT_CEILING)

    if len(entries) < max(min_preferences, 1):
        raise ValidationError(
            f"At least {max(min_preferences, 1)} faculty preference(s) required"
        )
    if len(entries) > max_preferences:
        raise ValidationError(
            f"At most {max_preferences} faculty preferences allowed"
        )

    priorities = []
    faculty_ids = []
    for faculty_id, priority in entries:
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError(f"Priority must be an integer, got {priority!r}")
        if priority < 1 or priority > max_preferences:
            raise ValidationError(
                f"Faculty priority must be between 1 and {max_preferences}"
            )
        priorities.append(priority)
        faculty_ids.append(faculty_id)

    if len(set(priorities)) != len(priorities):
        raise ValidationError("Faculty priorities must be unique")
    if len(set(faculty_ids)) != len(faculty_ids):
        raise ValidationError("Each faculty may only be listed once")

    return sorted(entries, key=lambda pair: pair[1])


def check_history_order(project):
    """
    Every chosen/passed entry must be preceded by a presented entry
    for the same faculty.
    """
    violations = []
    presented = set()
    for entry in project.allocation_history.order_by('id'):
        if entry.action == AllocationHistory.Action.PRESENTED:
            presented.add(entry.faculty_id)
        elif entry.faculty_id not in presented:
            violations.append(
                f"History entry {entry.id} ({entry.action}) for faculty {entry.faculty_id} "
                f"has no earlier 'presented' entry"
            )
    return violations


def check_allocation_consistency(preference):
    """Allocated lists must name a faculty; candidate choices must come from the visited part of the list."""
    violations = []
    if preference.status != FacultyPreference.Status.ALLOCATED:
        return violations

    if preference.allocated_faculty_id is None:
        violations.append("Preference is allocated but has no allocated faculty")
        return violations

    if preference.allocated_by == AllocatedBy.CANDIDATE_CHOICE:
        visited = [e.faculty_id for e in preference.sorted_entries()[:preference.current_faculty_index + 1]]
        if preference.allocated_faculty_id not in visited:
            violations.append(
                f"Allocated faculty {preference.allocated_faculty_id} is not within the "
                f"first {preference.current_faculty_index + 1} preference(s)"
            )
    return violations


def check_single_leader(group):
    leaders = group.memberships.filter(
        is_active=True,
        invite_status=GroupMembership.InviteStatus.ACCEPTED,
        role=GroupMembership.Role.LEADER,
    ).count()
    if leaders != 1 and group.status != group.Status.DISBANDED:
        return [f"Group {group.pk} has {leaders} active leaders"]
    return []


def check_member_bounds(group):
    """Active accepted members must stay within max_members, and finalized groups at or above min_members."""
    violations = []
    count = group.active_member_count
    if count > group.max_members:
        violations.append(f"Group {group.pk} has {count} members but max is {group.max_members}")
    if group.is_frozen and count < group.min_members:
        violations.append(
            f"Group {group.pk} is {group.status} with {count} members (below minimum {group.min_members})"
        )
    return violations
