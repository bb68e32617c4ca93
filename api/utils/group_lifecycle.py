"""
Group formation lifecycle.

forming -> complete (member bounds met) -> finalized (irreversible)
-> locked (faculty allocated). Admins may disband a group that has no
live project.

Every mutation re-reads the group under a row lock and fails closed with
ConflictError when a precondition no longer holds, because invitations and
responses arrive from independent requests.
"""
import structlog
from django.db import transaction
from django.utils import timezone

from api.api_models import AuditLog, Group, GroupMembership, Project, Student, SystemSettings
from api.api_models.system_settings import GROUP_SIZE_CEILING
from api.exceptions import ConflictError, NotFoundError, ValidationError
from .events import emit
from .results import operation_result

logger = structlog.get_logger(__name__)

PENDING = GroupMembership.InviteStatus.PENDING
ACCEPTED = GroupMembership.InviteStatus.ACCEPTED
REJECTED = GroupMembership.InviteStatus.REJECTED
AUTO_REJECTED = GroupMembership.InviteStatus.AUTO_REJECTED

OUTCOME_INVITED = 'invited'
OUTCOME_REINVITED = 'reinvited'


# ============= HELPERS =============

def _lock_student(student_id):
    """
    Lock the student row.

    Operations that can make a student a member take this lock before the
    group lock, so joins by the same student run one at a time.
    """
    return Student.objects.select_for_update().get(pk=student_id)


def _lock_group(group_id):
    try:
        return Group.objects.select_for_update().get(pk=group_id)
    except Group.DoesNotExist:
        raise NotFoundError(f"Group {group_id} not found")


def _ensure_mutable(group):
    if group.status == Group.Status.DISBANDED:
        raise ConflictError(f"Group {group.pk} is disbanded")
    if group.is_frozen:
        raise ConflictError(f"Group {group.pk} is {group.status}; membership can no longer change")


def _ensure_leader(group, student):
    if not group.is_leader(student):
        raise ConflictError("Only the group leader can do this")


def _accepted_elsewhere(student, group):
    return GroupMembership.objects.filter(
        student=student,
        is_active=True,
        invite_status=ACCEPTED,
    ).exclude(group=group).exclude(group__status=Group.Status.DISBANDED).exists()


def _auto_reject(memberships, reason):
    """Auto-reject pending invitations in bulk; returns the number updated"""
    return memberships.filter(invite_status=PENDING, is_active=True).update(
        invite_status=AUTO_REJECTED,
        is_active=False,
        responded_at=timezone.now(),
        rejection_reason=reason,
    )


def refresh_group_status(group):
    """
    Recompute forming/complete from the active member count.

    Finalized, locked and disbanded groups are left alone. Does not save.

    Returns:
        bool: True if the status changed
    """
    if group.is_frozen or group.status == Group.Status.DISBANDED:
        return False

    count = group.active_member_count
    if group.min_members <= count <= group.max_members:
        new_status = Group.Status.COMPLETE
    else:
        new_status = Group.Status.FORMING

    if new_status == group.status:
        return False

    logger.info(
        "group_status_changed",
        group_id=group.pk,
        previous_status=group.status,
        status=new_status,
        member_count=count,
    )
    group.status = new_status
    return True


def _commit_group(group, extra_fields=()):
    """Refresh the derived status and bump the version so racing writers conflict"""
    refresh_group_status(group)
    group.save_versioned(['status', *extra_fields])


def _group_data(group):
    return {
        'group_id': group.pk,
        'status': group.status,
        'member_count': group.active_member_count,
        'min_members': group.min_members,
        'max_members': group.max_members,
    }


def _emit_on_commit(event_type, payload):
    transaction.on_commit(lambda: emit(event_type, payload))


# ============= OPERATIONS =============

@operation_result
def create_group(leader, name='', description='', min_members=None, max_members=None,
                 semester=None, academic_year=None):
    """
    Create a group led by `leader`.

    Member bounds default to SystemSettings. The leader's pending
    invitations to other groups are auto-rejected.
    """
    default_min, default_max = SystemSettings.load().group_bounds
    min_members = default_min if min_members is None else min_members
    max_members = default_max if max_members is None else max_members

    if min_members < 1:
        raise ValidationError("min_members must be at least 1")
    if max_members < min_members:
        raise ValidationError("max_members cannot be smaller than min_members")
    if max_members > GROUP_SIZE_CEILING:
        raise ValidationError(f"A group cannot have more than {GROUP_SIZE_CEILING} members")

    with transaction.atomic():
        leader = _lock_student(leader.pk)
        if _accepted_elsewhere(leader, group=None):
            raise ConflictError("You are already a member of another group")

        group = Group.objects.create(
            name=name,
            description=description,
            min_members=min_members,
            max_members=max_members,
            semester=semester if semester is not None else leader.semester,
            created_by=leader,
            **({'academic_year': academic_year} if academic_year else {}),
        )
        GroupMembership.objects.create(
            group=group,
            student=leader,
            role=GroupMembership.Role.LEADER,
            invite_status=ACCEPTED,
            invited_by=leader,
            responded_at=timezone.now(),
        )
        _auto_reject(
            GroupMembership.objects.filter(student=leader).exclude(group=group),
            f"Student created group {group.pk}",
        )
        _commit_group(group)
        _emit_on_commit('group_created', {'group_id': group.pk, 'leader_id': leader.pk})

    logger.info("group_created", group_id=group.pk, leader_id=leader.pk)
    return _group_data(group), 'Group created'


@operation_result
def invite(group_id, acting_student, student_ids):
    """
    Invite a batch of students.

    The whole batch is rejected if the group is finalized/locked, there are
    not enough free slots for the new invitations, or any target already
    belongs to another group. A student with a pending invitation from this
    group is re-invited instead (reported as 'reinvited').
    """
    student_ids = list(dict.fromkeys(student_ids or []))
    if not student_ids:
        raise ValidationError("No students to invite")

    with transaction.atomic():
        group = _lock_group(group_id)
        _ensure_mutable(group)
        _ensure_leader(group, acting_student)

        students = {s.pk: s for s in Student.objects.filter(pk__in=student_ids)}
        missing = [sid for sid in student_ids if sid not in students]
        if missing:
            raise NotFoundError(f"Students not found: {missing}")

        existing = {
            m.student_id: m
            for m in GroupMembership.objects.select_for_update().filter(group=group, student_id__in=student_ids)
        }

        new_ids = []
        for sid in student_ids:
            membership = existing.get(sid)
            if membership and membership.is_active and membership.invite_status == ACCEPTED:
                raise ConflictError(f"Student {sid} is already a member of this group")
            if _accepted_elsewhere(students[sid], group):
                raise ConflictError(f"Student {sid} is already a member of another group")
            if not (membership and membership.is_active and membership.invite_status == PENDING):
                new_ids.append(sid)

        if len(new_ids) > group.available_slots:
            raise ConflictError(
                f"Not enough free slots: {group.available_slots} available, {len(new_ids)} requested"
            )

        now = timezone.now()
        results = []
        for sid in student_ids:
            membership = existing.get(sid)
            if sid not in new_ids:
                membership.invited_at = now
                membership.invited_by = acting_student
                membership.save(update_fields=['invited_at', 'invited_by'])
                outcome = OUTCOME_REINVITED
            elif membership is not None:
                membership.invite_status = PENDING
                membership.is_active = True
                membership.role = GroupMembership.Role.MEMBER
                membership.invited_by = acting_student
                membership.invited_at = now
                membership.responded_at = None
                membership.rejection_reason = ''
                membership.save()
                outcome = OUTCOME_INVITED
            else:
                membership = GroupMembership.objects.create(
                    group=group,
                    student=students[sid],
                    invited_by=acting_student,
                    invited_at=now,
                )
                outcome = OUTCOME_INVITED
            results.append({'student_id': sid, 'membership_id': membership.pk, 'outcome': outcome})

        _commit_group(group)
        _emit_on_commit('group_invites_sent', {'group_id': group.pk, 'student_ids': student_ids})

    logger.info(
        "group_invites_sent",
        group_id=group.pk,
        invited=[r['student_id'] for r in results if r['outcome'] == OUTCOME_INVITED],
        reinvited=[r['student_id'] for r in results if r['outcome'] == OUTCOME_REINVITED],
    )
    data = _group_data(group)
    data['results'] = results
    data['invited'] = [r['student_id'] for r in results if r['outcome'] == OUTCOME_INVITED]
    data['reinvited'] = [r['student_id'] for r in results if r['outcome'] == OUTCOME_REINVITED]
    return data, 'Invitations sent'


@operation_result
def respond_to_invite(membership_id, acting_student, accept):
    """
    Accept or reject an invitation.

    Accepting auto-rejects the student's other pending invitations in the
    same transaction. If the group became finalized, locked or full in the
    meantime, the invitation is auto-rejected and a conflict is reported.
    """
    invitation = GroupMembership.objects.filter(pk=membership_id).only('group_id').first()
    if invitation is None:
        raise NotFoundError(f"Invitation {membership_id} not found")

    conflict = None
    with transaction.atomic():
        acting_student = _lock_student(acting_student.pk)
        group = _lock_group(invitation.group_id)
        membership = GroupMembership.objects.select_for_update().get(pk=membership_id)

        if membership.student_id != acting_student.pk:
            raise ConflictError("This invitation does not belong to you")
        if not membership.is_active or membership.invite_status != PENDING:
            raise ConflictError("This invitation has already been processed")

        now = timezone.now()
        if not accept:
            membership.invite_status = REJECTED
            membership.is_active = False
            membership.responded_at = now
            membership.save(update_fields=['invite_status', 'is_active', 'responded_at'])
            _commit_group(group)
            _emit_on_commit('group_invite_rejected', {'group_id': group.pk, 'student_id': acting_student.pk})
        else:
            if group.status == Group.Status.DISBANDED or group.is_frozen:
                conflict = f"Group is {group.status}"
            elif _accepted_elsewhere(acting_student, group):
                conflict = "You are already a member of another group"
            elif group.available_slots <= 0:
                conflict = "Group is now full"

            if conflict:
                membership.invite_status = AUTO_REJECTED
                membership.is_active = False
                membership.responded_at = now
                membership.rejection_reason = conflict
                membership.save(update_fields=['invite_status', 'is_active', 'responded_at', 'rejection_reason'])
                group.save_versioned(['status'])
            else:
                membership.invite_status = ACCEPTED
                membership.responded_at = now
                membership.save(update_fields=['invite_status', 'responded_at'])

                others = GroupMembership.objects.select_for_update().filter(
                    student=acting_student
                ).exclude(pk=membership.pk)
                auto_rejected = _auto_reject(others, f"Student joined group {group.pk}")

                _commit_group(group)
                _emit_on_commit('group_member_joined', {
                    'group_id': group.pk,
                    'student_id': acting_student.pk,
                    'auto_rejected': auto_rejected,
                })

    if conflict:
        logger.info("group_invite_auto_rejected", group_id=group.pk, student_id=acting_student.pk, reason=conflict)
        raise ConflictError(conflict)

    logger.info(
        "group_invite_answered",
        group_id=group.pk,
        student_id=acting_student.pk,
        accepted=bool(accept),
    )
    data = _group_data(group)
    data['membership_id'] = membership.pk
    data['invite_status'] = membership.invite_status
    return data, 'Invitation accepted' if accept else 'Invitation rejected'


@operation_result
def leave(group_id, student):
    """A non-leader member leaves a group that is not finalized or locked."""
    with transaction.atomic():
        group = _lock_group(group_id)
        _ensure_mutable(group)

        membership = GroupMembership.objects.select_for_update().filter(
            group=group, student=student, is_active=True, invite_status=ACCEPTED,
        ).first()
        if membership is None:
            raise NotFoundError("Student is not a member of this group")
        if membership.role == GroupMembership.Role.LEADER:
            raise ConflictError("The group leader must transfer leadership before leaving")

        membership.is_active = False
        membership.save(update_fields=['is_active'])
        _commit_group(group)
        _emit_on_commit('group_member_left', {'group_id': group.pk, 'student_id': student.pk})

    logger.info("group_member_left", group_id=group.pk, student_id=student.pk)
    return _group_data(group), 'Left group'


@operation_result
def transfer_leadership(group_id, acting_student, new_leader_id):
    """Hand the leader role to another active member."""
    with transaction.atomic():
        group = _lock_group(group_id)
        _ensure_mutable(group)
        _ensure_leader(group, acting_student)

        if new_leader_id == acting_student.pk:
            raise ConflictError("You are already the group leader")

        memberships = {
            m.student_id: m
            for m in GroupMembership.objects.select_for_update().filter(
                group=group,
                student_id__in=[acting_student.pk, new_leader_id],
                is_active=True,
                invite_status=ACCEPTED,
            )
        }
        new_leader = memberships.get(new_leader_id)
        if new_leader is None:
            raise ConflictError("New leader must be an active accepted member")

        old_leader = memberships[acting_student.pk]
        old_leader.role = GroupMembership.Role.MEMBER
        old_leader.save(update_fields=['role'])
        new_leader.role = GroupMembership.Role.LEADER
        new_leader.save(update_fields=['role'])

        _commit_group(group)
        _emit_on_commit('group_leader_changed', {'group_id': group.pk, 'leader_id': new_leader_id})

    logger.info(
        "group_leadership_transferred",
        group_id=group.pk,
        previous_leader_id=acting_student.pk,
        leader_id=new_leader_id,
    )
    data = _group_data(group)
    data['leader_id'] = new_leader_id
    return data, 'Leadership transferred'


@operation_result
def finalize(group_id, acting_student):
    """
    Irreversibly freeze the membership.

    Requires the leader and at least min_members active members. Pending
    invitations are auto-rejected in the same transaction.
    """
    with transaction.atomic():
        group = _lock_group(group_id)
        if group.status == Group.Status.FINALIZED:
            raise ConflictError("Group is already finalized")
        _ensure_mutable(group)
        _ensure_leader(group, acting_student)

        count = group.active_member_count
        if count < group.min_members:
            raise ConflictError(
                f"Group must have at least {group.min_members} members to be finalized ({count} now)"
            )
        if count > group.max_members:
            raise ConflictError(f"Group cannot have more than {group.max_members} members")

        auto_rejected = _auto_reject(group.memberships.all(), "Group was finalized")

        group.status = Group.Status.FINALIZED
        group.finalized_at = timezone.now()
        group.finalized_by = acting_student
        group.save_versioned(['status', 'finalized_at', 'finalized_by'])
        _emit_on_commit('group_finalized', {'group_id': group.pk, 'auto_rejected': auto_rejected})

    logger.info("group_finalized", group_id=group.pk, member_count=count, auto_rejected=auto_rejected)
    data = _group_data(group)
    data['auto_rejected'] = auto_rejected
    return data, 'Group finalized'


@operation_result
def disband(group_id, admin_user=None):
    """Admin: dissolve a group that has no live project."""
    with transaction.atomic():
        group = _lock_group(group_id)
        if group.status == Group.Status.DISBANDED:
            raise ConflictError("Group is already disbanded")

        live_project = Project.objects.filter(group=group).exclude(status=Project.Status.CANCELLED).exists()
        if live_project:
            raise ConflictError("Cancel the group's project before disbanding the group")

        previous_status = group.status
        _auto_reject(group.memberships.all(), "Group was disbanded")
        group.memberships.filter(is_active=True).update(is_active=False)

        group.status = Group.Status.DISBANDED
        group.disbanded_at = timezone.now()
        group.save_versioned(['status', 'disbanded_at'])

        AuditLog.log_action(
            AuditLog.Action.DISBAND,
            group,
            changes={'status': {'old': previous_status, 'new': group.status}},
            user=admin_user,
        )
        _emit_on_commit('group_disbanded', {'group_id': group.pk})

    logger.info("group_disbanded", group_id=group.pk, admin_id=getattr(admin_user, 'id', None))
    return {'group_id': group.pk, 'status': group.status}, 'Group disbanded'
