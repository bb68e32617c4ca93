"""
Tests for the faculty allocation cascade.

Tests:
- Ranked offer: pass moves the project to the next faculty, choose allocates
- Only the current candidate may decide
- Exhausted preferences hand the project over to admins
- present() is idempotent
- History ordering and cursor monotonicity
"""
import pytest

from api.api_models import AllocatedBy, AllocationHistory, FacultyPreference, Project
from api.utils import cascade
from api.utils.invariants import check_allocation_consistency, check_history_order


def history_of(project):
    return list(
        AllocationHistory.objects.filter(project=project)
        .order_by('id')
        .values_list('faculty_id', 'action')
    )


@pytest.mark.django_db
class TestRankedOffer:
    """Preferences [A:1, B:2, C:3]"""

    def test_registration_presents_to_first_faculty(self, solo_project, faculty):
        """
        Expected:
        - project pending allocation at cursor 0
        - only A has been presented
        """
        a = faculty[0]

        assert solo_project.status == Project.Status.PENDING_ALLOCATION
        assert solo_project.current_faculty_index == 0
        assert history_of(solo_project) == [(a.pk, AllocationHistory.Action.PRESENTED)]

    def test_pass_then_choose(self, solo_project, faculty):
        """
        A passes, B chooses.

        Expected:
        - project allocated to B by candidate choice
        - history: presented A, passed A, presented B, chosen B
        - C was never presented
        """
        a, b, c = faculty[:3]

        passed = cascade.pass_(solo_project.pk, a.pk)
        assert passed['ok']
        assert passed['data']['next_faculty_id'] == b.pk

        chosen = cascade.choose(solo_project.pk, b.pk)
        assert chosen['ok']

        solo_project.refresh_from_db()
        preference = solo_project.faculty_preference
        assert solo_project.status == Project.Status.FACULTY_ALLOCATED
        assert solo_project.faculty == b
        assert solo_project.allocated_by == AllocatedBy.CANDIDATE_CHOICE
        assert preference.status == FacultyPreference.Status.ALLOCATED
        assert preference.allocated_faculty == b
        assert preference.current_faculty_index == solo_project.current_faculty_index == 1

        assert history_of(solo_project) == [
            (a.pk, AllocationHistory.Action.PRESENTED),
            (a.pk, AllocationHistory.Action.PASSED),
            (b.pk, AllocationHistory.Action.PRESENTED),
            (b.pk, AllocationHistory.Action.CHOSEN),
        ]
        assert not solo_project.has_been_presented(c.pk)
        assert check_history_order(solo_project) == []
        assert check_allocation_consistency(preference) == []

    def test_first_faculty_chooses_immediately(self, solo_project, faculty):
        result = cascade.choose(solo_project.pk, faculty[0].pk, comments='Happy to supervise')

        assert result['ok']
        assert result['data']['faculty_id'] == faculty[0].pk
        assert result['data']['allocated_by'] == AllocatedBy.CANDIDATE_CHOICE
        last = AllocationHistory.objects.filter(project=solo_project).order_by('-id').first()
        assert last.comments == 'Happy to supervise'

    def test_pass_records_reason(self, solo_project, faculty):
        cascade.pass_(
            solo_project.pk,
            faculty[0].pk,
            reason=FacultyPreference.RejectionReason.CAPACITY_FULL,
            comments='Already supervising five projects',
        )

        preference = FacultyPreference.objects.get(project=solo_project)
        assert preference.rejection_reason == FacultyPreference.RejectionReason.CAPACITY_FULL
        assert preference.rejection_comments == 'Already supervising five projects'

    def test_unknown_pass_reason_is_rejected(self, solo_project, faculty):
        result = cascade.pass_(solo_project.pk, faculty[0].pk, reason='bored')

        assert not result['ok']
        assert result['error_kind'] == 'validation'
        solo_project.refresh_from_db()
        assert solo_project.current_faculty_index == 0


@pytest.mark.django_db
class TestCurrentCandidateOnly:

    def test_non_candidate_cannot_choose(self, solo_project, faculty):
        """C tries to choose while A is the current candidate."""
        result = cascade.choose(solo_project.pk, faculty[2].pk)

        assert not result['ok']
        assert result['error_kind'] == 'conflict'
        assert result['message'] == 'This project is not currently presented to you'
        solo_project.refresh_from_db()
        assert solo_project.faculty is None

    def test_previous_candidate_cannot_pass_again(self, solo_project, faculty):
        cascade.pass_(solo_project.pk, faculty[0].pk)

        result = cascade.pass_(solo_project.pk, faculty[0].pk)

        assert result['error_kind'] == 'conflict'
        solo_project.refresh_from_db()
        assert solo_project.current_faculty_index == 1

    def test_faculty_outside_list_is_not_candidate(self, solo_project, faculty):
        outsider = faculty[3]
        result = cascade.pass_(solo_project.pk, outsider.pk)

        assert result['error_kind'] == 'conflict'

    def test_no_decision_after_allocation(self, solo_project, faculty):
        cascade.choose(solo_project.pk, faculty[0].pk)

        again = cascade.choose(solo_project.pk, faculty[0].pk)
        passed = cascade.pass_(solo_project.pk, faculty[0].pk)

        assert again['error_kind'] == 'conflict'
        assert passed['error_kind'] == 'conflict'
        solo_project.refresh_from_db()
        assert solo_project.faculty == faculty[0]
        assert AllocationHistory.objects.filter(
            project=solo_project, action=AllocationHistory.Action.CHOSEN
        ).count() == 1

    def test_is_current_candidate(self, solo_project, faculty):
        preference = solo_project.faculty_preference

        assert cascade.is_current_candidate(solo_project, preference, faculty[0].pk)
        assert cascade.is_current_candidate(solo_project, preference, faculty[0])
        assert not cascade.is_current_candidate(solo_project, preference, faculty[1].pk)
        assert not cascade.is_current_candidate(solo_project, preference, 'not-an-id')

    def test_unknown_project(self, system_settings, faculty):
        result = cascade.choose(999999, faculty[0].pk)

        assert result['error_kind'] == 'not_found'


@pytest.mark.django_db
class TestExhaustion:

    def test_all_pass_then_admin_override(self, solo_project, faculty, admin_user):
        """
        A, B and C pass; admin allocates D.

        Expected:
        - after the last pass: pending_admin_allocation, "Awaiting admin allocation"
        - present() reports exhausted
        - admin override allocates D with allocated_by=admin_override
        """
        a, b, c, d = faculty

        for candidate in (a, b):
            assert cascade.pass_(solo_project.pk, candidate.pk)['ok']
        last = cascade.pass_(solo_project.pk, c.pk)

        assert last['ok']
        assert last['message'] == 'Awaiting admin allocation'
        assert last['data']['next_faculty_id'] is None
        solo_project.refresh_from_db()
        assert solo_project.status == Project.Status.PENDING_ADMIN_ALLOCATION
        assert solo_project.current_faculty_index == 3
        assert solo_project.faculty_preference.status == FacultyPreference.Status.PENDING

        presented = cascade.present(solo_project.pk)
        assert presented['error_kind'] == 'exhausted'
        assert presented['message'] == 'Awaiting admin allocation'

        override = cascade.admin_override(solo_project.pk, d.pk, admin_user=admin_user)
        assert override['ok']

        solo_project.refresh_from_db()
        assert solo_project.faculty == d
        assert solo_project.status == Project.Status.FACULTY_ALLOCATED
        assert solo_project.allocated_by == AllocatedBy.ADMIN_OVERRIDE
        assert FacultyPreference.objects.get(project=solo_project).allocated_by == AllocatedBy.ADMIN_OVERRIDE

    def test_exhausted_project_in_admin_queue(self, solo_project, faculty):
        for candidate in faculty[:3]:
            cascade.pass_(solo_project.pk, candidate.pk)

        assert list(cascade.projects_awaiting_admin()) == [solo_project]
        status = cascade.allocation_status(Project.objects.get(pk=solo_project.pk))
        assert status['status'] == 'awaiting_admin'

    def test_cursor_never_decreases(self, solo_project, faculty):
        indices = [solo_project.current_faculty_index]
        for candidate in faculty[:3]:
            cascade.pass_(solo_project.pk, candidate.pk)
            solo_project.refresh_from_db()
            indices.append(solo_project.current_faculty_index)

        assert indices == sorted(indices)
        assert indices == [0, 1, 2, 3]


@pytest.mark.django_db
class TestPresentIdempotent:

    def test_present_twice_records_one_entry(self, solo_project, faculty):
        first = cascade.present(solo_project.pk)
        second = cascade.present(solo_project.pk)

        assert first['ok'] and second['ok']
        assert first['data']['newly_presented'] is False
        assert second['data']['presented_to'] == faculty[0].pk
        assert AllocationHistory.objects.filter(
            project=solo_project, action=AllocationHistory.Action.PRESENTED
        ).count() == 1

    def test_present_after_allocation_is_conflict(self, solo_project, faculty):
        cascade.choose(solo_project.pk, faculty[0].pk)

        result = cascade.present(solo_project.pk)

        assert result['error_kind'] == 'conflict'


@pytest.mark.django_db
class TestQueries:

    def test_faculty_inbox_follows_cursor(self, solo_project, faculty):
        a, b = faculty[:2]
        assert cascade.projects_presented_to(a) == [solo_project]
        assert cascade.projects_presented_to(b) == []

        cascade.pass_(solo_project.pk, a.pk)

        assert cascade.projects_presented_to(a) == []
        assert [p.pk for p in cascade.projects_presented_to(b)] == [solo_project.pk]

    def test_allocation_status_messages(self, solo_project, faculty):
        status = cascade.allocation_status(solo_project)
        assert status['status'] == 'pending'
        assert status['message'] == 'Presented to faculty 1 of 3'

        cascade.choose(solo_project.pk, faculty[0].pk)
        solo_project.refresh_from_db()

        status = cascade.allocation_status(solo_project)
        assert status['status'] == 'allocated'
        assert status['allocated_faculty'] == faculty[0].pk
