"""
Tests for concurrent cascade decisions and administrative operations.

Concurrent requests are simulated by handing the cascade stale copies of
the project and preference rows: the first writer wins, later writers get
a conflict and leave no trace.
"""
import pytest

from api.api_models import AllocationHistory, AuditLog, FacultyPreference, Project
from api.exceptions import ConflictError
from api.utils import cascade


@pytest.fixture
def stale_loader(solo_project):
    """
    Replacement for load_for_update that always returns rows as they were
    when the fixture was built (same version, same cursor).
    """
    snapshot = Project.objects.get(pk=solo_project.pk)
    snapshot_pref = FacultyPreference.objects.get(project=solo_project)

    def _load(project_id):
        project = Project.objects.get(pk=project_id)
        preference = FacultyPreference.objects.get(project_id=project_id)
        project.version = snapshot.version
        project.status = snapshot.status
        project.current_faculty_index = snapshot.current_faculty_index
        preference.version = snapshot_pref.version
        preference.status = snapshot_pref.status
        preference.current_faculty_index = snapshot_pref.current_faculty_index
        return project, preference

    return _load


@pytest.mark.django_db
class TestConcurrentDecisions:

    def test_double_pass_advances_once(self, solo_project, faculty, stale_loader, mocker):
        """
        Two requests from A both read cursor 0 and pass.

        Expected:
        - first succeeds, second is a conflict
        - cursor advanced by exactly one
        - exactly one 'passed' history entry
        """
        mocker.patch('api.utils.cascade.load_for_update', side_effect=stale_loader)

        first = cascade.pass_(solo_project.pk, faculty[0].pk)
        second = cascade.pass_(solo_project.pk, faculty[0].pk)

        assert first['ok']
        assert second['error_kind'] == 'conflict'

        solo_project.refresh_from_db()
        preference = FacultyPreference.objects.get(project=solo_project)
        assert solo_project.current_faculty_index == 1
        assert preference.current_faculty_index == 1
        assert AllocationHistory.objects.filter(
            project=solo_project, action=AllocationHistory.Action.PASSED
        ).count() == 1

    def test_choose_racing_pass_leaves_one_outcome(self, solo_project, faculty, stale_loader, mocker):
        """A passes; a stale choose from A must not allocate the project."""
        mocker.patch('api.utils.cascade.load_for_update', side_effect=stale_loader)

        passed = cascade.pass_(solo_project.pk, faculty[0].pk)
        chosen = cascade.choose(solo_project.pk, faculty[0].pk)

        assert passed['ok']
        assert chosen['error_kind'] == 'conflict'
        solo_project.refresh_from_db()
        assert solo_project.faculty is None
        assert solo_project.status == Project.Status.PENDING_ALLOCATION
        assert not AllocationHistory.objects.filter(
            project=solo_project, action=AllocationHistory.Action.CHOSEN
        ).exists()

    def test_override_racing_choose(self, solo_project, faculty, admin_user, stale_loader, mocker):
        mocker.patch('api.utils.cascade.load_for_update', side_effect=stale_loader)

        chosen = cascade.choose(solo_project.pk, faculty[0].pk)
        override = cascade.admin_override(solo_project.pk, faculty[3].pk, admin_user=admin_user)

        assert chosen['ok']
        assert override['error_kind'] == 'conflict'
        solo_project.refresh_from_db()
        assert solo_project.faculty == faculty[0]
        assert not AuditLog.objects.filter(action=AuditLog.Action.ADMIN_OVERRIDE).exists()


@pytest.mark.django_db
class TestVersionedSave:

    def test_stale_instance_cannot_overwrite(self, solo_project):
        stale = Project.objects.get(pk=solo_project.pk)
        fresh = Project.objects.get(pk=solo_project.pk)

        fresh.title = 'Renamed'
        fresh.save_versioned(['title'])

        stale.title = 'Lost update'
        with pytest.raises(ConflictError):
            stale.save_versioned(['title'])

        solo_project.refresh_from_db()
        assert solo_project.title == 'Renamed'
        assert solo_project.version == stale.version + 1

    def test_successful_save_bumps_version(self, solo_project):
        before = solo_project.version

        solo_project.title = 'Edge caching'
        solo_project.save_versioned(['title'])

        assert solo_project.version == before + 1
        assert Project.objects.get(pk=solo_project.pk).version == before + 1


@pytest.mark.django_db
class TestAdminOperations:

    def test_override_mid_cascade(self, solo_project, faculty, admin_user):
        """Admin may allocate any faculty while the cascade is still running."""
        result = cascade.admin_override(solo_project.pk, faculty[2].pk, admin_user=admin_user)

        assert result['ok']
        log = AuditLog.objects.get(action=AuditLog.Action.ADMIN_OVERRIDE)
        assert log.user == admin_user
        assert log.object_id == str(solo_project.pk)
        assert log.changes['status']['new'] == Project.Status.FACULTY_ALLOCATED

    def test_override_unknown_faculty(self, solo_project, admin_user):
        result = cascade.admin_override(solo_project.pk, 424242, admin_user=admin_user)

        assert result['error_kind'] == 'not_found'

    def test_override_after_allocation_is_conflict(self, solo_project, faculty, admin_user):
        cascade.choose(solo_project.pk, faculty[0].pk)

        result = cascade.admin_override(solo_project.pk, faculty[1].pk, admin_user=admin_user)

        assert result['error_kind'] == 'conflict'
        solo_project.refresh_from_db()
        assert solo_project.faculty == faculty[0]

    def test_cancel_pending_project(self, solo_project, faculty, admin_user):
        result = cascade.cancel(solo_project.pk, admin_user=admin_user, reason='Student withdrew')

        assert result['ok']
        solo_project.refresh_from_db()
        preference = FacultyPreference.objects.get(project=solo_project)
        assert solo_project.status == Project.Status.CANCELLED
        assert preference.status == FacultyPreference.Status.CANCELLED
        assert preference.rejection_comments == 'Student withdrew'
        assert AuditLog.objects.filter(action=AuditLog.Action.CANCEL, user=admin_user).count() == 1
        assert cascade.projects_presented_to(faculty[0]) == []

    def test_cancel_twice_is_conflict(self, solo_project, admin_user):
        cascade.cancel(solo_project.pk, admin_user=admin_user)

        result = cascade.cancel(solo_project.pk, admin_user=admin_user)

        assert result['error_kind'] == 'conflict'

    def test_cancelled_project_rejects_decisions(self, solo_project, faculty, admin_user):
        cascade.cancel(solo_project.pk, admin_user=admin_user)

        assert cascade.choose(solo_project.pk, faculty[0].pk)['error_kind'] == 'conflict'
        assert cascade.pass_(solo_project.pk, faculty[0].pk)['error_kind'] == 'conflict'

    def test_cannot_cancel_allocated_project(self, solo_project, faculty, admin_user):
        cascade.choose(solo_project.pk, faculty[0].pk)

        result = cascade.cancel(solo_project.pk, admin_user=admin_user)

        assert result['error_kind'] == 'conflict'
        assert not AuditLog.objects.filter(action=AuditLog.Action.CANCEL).exists()
