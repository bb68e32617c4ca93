"""
Integration tests for /api/projects/.

Tests:
- Solo registration (student)
- choose / pass by the current candidate (faculty)
- Exhaustion and admin override (admin)
- Role-scoped visibility
"""
import pytest
from rest_framework import status

from api.api_models import AllocationHistory, Project


def preferences_payload(ranked_faculty):
    return [{'faculty_id': f.pk, 'priority': i} for i, f in enumerate(ranked_faculty, start=1)]


@pytest.mark.django_db
class TestRegisterProject:

    def test_student_registers_solo_project(self, client_for, student_user, faculty, system_settings):
        client = client_for(student_user)

        response = client.post('/api/projects/', {
            'title': 'Compiler for a toy language',
            'preferences': preferences_payload(faculty[:3]),
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['message'] == 'Preferences submitted'
        assert response.data['presented_to'] == faculty[0].pk
        assert response.data['status'] == Project.Status.PENDING_ALLOCATION

    def test_duplicate_priorities_rejected(self, client_for, student_user, faculty, system_settings):
        client = client_for(student_user)

        response = client.post('/api/projects/', {
            'title': 'Broken list',
            'preferences': [
                {'faculty_id': faculty[0].pk, 'priority': 1},
                {'faculty_id': faculty[1].pk, 'priority': 1},
            ],
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_kind'] == 'validation'
        assert not Project.objects.exists()

    def test_priority_above_limit_rejected(self, client_for, student_user, faculty, system_settings):
        system_settings.max_faculty_preferences = 2
        system_settings.save()
        client = client_for(student_user)

        response = client.post('/api/projects/', {
            'title': 'Too far down the list',
            'preferences': [{'faculty_id': faculty[0].pk, 'priority': 3}],
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'between 1 and 2' in response.data['error']

    def test_second_solo_project_is_conflict(self, client_for, student_user, solo_project, faculty):
        client = client_for(student_user)

        response = client.post('/api/projects/', {
            'title': 'Another one',
            'preferences': preferences_payload(faculty[:1]),
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_faculty_cannot_register(self, client_for, faculty_users, faculty, system_settings):
        client = client_for(faculty_users[0])

        response = client.post('/api/projects/', {
            'title': 'Not a student',
            'preferences': preferences_payload(faculty[:1]),
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unauthenticated(self, api_client):
        response = api_client.get('/api/projects/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestCascadeEndpoints:

    def test_candidate_chooses(self, client_for, faculty_users, solo_project):
        client = client_for(faculty_users[0])

        response = client.post(f'/api/projects/{solo_project.pk}/choose/', {
            'comments': 'Happy to supervise',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Project allocated to you'
        assert response.data['faculty_id'] == faculty_users[0].faculty.pk

    def test_non_candidate_gets_conflict(self, client_for, faculty_users, solo_project):
        client = client_for(faculty_users[2])

        response = client.post(f'/api/projects/{solo_project.pk}/choose/', {}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'This project is not currently presented to you'
        assert response.data['error_kind'] == 'conflict'

    def test_pass_moves_to_next_faculty(self, client_for, faculty_users, solo_project):
        response = client_for(faculty_users[0]).post(f'/api/projects/{solo_project.pk}/pass/', {
            'reason': 'capacity_full',
            'comments': 'Already supervising five projects',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['next_faculty_id'] == faculty_users[1].faculty.pk

        inbox = client_for(faculty_users[1]).get('/api/projects/presented_to_me/')
        assert [p['id'] for p in inbox.data] == [solo_project.pk]
        assert client_for(faculty_users[0]).get('/api/projects/presented_to_me/').data == []

    def test_invalid_pass_reason(self, client_for, faculty_users, solo_project):
        response = client_for(faculty_users[0]).post(
            f'/api/projects/{solo_project.pk}/pass/', {'reason': 'bored'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_student_cannot_choose(self, client_for, student_user, solo_project):
        response = client_for(student_user).post(f'/api/projects/{solo_project.pk}/choose/', {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_exhaustion_then_override(self, client_for, faculty_users, admin_user, solo_project):
        """
        Every candidate passes; the admin sees the project in the queue,
        present reports the exhausted list, override allocates D.
        """
        for user in faculty_users[:3]:
            response = client_for(user).post(f'/api/projects/{solo_project.pk}/pass/', {}, format='json')
            assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Awaiting admin allocation'

        admin = client_for(admin_user)
        queue = admin.get('/api/projects/awaiting_admin/')
        assert [p['id'] for p in queue.data] == [solo_project.pk]

        presented = admin.post(f'/api/projects/{solo_project.pk}/present/')
        assert presented.status_code == status.HTTP_200_OK
        assert presented.data['error_kind'] == 'exhausted'
        assert presented.data['error'] == 'Awaiting admin allocation'

        override = admin.post(f'/api/projects/{solo_project.pk}/admin_override/', {
            'faculty_id': faculty_users[3].faculty.pk,
        }, format='json')
        assert override.status_code == status.HTTP_200_OK
        assert override.data['allocated_by'] == 'admin_override'

        audit = admin.get('/api/audit-logs/', {'action': 'ADMIN_OVERRIDE'})
        assert audit.data['count'] == 1

    def test_faculty_cannot_override(self, client_for, faculty_users, solo_project):
        response = client_for(faculty_users[0]).post(
            f'/api/projects/{solo_project.pk}/admin_override/',
            {'faculty_id': faculty_users[0].faculty.pk},
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_cancels(self, client_for, admin_user, solo_project):
        response = client_for(admin_user).post(
            f'/api/projects/{solo_project.pk}/cancel/', {'reason': 'Student withdrew'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == Project.Status.CANCELLED

    def test_admin_reconciles_stuck_project(self, client_for, admin_user, solo_project):
        AllocationHistory.objects.filter(project=solo_project).delete()

        response = client_for(admin_user).post(f'/api/projects/{solo_project.pk}/reconcile/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Project repaired'
        assert AllocationHistory.objects.filter(project=solo_project).count() == 1

    def test_unknown_project(self, client_for, faculty_users, system_settings):
        response = client_for(faculty_users[0]).post('/api/projects/987654/choose/', {}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestProjectVisibility:

    def test_owner_sees_detail(self, client_for, student_user, solo_project):
        response = client_for(student_user).get(f'/api/projects/{solo_project.pk}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['allocation_status']['status'] == 'pending'
        assert len(response.data['faculty_preference']['entries']) == 3
        assert response.data['allocation_history'][0]['action'] == 'presented'

    def test_other_student_cannot_see(self, client_for, make_student, solo_project):
        response = client_for(make_student('mallory')).get(f'/api/projects/{solo_project.pk}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_listed_faculty_sees_project(self, client_for, faculty_users, solo_project):
        listed = client_for(faculty_users[2]).get('/api/projects/')
        unlisted = client_for(faculty_users[3]).get('/api/projects/')

        assert [p['id'] for p in listed.data['results']] == [solo_project.pk]
        assert unlisted.data['results'] == []

    def test_admin_filters_by_status(self, client_for, admin_user, solo_project):
        admin = client_for(admin_user)

        pending = admin.get('/api/projects/', {'status': Project.Status.PENDING_ALLOCATION})
        allocated = admin.get('/api/projects/', {'status': Project.Status.FACULTY_ALLOCATED})

        assert pending.data['count'] == 1
        assert allocated.data['count'] == 0
