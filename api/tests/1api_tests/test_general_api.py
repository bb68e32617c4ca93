"""
Integration tests for health, JWT login, faculty notifications and audit logs.
"""
import pytest
from rest_framework import status

from api.api_models import FacultyNotification


@pytest.mark.django_db
class TestHealthCheck:

    def test_healthy(self, api_client):
        response = api_client.get('/api/health/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'healthy'
        assert response.data['database'] == 'ok'
        assert response.data['cache'] == 'ok'

    def test_reports_allocation_backlog(self, api_client, solo_project):
        response = api_client.get('/api/health/')

        assert response.data['backlog'] == {'pending_allocation': 1, 'awaiting_admin': 0}

    def test_cache_failure_reports_unhealthy(self, api_client, mocker):
        mocker.patch('django.core.cache.backends.locmem.LocMemCache.set', side_effect=ConnectionError('redis down'))

        response = api_client.get('/api/health/')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['status'] == 'unhealthy'
        assert response.data['cache'] == 'error: redis down'


@pytest.mark.django_db
class TestTokenLogin:

    def test_obtain_token(self, api_client, student_user):
        response = api_client.post('/api/token/', {
            'username': 'alice',
            'password': 'testpass123',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data

    def test_token_authenticates_requests(self, api_client, student_user):
        token = api_client.post('/api/token/', {
            'username': 'alice',
            'password': 'testpass123',
        }, format='json').data['access']

        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = api_client.get('/api/projects/')

        assert response.status_code == status.HTTP_200_OK

    def test_wrong_password(self, api_client, student_user):
        response = api_client.post('/api/token/', {
            'username': 'alice',
            'password': 'wrong',
        }, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestFacultyNotifications:

    @pytest.fixture
    def offered_project(self, register_project, student_user, faculty, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            return register_project(student_user.student, faculty[:2])

    def test_presented_faculty_is_notified(self, client_for, faculty_users, offered_project):
        response = client_for(faculty_users[0]).get('/api/notifications/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        notification = response.data['results'][0]
        assert notification['type'] == FacultyNotification.Type.ALLOCATION_OFFER
        assert notification['project'] == offered_project.pk

    def test_other_faculty_sees_nothing(self, client_for, faculty_users, offered_project):
        response = client_for(faculty_users[1]).get('/api/notifications/')

        assert response.data['count'] == 0

    def test_dismiss(self, client_for, faculty_users, offered_project):
        client = client_for(faculty_users[0])
        notification = FacultyNotification.objects.get(faculty=faculty_users[0].faculty)

        response = client.post(f'/api/notifications/{notification.pk}/dismiss/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['dismissed'] is True
        assert client.get('/api/notifications/').data['count'] == 0
        assert client.get('/api/notifications/', {'dismissed': 'true'}).data['count'] == 1

    def test_cannot_dismiss_someone_elses(self, client_for, faculty_users, offered_project):
        notification = FacultyNotification.objects.get(faculty=faculty_users[0].faculty)

        response = client_for(faculty_users[1]).post(f'/api/notifications/{notification.pk}/dismiss/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_students_have_no_notifications(self, client_for, student_user, offered_project):
        response = client_for(student_user).get('/api/notifications/')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestAuditLogAccess:

    def test_admin_only(self, client_for, admin_user, faculty_users):
        assert client_for(admin_user).get('/api/audit-logs/').status_code == status.HTTP_200_OK
        assert client_for(faculty_users[0]).get('/api/audit-logs/').status_code == status.HTTP_403_FORBIDDEN

    def test_filter_by_object(self, client_for, admin_user, solo_project):
        admin = client_for(admin_user)
        admin.post(f'/api/projects/{solo_project.pk}/cancel/', {}, format='json')

        response = admin.get('/api/audit-logs/', {'model': 'project', 'object_id': str(solo_project.pk)})

        assert response.data['count'] == 1
        assert response.data['results'][0]['action'] == 'CANCEL'
