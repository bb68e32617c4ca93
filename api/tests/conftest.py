"""
Pytest configuration and shared fixtures for all tests.

This file provides reusable fixtures for:
- User creation (admin, faculty, students)
- Authentication (APIClient)
- SystemSettings
- Projects registered with ranked faculty preferences
- Groups in each lifecycle state
"""
import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from api.api_models import Group, Project, SystemSettings
from api.utils import group_lifecycle
from api.utils.registration import submit_preferences

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    """SystemSettings is cached; start every test from an empty cache."""
    cache.clear()
    yield
    cache.clear()


# ============= API CLIENT =============

@pytest.fixture
def api_client():
    """
    DRF APIClient for making HTTP requests in integration tests.

    Usage:
        def test_endpoint(api_client):
            response = api_client.get('/api/endpoint/')
            assert response.status_code == 200
    """
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an APIClient authenticated as the given user.

    Usage:
        def test_faculty_action(client_for, faculty_users):
            client = client_for(faculty_users[0])
    """
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client_for


# ============= USER FIXTURES =============

@pytest.fixture
def admin_user(db):
    """
    Create admin user with ROLE_ADMIN and is_staff=True.
    """
    return User.objects.create_user(
        username='admin',
        email='admin@university.edu',
        password='testpass123',
        role=User.ROLE_ADMIN,
        first_name='Admin',
        last_name='User'
    )


@pytest.fixture
def make_faculty(db):
    """Factory for faculty users (Faculty profile is auto-created via signal)."""
    def _make_faculty(username, first_name='', last_name='', email=None):
        return User.objects.create_user(
            username=username,
            email=email if email is not None else f'{username}@university.edu',
            password='testpass123',
            role=User.ROLE_FACULTY,
            first_name=first_name,
            last_name=last_name,
        )
    return _make_faculty


@pytest.fixture
def faculty_users(make_faculty):
    """
    Four faculty users: A, B, C, D.

    Returns:
        list[User] in that order
    """
    return [
        make_faculty('fac_a', 'Ada', 'Lovelace'),
        make_faculty('fac_b', 'Barbara', 'Liskov'),
        make_faculty('fac_c', 'Charles', 'Babbage'),
        make_faculty('fac_d', 'Donald', 'Knuth'),
    ]


@pytest.fixture
def faculty(faculty_users):
    """Faculty profiles for faculty_users (A, B, C, D)."""
    return [user.faculty for user in faculty_users]


@pytest.fixture
def make_student(db):
    """Factory for student users (Student profile is auto-created via signal)."""
    def _make_student(username, semester=7):
        user = User.objects.create_user(
            username=username,
            email=f'{username}@students.university.edu',
            password='testpass123',
            role=User.ROLE_STUDENT,
            first_name=username.capitalize(),
            last_name='Student',
        )
        user.student.semester = semester
        user.student.save()
        return user
    return _make_student


@pytest.fixture
def student_user(make_student):
    return make_student('alice')


@pytest.fixture
def students(make_student):
    """
    Six students; the first one usually leads the group.

    Returns:
        list[Student] profiles
    """
    names = ['leader', 'bob', 'carol', 'dave', 'erin', 'frank']
    return [make_student(name).student for name in names]


# ============= SYSTEM SETTINGS =============

@pytest.fixture
def system_settings(db):
    """
    SystemSettings with defaults: 1..7 preferences, groups of 4..5 members.
    """
    return SystemSettings.objects.create()


# ============= PROJECTS =============

@pytest.fixture
def register_project(system_settings):
    """
    Register a solo project with faculty ranked in the given order.

    Usage:
        project = register_project(student, [fac_a, fac_b, fac_c])

    Returns:
        Project (already presented to the first-ranked faculty)
    """
    def _register(student, ranked_faculty, title='Distributed cache'):
        result = submit_preferences(
            student,
            [{'faculty_id': f.pk, 'priority': i} for i, f in enumerate(ranked_faculty, start=1)],
            title=title,
        )
        assert result['ok'], result
        return Project.objects.get(pk=result['data']['project_id'])
    return _register


@pytest.fixture
def solo_project(register_project, student_user, faculty):
    """Solo project with preferences [A:1, B:2, C:3]."""
    return register_project(student_user.student, faculty[:3])


# ============= GROUPS =============

@pytest.fixture
def forming_group(system_settings, students):
    """
    Group led by students[0] with no other members yet.

    Returns:
        Group
    """
    result = group_lifecycle.create_group(students[0], name='Team Rocket')
    assert result['ok'], result
    return Group.objects.get(pk=result['data']['group_id'])


@pytest.fixture
def fill_group():
    """
    Invite and accept the given students into a group.

    Returns:
        Group (refreshed)
    """
    from api.api_models import GroupMembership

    def _fill(group, leader, members):
        result = group_lifecycle.invite(group.pk, leader, [s.pk for s in members])
        assert result['ok'], result
        for student in members:
            membership = GroupMembership.objects.get(group=group, student=student)
            answer = group_lifecycle.respond_to_invite(membership.pk, student, accept=True)
            assert answer['ok'], answer
        group.refresh_from_db()
        return group
    return _fill


@pytest.fixture
def complete_group(forming_group, fill_group, students):
    """Group with leader + 3 accepted members (min 4 reached)."""
    return fill_group(forming_group, students[0], students[1:4])


@pytest.fixture
def finalized_group(complete_group, students):
    result = group_lifecycle.finalize(complete_group.pk, students[0])
    assert result['ok'], result
    complete_group.refresh_from_db()
    return complete_group
