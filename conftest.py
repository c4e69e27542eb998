import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from academics.models import ClassRoom, StudentProfile, TeacherProfile

User = get_user_model()


@pytest.fixture(autouse=True)
def _plain_http(settings):
    settings.SECURE_SSL_REDIRECT = False


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=User.ROLE_STUDENT, **kwargs):
        n = next(counter)
        username = kwargs.pop('username', f'{role}{n}')
        return User.objects.create_user(
            username=username,
            email=kwargs.pop('email', f'{username}@example.com'),
            password=kwargs.pop('password', 'pass12345'),
            role=role,
            **kwargs,
        )
    return _make


@pytest.fixture
def teacher(make_user):
    return TeacherProfile.objects.create(
        user=make_user(User.ROLE_TEACHER, first_name='Tina', last_name='Teach'),
        teacher_id='T-001',
        subjects=['Mathematics'],
    )


@pytest.fixture
def make_classroom(teacher):
    def _make(**kwargs):
        data = {
            'name': 'Algebra I',
            'subject': 'Mathematics',
            'grade_level': '9',
            'teacher': teacher,
            'semester': 'Fall',
            'year': 2024,
        }
        data.update(kwargs)
        return ClassRoom.objects.create(**data)
    return _make


@pytest.fixture
def classroom(make_classroom):
    return make_classroom()


@pytest.fixture
def make_student(make_user):
    counter = itertools.count(1)

    def _make(**kwargs):
        n = next(counter)
        data = {
            'student_id': f'S-{n:03d}',
            'grade': '9',
            'guardian_name': 'Pat Guardian',
            'guardian_email': f'guardian{n}@example.com',
            'guardian_phone': '555-0100',
        }
        data.update(kwargs)
        return StudentProfile.objects.create(user=make_user(User.ROLE_STUDENT), **data)
    return _make


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_api(make_user):
    client = APIClient()
    client.force_authenticate(user=make_user(User.ROLE_ADMIN))
    return client


@pytest.fixture
def teacher_api(teacher):
    client = APIClient()
    client.force_authenticate(user=teacher.user)
    return client


@pytest.fixture
def student_api(student):
    client = APIClient()
    client.force_authenticate(user=student.user)
    return client
