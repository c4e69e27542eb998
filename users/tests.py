from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from academics import services as enrollment
from backend.exceptions import NotFound, ValidationError
from .permissions import RolePermission
from . import services

User = get_user_model()

pytestmark = pytest.mark.django_db


class TestTokens:
    def test_issued_tokens_carry_role(self, make_user):
        user = make_user(User.ROLE_TEACHER)

        tokens = services.issue_tokens(user)

        status, payload = services.verify_token(tokens['access'])
        assert status == services.TOKEN_VALID
        assert payload['role'] == User.ROLE_TEACHER

    def test_expired_token(self, make_user):
        token = AccessToken.for_user(make_user())
        token.set_exp(lifetime=-timedelta(seconds=5))

        assert services.verify_token(str(token)) == (services.TOKEN_EXPIRED, None)

    def test_invalid_token(self):
        assert services.verify_token('not.a.token') == (services.TOKEN_INVALID, None)

    def test_login_endpoint(self, api_client, make_user):
        make_user(User.ROLE_TEACHER, username='tess', password='s3cret-pass')

        response = api_client.post('/api/token/', {'username': 'tess', 'password': 's3cret-pass'})

        data = response.json()['data']
        assert response.status_code == 200
        assert AccessToken(data['access'])['role'] == User.ROLE_TEACHER
        assert data['user']['username'] == 'tess'

    def test_inactive_user_cannot_log_in(self, api_client, make_user):
        make_user(username='gone', password='s3cret-pass', is_active=False)

        response = api_client.post('/api/users/login/', {'username': 'gone', 'password': 's3cret-pass'})

        assert response.status_code == 401
        assert response.json()['success'] is False

    def test_verify_endpoint(self, api_client):
        response = api_client.post('/api/users/token/verify/', {'token': 'garbage'})

        assert response.json()['data'] == {'status': 'invalid', 'payload': None}


class TestPasswordReset:
    def test_reset_flow_is_single_use(self, make_user):
        user = make_user(email='reset@example.com')

        raw = services.issue_password_reset('reset@example.com')
        user.refresh_from_db()
        assert user.password_reset_token != raw
        assert len(user.password_reset_token) == 64

        services.reset_password(raw, 'brand-new-pass')
        user.refresh_from_db()
        assert user.check_password('brand-new-pass')
        assert user.password_reset_token is None

        with pytest.raises(ValidationError):
            services.reset_password(raw, 'another-pass')

    def test_expired_reset_token(self, make_user):
        user = make_user(email='late@example.com')
        raw = services.issue_password_reset('late@example.com')
        User.objects.filter(pk=user.pk).update(password_reset_expires=timezone.now() - timedelta(minutes=1))

        with pytest.raises(ValidationError):
            services.reset_password(raw, 'brand-new-pass')

    def test_reset_expires_after_ten_minutes(self, make_user):
        user = make_user(email='clock@example.com')
        before = timezone.now()

        services.issue_password_reset('clock@example.com')

        user.refresh_from_db()
        assert timedelta(minutes=9) < user.password_reset_expires - before <= timedelta(minutes=10, seconds=5)

    def test_unknown_email(self):
        with pytest.raises(NotFound):
            services.issue_password_reset('nobody@example.com')

    def test_change_password(self, make_user):
        user = make_user(password='old-pass-123')

        with pytest.raises(ValidationError):
            services.change_password(user, 'wrong', 'new-pass-123')
        services.change_password(user, 'old-pass-123', 'new-pass-123')
        assert user.check_password('new-pass-123')

    def test_reset_endpoint(self, api_client, make_user):
        make_user(username='rita', email='rita@example.com')
        raw = services.issue_password_reset('rita@example.com')

        response = api_client.post('/api/users/password/reset/', {'token': raw, 'password': 'fresh-pass-1'})

        assert response.status_code == 200
        assert 'access' in response.json()['data']['tokens']
        assert User.objects.get(username='rita').check_password('fresh-pass-1')


class TestRegistration:
    def test_register_returns_tokens(self, api_client):
        response = api_client.post('/api/users/register/', {
            'username': 'newbie',
            'email': 'newbie@example.com',
            'password': 'newbie-pass',
            'confirm_password': 'newbie-pass',
        })

        data = response.json()['data']
        assert response.status_code == 201
        assert data['user']['role'] == User.ROLE_STUDENT
        assert set(data['tokens']) == {'access', 'refresh'}

    def test_register_cannot_claim_admin(self, api_client):
        response = api_client.post('/api/users/register/', {
            'username': 'sneaky',
            'email': 'sneaky@example.com',
            'password': 'sneaky-pass',
            'confirm_password': 'sneaky-pass',
            'role': 'admin',
        })

        assert response.status_code == 400
        assert not User.objects.filter(username='sneaky').exists()

    def test_password_mismatch(self, api_client):
        response = api_client.post('/api/users/register/', {
            'username': 'typo',
            'email': 'typo@example.com',
            'password': 'one-pass',
            'confirm_password': 'other-pass',
        })

        assert response.status_code == 400
        assert 'confirm_password' in response.json()['error']['message']

    def test_username_lookup_route_is_gone(self, api_client):
        response = api_client.get('/api/users/username-availability/', {'q': 'anyone'})

        assert response.status_code == 404

    def test_phone_number_help_text(self):
        assert User._meta.get_field('phone_number').help_text == 'Phone number including country code'


class TestUserAdministration:
    def test_only_admins_manage_users(self, teacher_api):
        assert teacher_api.get('/api/users/accounts/').status_code == 403

    def test_filter_by_role(self, admin_api, make_user):
        make_user(User.ROLE_TEACHER)
        make_user(User.ROLE_TEACHER)
        make_user(User.ROLE_STUDENT)

        response = admin_api.get('/api/users/accounts/', {'role': 'teacher'})

        body = response.json()
        assert body['pagination']['total'] == 2
        assert {u['role'] for u in body['data']} == {'teacher'}

    def test_set_role_and_status(self, admin_api, make_user):
        user = make_user()

        admin_api.patch(f'/api/users/accounts/{user.pk}/role/', {'role': 'teacher'})
        admin_api.patch(f'/api/users/accounts/{user.pk}/status/', {'is_active': False})

        user.refresh_from_db()
        assert user.role == User.ROLE_TEACHER
        assert user.is_active is False

    def test_delete_enrolled_student_user_conflicts(self, admin_api, student, classroom):
        enrollment.enroll(student.pk, classroom.pk)

        response = admin_api.delete(f'/api/users/accounts/{student.user.pk}/')

        assert response.status_code == 409
        assert User.objects.filter(pk=student.user.pk).exists()

    def test_me(self, student_api, student):
        response = student_api.get('/api/users/me/')

        data = response.json()['data']
        assert data['username'] == student.user.username
        assert data['has_student_profile'] is True


class TestRolePermission:
    @pytest.mark.parametrize('role,method,allowed', [
        ('student', 'GET', True),
        ('student', 'POST', False),
        ('teacher', 'PATCH', True),
        ('teacher', 'DELETE', False),
        ('admin', 'DELETE', True),
    ])
    def test_role_map(self, rf, make_user, role, method, allowed):
        request = rf.generic(method, '/')
        request.user = make_user(role)

        assert RolePermission().has_permission(request, view=None) is allowed
