"""
Test suite for the core module
Tests: Login/refresh/logout, current user, User CRUD (admin only), Settings, Audit log, seed_admin
"""
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from distribuidora.core.test_utils import TestDataFactory, APITestCase
from .models import User, Setting, AuditLog
from .utils import create_audit_log


class AuthTests(TestCase):
    """Test login, refresh, logout and current user"""

    def setUp(self):
        self.client = APIClient()
        self.user = TestDataFactory.create_user(username='caixa1', password='senha123')

    def login(self, username='caixa1', password='senha123'):
        return self.client.post('/api/v1/auth/login/', {'username': username, 'password': password}, format='json')

    def test_login_returns_tokens_and_user(self):
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user'], {'id': self.user.id, 'username': 'caixa1', 'role': 'operator'})
        self.assertTrue(AuditLog.objects.filter(action='login', user=self.user).exists())

    def test_login_wrong_password(self):
        response = self.login(password='errada')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(AuditLog.objects.filter(action='login').exists())

    def test_inactive_user_cannot_login(self):
        TestDataFactory.create_user(username='antigo', password='senha123', is_active=False)
        response = self.login(username='antigo')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        tokens = self.login().data
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_and_logout(self):
        tokens = self.login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'caixa1')

        response = self.client.post('/api/v1/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action='logout', user=self.user).exists())

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserTests(APITestCase):
    """Test user management (admin only)"""

    def test_operator_cannot_list_users(self):
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_users(self):
        response = self.as_admin().get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        usernames = {u['username'] for u in response.data}
        self.assertIn(self.user.username, usernames)
        self.assertNotIn('password', response.data[0])

    def test_admin_creates_user_with_hashed_password(self):
        data = {'username': 'caixa2', 'password': 'segredo1', 'role': 'operator'}
        response = self.as_admin().post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='caixa2')
        self.assertNotEqual(user.password, 'segredo1')
        self.assertTrue(user.check_password('segredo1'))

    def test_create_user_rejects_short_password(self):
        data = {'username': 'caixa3', 'password': 'abc'}
        response = self.as_admin().post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_promotes_user(self):
        response = self.as_admin().patch(f'/api/v1/users/{self.user.id}/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_admin)

    def test_admin_cannot_delete_self(self):
        response = self.as_admin().delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=self.admin.id).exists())

    def test_admin_deletes_other_user(self):
        response = self.as_admin().delete(f'/api/v1/users/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=self.user.id).exists())


class SettingTests(APITestCase):
    """Test the key/value settings store"""

    def test_operator_reads_settings(self):
        TestDataFactory.create_setting('company_name', 'Distribuidora Boa Água')
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['value'], 'Distribuidora Boa Água')

    def test_operator_cannot_write_settings(self):
        response = self.client.post('/api/v1/settings/', {'key': 'company_name', 'value': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_writes_settings(self):
        response = self.as_admin().post('/api/v1/settings/', {'key': 'company_phone', 'value': '1133334444'},
                                        format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Setting.get_value('company_phone'), '1133334444')
        self.assertEqual(Setting.get_value('missing', 'fallback'), 'fallback')


class AuditLogTests(APITestCase):
    """Test audit log helpers and listing"""

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_admin_filters_by_action(self):
        create_audit_log(action='stock_in', model_name='Product', object_id=1, user=self.user)
        create_audit_log(action='create', model_name='Customer', object_id=2, user=self.user)
        response = self.as_admin().get('/api/v1/audit-logs/?action=stock_in')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['username'], self.user.username)

    def test_operator_cannot_read_audit_log(self):
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SeedAdminCommandTests(TestCase):
    def test_creates_admin_once(self):
        out = StringIO()
        call_command('seed_admin', stdout=out)
        admin = User.objects.get(username='admin')
        self.assertEqual(admin.role, 'admin')
        self.assertTrue(admin.check_password('admin'))

        call_command('seed_admin', stdout=out)
        self.assertEqual(User.objects.filter(username='admin').count(), 1)
        self.assertIn('already exists', out.getvalue())
