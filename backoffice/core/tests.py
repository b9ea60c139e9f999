"""
Test suite for core
Tests: authentication, role resolution and capabilities, user administration,
document numbering and audit logging
"""
from django.contrib.auth.models import Group
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework_simplejwt.tokens import AccessToken

from backoffice.core.models import AuditLog, DocumentSequence
from backoffice.core.permissions import ADMIN_GROUP, authorize, get_role, is_admin_user, require
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import create_audit_log, next_document_number


class RoleTests(TestCase):
    """Test role resolution and capability checks"""

    def test_roles(self):
        user = TestDataFactory.create_user()
        admin = TestDataFactory.create_admin()
        superuser = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(get_role(user), 'user')
        self.assertEqual(get_role(admin), 'admin')
        self.assertEqual(get_role(superuser), 'admin')
        self.assertIsNone(get_role(None))

    def test_admin_group_grants_admin(self):
        user = TestDataFactory.create_user()
        user.groups.add(Group.objects.create(name=ADMIN_GROUP))
        self.assertTrue(is_admin_user(user))

    def test_capabilities(self):
        user = TestDataFactory.create_user()
        admin = TestDataFactory.create_admin()
        self.assertTrue(authorize(user, 'requests.submit'))
        self.assertFalse(authorize(user, 'requests.decide'))
        self.assertTrue(authorize(admin, 'requests.decide'))
        with self.assertRaises(KeyError):
            authorize(admin, 'rockets.launch')

    def test_require(self):
        user = TestDataFactory.create_user()
        with self.assertRaises(PermissionDenied):
            require(user, 'ledger.force_delete')
        with self.assertRaises(NotAuthenticated):
            require(None, 'requests.submit')
        require(user, 'ledger.record')


class AuthAPITests(TestCase):
    """Test login and the current-user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='counter1', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_role_claim(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter1', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = AccessToken(response.data['access'])
        self.assertEqual(token['role'], 'user')
        self.assertEqual(token['username'], 'counter1')

    def test_login_wrong_password(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter1', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['capabilities']['requests.submit'])
        self.assertFalse(response.data['capabilities']['requests.decide'])

    def test_me_requires_token(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAdminAPITests(TestCase):
    """Test admin-only user management"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_change_role(self):
        response = self.client.put(f'/api/v1/users/{self.user.id}/role/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, 'admin')
        log = AuditLog.objects.get(action='role_change')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.changes['role'], {'from': 'user', 'to': 'admin'})

    def test_user_cannot_list_users(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_audit_log_filters(self):
        create_audit_log(user=self.admin, action='bill_create', model_name='Bill', object_id=1,
                         object_reference='BILL-2026-0001')
        create_audit_log(user=self.admin, action='delete', model_name='Bill', object_id=2)
        response = self.client.get('/api/v1/audit-logs/', {'reference': 'BILL-2026-0001'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['action'], 'bill_create')


class DocumentNumberTests(TestCase):
    """Test sequential document numbers"""

    def test_format_and_increment(self):
        self.assertEqual(next_document_number('PR', year=2026), 'PR-2026-0001')
        self.assertEqual(next_document_number('PR', year=2026), 'PR-2026-0002')
        self.assertEqual(next_document_number('BILL', year=2026), 'BILL-2026-0001')

    def test_sequences_restart_each_year(self):
        next_document_number('PR', year=2025)
        self.assertEqual(next_document_number('PR', year=2026), 'PR-2026-0001')

    def test_counter_grows_past_four_digits(self):
        DocumentSequence.objects.create(prefix='VT', year=2026, last_value=9999)
        self.assertEqual(next_document_number('VT', year=2026), 'VT-2026-10000')


class AuditLogTests(TestCase):
    """Test the audit log helper"""

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(action='delete', model_name='Bill'))
        self.assertFalse(AuditLog.objects.exists())

    def test_anonymous_user_is_not_stored(self):
        log = create_audit_log(action='delete', model_name='Bill', object_id=5)
        self.assertIsNone(log.user)
        self.assertEqual(log.object_id, '5')
