"""
Tests for accounts: registration, login, token refresh, header authentication
and the JSON error envelope
"""
from unittest import mock
from django.conf import settings
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from rest_framework import status
from fenceledger.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fenceledger.core.models import User, Role, normalize_role
from fenceledger.core.exceptions import flatten_errors


class RoleMappingTests(TestCase):

    def test_normalize_accepts_both_spellings(self):
        self.assertEqual(normalize_role('Admin'), Role.ADMIN)
        self.assertEqual(normalize_role('admin'), Role.ADMIN)
        self.assertEqual(normalize_role('StoreBoy'), Role.STORE_BOY)
        self.assertEqual(normalize_role('finalBoy'), Role.FINAL_BOY)

    def test_normalize_rejects_unknown(self):
        self.assertIsNone(normalize_role('Manager'))
        self.assertIsNone(normalize_role(None))

    def test_role_label(self):
        user = TestDataFactory.create_user(role=Role.FINAL_BOY)
        self.assertEqual(user.role_label, 'FinalBoy')


class RegistrationTests(TestCase):
    """Test the registration endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def register(self, **overrides):
        data = {'name': 'Ravi', 'email': 'ravi@test.com', 'password': 'secret123', 'role': 'StoreBoy'}
        data.update(overrides)
        return self.client.post('/users/register', data, format='json')

    def test_register_returns_user_and_tokens(self):
        response = self.register()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['email'], 'ravi@test.com')
        self.assertEqual(response.data['user']['role'], 'storeBoy')
        self.assertEqual(response.data['user']['roleLabel'], 'StoreBoy')
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertNotIn('password', response.data['user'])

    def test_register_lowercases_email(self):
        response = self.register(email='Ravi@Test.COM')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(User.objects.filter(email='ravi@test.com').exists())

    def test_duplicate_email_rejected(self):
        self.register()
        response = self.register(name='Other')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('User already exists', response.data['error'])

    def test_invalid_role_rejected(self):
        response = self.register(role='Manager')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid role', response.data['error'])

    def test_missing_fields_rejected(self):
        response = self.client.post('/users/register', {'email': 'x@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data['error'])

    def test_only_one_admin(self):
        first = self.register(email='boss@test.com', role='Admin')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['user']['role'], 'admin')

        second = self.register(email='boss2@test.com', role='admin')
        self.assertEqual(second.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(second.data['error'], 'Admin already exists. Only one admin is allowed in the system.')
        self.assertEqual(User.objects.filter(role=Role.ADMIN).count(), 1)

    def test_database_allows_a_single_admin(self):
        TestDataFactory.create_admin()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                TestDataFactory.create_admin()
        self.assertEqual(User.objects.filter(role=Role.ADMIN).count(), 1)

    def test_concurrent_admin_registration_rejected(self):
        TestDataFactory.create_admin()
        # Another request created the admin between the existence check and the insert
        with mock.patch('fenceledger.core.views.normalize_role', return_value=None):
            response = self.register(email='late@test.com', role='Admin')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Admin already exists. Only one admin is allowed in the system.')
        self.assertFalse(User.objects.filter(email='late@test.com').exists())


class LoginTests(TestCase):
    """Test login, token refresh and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(email='meera@test.com', password='secret123')

    def test_login_success(self):
        response = self.client.post('/users/login', {'email': 'meera@test.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], self.user.id)
        self.assertIn('access', response.data)

    def test_login_is_case_insensitive_on_email(self):
        response = self.client.post('/users/login', {'email': 'Meera@Test.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_wrong_password(self):
        response = self.client.post('/users/login', {'email': 'meera@test.com', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')

    def test_token_refresh(self):
        login = self.client.post('/users/login', {'email': 'meera@test.com', 'password': 'secret123'}, format='json')
        response = self.client.post('/users/token/refresh', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_token_refresh_with_garbage(self):
        response = self.client.post('/users/token/refresh', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_me_with_bearer_token(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/users/me')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'meera@test.com')

    def test_me_requires_authentication(self):
        response = self.client.get('/users/me')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)


class EmailHeaderAuthenticationTests(TestCase):
    """Test the X-User-Email header lookup"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(email='header@test.com')

    def test_known_email_authenticates(self):
        self.client.authenticate_by_header('HEADER@test.com')
        response = self.client.get('/users/me')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], self.user.id)

    def test_unknown_email_is_rejected(self):
        self.client.authenticate_by_header('nobody@test.com')
        response = self.client.get('/api/materials')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'User not found')

    @override_settings(LEDGER_ALLOW_EMAIL_HEADER_AUTH=False)
    def test_header_ignored_when_disabled(self):
        self.client.authenticate_by_header('header@test.com')
        response = self.client.get('/users/me')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SettingsTests(TestCase):

    def test_secret_key_long_enough_for_jwt_signing(self):
        self.assertGreaterEqual(len(settings.SECRET_KEY.encode()), 32)


class ErrorEnvelopeTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_not_found_uses_error_key(self):
        response = self.client.get('/api/materials/999999')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Material not found'})

    def test_flatten_nested_errors(self):
        message = flatten_errors({'items': [{'itemName': ['Each item must have an itemName']}], 'name': ['Required']})
        self.assertEqual(message, 'items[0].itemName: Each item must have an itemName; name: Required')

    def test_welcome_route_is_public(self):
        response = AuthenticatedAPIClient().get('/api')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Welcome to the API')
