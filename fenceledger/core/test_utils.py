"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from fenceledger.core.models import Role
from fenceledger.inventory.models import Material
from fenceledger.parties.models import Party, PartyItem
from fenceledger.ledger.models import Transaction
from fenceledger.ledger.services import create_transaction
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(name=None, email=None, password='testpass123', role=Role.STORE_BOY):
        """Create a test user"""
        if not name:
            name = f'User {TestDataFactory.random_string(6)}'
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            username=email,
            email=email,
            password=password,
            name=name,
            role=role,
            is_staff=role == Role.ADMIN,
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=Role.ADMIN, **kwargs)

    @staticmethod
    def create_material(owner, name=None, category=Material.Category.RAW, unit=Material.Unit.KG,
                        quantity=Decimal('0'), unit_price=None, low_stock_threshold=Decimal('0')):
        """Create a test material"""
        if not name:
            name = f'Material_{TestDataFactory.random_string(6)}'
        return Material.objects.create(
            owner=owner,
            name=name,
            category=category,
            unit=unit,
            quantity=quantity,
            unit_price=unit_price,
            low_stock_threshold=low_stock_threshold,
        )

    @staticmethod
    def create_party(owner, name=None, type=Party.PartyType.SUPPLIER, contact='', items=None):
        """Create a test party with its item catalog"""
        if not name:
            name = f'Party_{TestDataFactory.random_string(6)}'
        party = Party.objects.create(owner=owner, name=name, type=type, contact=contact)
        for item_name, item_price in (items or [('Default Item', Decimal('0.00'))]):
            PartyItem.objects.create(party=party, item_name=item_name, item_price=Decimal(str(item_price)))
        return party

    @staticmethod
    def create_transaction(owner, type=Transaction.TransactionType.PURCHASE, quantity='1', unit_price='1',
                           material=None, party=None, date=None, notes=''):
        """Create a test transaction through the ledger service"""
        return create_transaction(
            owner,
            type=type,
            quantity=Decimal(str(quantity)),
            unit_price=Decimal(str(unit_price)),
            material_id=material.id if material else None,
            party_id=party.id if party else None,
            date=date,
            notes=notes,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def authenticate_by_header(self, email):
        """Authenticate through the X-User-Email header instead of a token"""
        self.credentials(HTTP_X_USER_EMAIL=email)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
