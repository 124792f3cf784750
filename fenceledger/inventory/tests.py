"""
Tests for the material store: role rules, owner scoping, stock adjustment
and the low-stock listing
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from fenceledger.core.models import Role
from fenceledger.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fenceledger.inventory.models import Material
from fenceledger.inventory.services import adjust_quantity
from fenceledger.ledger.models import Transaction


class AdjustQuantityTests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.material = TestDataFactory.create_material(self.owner, quantity=Decimal('10'))

    def test_positive_delta(self):
        self.assertEqual(adjust_quantity(self.material, Decimal('5.5')), Decimal('15.5'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('15.5'))

    def test_floor_at_zero(self):
        self.assertEqual(adjust_quantity(self.material, Decimal('-25')), Decimal('0'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('0'))

    def test_low_stock_rule(self):
        self.assertFalse(self.material.is_low_stock)
        self.material.low_stock_threshold = Decimal('10')
        self.assertTrue(self.material.is_low_stock)


class MaterialAPITests(TestCase):
    """Test material CRUD endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role=Role.FINAL_BOY)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_material(self):
        data = {'name': 'Steel Wire', 'category': 'Raw', 'unit': 'kg', 'unitPrice': '12.50', 'lowStockThreshold': '5'}
        response = self.client.post('/api/materials', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        material = response.data['material']
        self.assertEqual(material['name'], 'Steel Wire')
        self.assertEqual(material['quantity'], Decimal('0'))
        self.assertEqual(material['unitPrice'], Decimal('12.50'))
        self.assertEqual(material['ownerId'], self.user.id)

    def test_create_requires_name_category_unit(self):
        response = self.client.post('/api/materials', {'name': 'Steel'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data['error'])
        self.assertIn('unit', response.data['error'])

    def test_invalid_category_rejected(self):
        data = {'name': 'Steel', 'category': 'Scrap', 'unit': 'kg'}
        response = self.client.post('/api/materials', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_category(self):
        TestDataFactory.create_material(self.user, name='Wire', category=Material.Category.RAW)
        TestDataFactory.create_material(self.user, name='Panel', category=Material.Category.FINAL)
        response = self.client.get('/api/materials', {'category': 'Final'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['name'] for m in response.data['materials']], ['Panel'])

    def test_list_newest_first(self):
        TestDataFactory.create_material(self.user, name='First')
        TestDataFactory.create_material(self.user, name='Second')
        response = self.client.get('/api/materials')
        self.assertEqual([m['name'] for m in response.data['materials']], ['Second', 'First'])

    def test_update_material(self):
        material = TestDataFactory.create_material(self.user, name='Wire')
        response = self.client.put(f'/api/materials/{material.id}', {'name': 'Galvanised Wire'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['material']['name'], 'Galvanised Wire')

    def test_quantity_is_read_only_after_create(self):
        material = TestDataFactory.create_material(self.user, quantity=Decimal('10'))
        response = self.client.put(f'/api/materials/{material.id}', {'quantity': '50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        material.refresh_from_db()
        self.assertEqual(material.quantity, Decimal('10'))

        unchanged = self.client.put(f'/api/materials/{material.id}', {'quantity': '10.000', 'name': 'Same'}, format='json')
        self.assertEqual(unchanged.status_code, status.HTTP_200_OK)

    def test_delete_material_keeps_transaction_snapshots(self):
        material = TestDataFactory.create_material(self.user, name='Steel')
        party = TestDataFactory.create_party(self.user)
        txn = TestDataFactory.create_transaction(self.user, material=material, party=party, quantity='3', unit_price='2')

        response = self.client.delete(f'/api/materials/{material.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Material deleted successfully')

        txn = Transaction.objects.get(pk=txn.pk)
        self.assertIsNone(txn.material_id)
        self.assertEqual(txn.material_name, 'Steel')
        self.assertEqual(txn.category, Material.Category.RAW)


class MaterialRoleTests(TestCase):
    """StoreBoy may not create, change or delete Final materials"""

    def setUp(self):
        self.store_boy = TestDataFactory.create_user(role=Role.STORE_BOY)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.store_boy)

    def test_store_boy_cannot_create_final(self):
        data = {'name': 'Panel', 'category': 'Final', 'unit': 'pcs'}
        response = self.client.post('/api/materials', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'StoreBoy cannot create Final category materials')
        self.assertFalse(Material.objects.exists())

    def test_store_boy_can_create_raw(self):
        data = {'name': 'Wire', 'category': 'Raw', 'unit': 'kg'}
        response = self.client.post('/api/materials', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_store_boy_cannot_promote_to_final(self):
        material = TestDataFactory.create_material(self.store_boy)
        response = self.client.put(f'/api/materials/{material.id}', {'category': 'Final'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_store_boy_cannot_touch_existing_final(self):
        material = TestDataFactory.create_material(self.store_boy, category=Material.Category.FINAL)
        update = self.client.put(f'/api/materials/{material.id}', {'name': 'Renamed'}, format='json')
        self.assertEqual(update.status_code, status.HTTP_403_FORBIDDEN)
        delete = self.client.delete(f'/api/materials/{material.id}')
        self.assertEqual(delete.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Material.objects.filter(pk=material.pk).exists())

    def test_admin_can_create_final(self):
        admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        data = {'name': 'Panel', 'category': 'Final', 'unit': 'pcs'}
        response = admin_client.post('/api/materials', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class MaterialScopingTests(TestCase):
    """Non-admins only see their own materials"""

    def setUp(self):
        self.alice = TestDataFactory.create_user()
        self.bob = TestDataFactory.create_user()
        self.alice_material = TestDataFactory.create_material(self.alice, name='Alice Wire')
        self.bob_material = TestDataFactory.create_material(self.bob, name='Bob Wire')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.alice)

    def test_list_only_own(self):
        response = self.client.get('/api/materials')
        self.assertEqual([m['name'] for m in response.data['materials']], ['Alice Wire'])

    def test_other_users_material_not_found(self):
        response = self.client.get(f'/api/materials/{self.bob_material.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/materials/{self.bob_material.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_sees_everything(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/materials')
        self.assertEqual(len(response.data['materials']), 2)


class LowStockTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_low_stock_listing(self):
        TestDataFactory.create_material(self.user, name='Below', quantity=Decimal('5'), low_stock_threshold=Decimal('10'))
        TestDataFactory.create_material(self.user, name='Equal', quantity=Decimal('10'), low_stock_threshold=Decimal('10'))
        TestDataFactory.create_material(self.user, name='Above', quantity=Decimal('11'), low_stock_threshold=Decimal('10'))
        TestDataFactory.create_material(self.user, name='NoThreshold', quantity=Decimal('0'))

        response = self.client.get('/api/materials/low-stock')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['name'] for m in response.data['materials']], ['Below', 'Equal'])
        self.assertTrue(all(m['isLowStock'] for m in response.data['materials']))
