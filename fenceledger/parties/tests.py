"""
Tests for parties: item catalog validation, shared visibility, owner-scoped
mutations, rename propagation and the delete guard
"""
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from fenceledger.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fenceledger.ledger.models import Transaction
from fenceledger.parties.models import Party, PartyItem


class PartyCreateTests(TestCase):
    """Test creating parties via API"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def payload(self, **overrides):
        data = {
            'name': 'Sharma Steel',
            'type': 'Supplier',
            'contact': '9876543210',
            'items': [{'itemName': 'GI Wire', 'itemPrice': '85.50'}, {'itemName': 'Barbed Wire', 'itemPrice': 0}],
        }
        data.update(overrides)
        return data

    def test_create_party_with_items(self):
        response = self.client.post('/api/parties', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        party = response.data['party']
        self.assertEqual(party['name'], 'Sharma Steel')
        self.assertEqual(party['ownerId'], self.user.id)
        self.assertEqual([i['itemName'] for i in party['items']], ['GI Wire', 'Barbed Wire'])
        self.assertEqual(party['items'][0]['itemPrice'], Decimal('85.50'))

    def test_empty_items_rejected(self):
        response = self.client.post('/api/parties', self.payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('A party must contain at least one item.', response.data['error'])
        self.assertFalse(Party.objects.exists())

    def test_missing_items_rejected(self):
        data = self.payload()
        del data['items']
        response = self.client.post('/api/parties', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blank_item_name_rejected(self):
        response = self.client.post('/api/parties', self.payload(items=[{'itemName': '  ', 'itemPrice': '1'}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have an itemName', response.data['error'])

    def test_negative_item_price_rejected(self):
        response = self.client.post('/api/parties', self.payload(items=[{'itemName': 'Wire', 'itemPrice': '-1'}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have a valid itemPrice (>= 0)', response.data['error'])

    def test_missing_item_price_rejected(self):
        response = self.client.post('/api/parties', self.payload(items=[{'itemName': 'Wire'}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('itemPrice', response.data['error'])

    def test_invalid_type_rejected(self):
        response = self.client.post('/api/parties', self.payload(type='Broker'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PartyVisibilityTests(TestCase):
    """Parties are shared across users; mutations are limited to the creator unless admin"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_party(self.owner, name='Beta Supplier', type=Party.PartyType.SUPPLIER)
        self.buyer = TestDataFactory.create_party(self.owner, name='Alpha Buyer', type=Party.PartyType.BUYER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.other)

    def test_list_is_global_and_ordered_by_name(self):
        response = self.client.get('/api/parties')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['parties']], ['Alpha Buyer', 'Beta Supplier'])

    def test_type_filter(self):
        response = self.client.get('/api/parties', {'type': 'Supplier'})
        self.assertEqual([p['name'] for p in response.data['parties']], ['Beta Supplier'])

    def test_items_endpoint(self):
        response = self.client.get(f'/api/parties/{self.supplier.id}/items')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['itemName'], 'Default Item')

    def test_other_user_cannot_update_or_delete(self):
        response = self.client.put(f'/api/parties/{self.supplier.id}', {'name': 'Hijacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/parties/{self.supplier.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Party.objects.filter(pk=self.supplier.pk, name='Beta Supplier').exists())

    def test_admin_can_update_any_party(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.put(f'/api/parties/{self.supplier.id}', {'contact': '111'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['party']['contact'], '111')

    def test_missing_party(self):
        response = self.client.get('/api/parties/999999')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Party not found')


class PartyUpdateTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.party = TestDataFactory.create_party(self.user, name='Old Name', items=[('Wire', '10'), ('Post', '20')])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_items_replaced_when_provided(self):
        data = {'items': [{'itemName': 'Mesh', 'itemPrice': '30'}]}
        response = self.client.put(f'/api/parties/{self.party.id}', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i['itemName'] for i in response.data['party']['items']], ['Mesh'])
        self.assertEqual(PartyItem.objects.filter(party=self.party).count(), 1)

    def test_items_kept_when_omitted(self):
        response = self.client.put(f'/api/parties/{self.party.id}', {'contact': '555'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['party']['items']), 2)

    def test_update_with_empty_items_rejected(self):
        response = self.client.put(f'/api/parties/{self.party.id}', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(PartyItem.objects.filter(party=self.party).count(), 2)

    def assertItemsUnchanged(self):
        self.assertEqual(
            list(PartyItem.objects.filter(party=self.party).order_by('id').values_list('item_name', 'item_price')),
            [('Wire', Decimal('10.00')), ('Post', Decimal('20.00'))],
        )

    def test_update_item_without_name_rejected(self):
        response = self.client.put(f'/api/parties/{self.party.id}', {'items': [{'itemPrice': '5'}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have an itemName', response.data['error'])
        self.assertItemsUnchanged()

    def test_update_item_with_blank_name_rejected(self):
        data = {'items': [{'itemName': '   ', 'itemPrice': '5'}]}
        response = self.client.patch(f'/api/parties/{self.party.id}', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have an itemName', response.data['error'])
        self.assertItemsUnchanged()

    def test_update_item_without_price_rejected(self):
        response = self.client.patch(f'/api/parties/{self.party.id}', {'items': [{'itemName': 'Wire'}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have a valid itemPrice (>= 0)', response.data['error'])
        self.assertItemsUnchanged()

    def test_update_item_with_negative_price_rejected(self):
        data = {'items': [{'itemName': 'Wire', 'itemPrice': '-3'}]}
        response = self.client.put(f'/api/parties/{self.party.id}', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Each item must have a valid itemPrice (>= 0)', response.data['error'])
        self.assertItemsUnchanged()

    def test_rename_updates_transaction_snapshots(self):
        txn = TestDataFactory.create_transaction(
            self.user, type=Transaction.TransactionType.PAYMENT, party=self.party, quantity='1', unit_price='100'
        )
        self.assertEqual(txn.party_name, 'Old Name')

        response = self.client.put(f'/api/parties/{self.party.id}', {'name': 'New Name'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        txn.refresh_from_db()
        self.assertEqual(txn.party_name, 'New Name')


class PartyDeleteTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.party = TestDataFactory.create_party(self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_delete_blocked_while_transactions_exist(self):
        txn = TestDataFactory.create_transaction(
            self.user, type=Transaction.TransactionType.RECEIPT, party=self.party, quantity='1', unit_price='50'
        )
        response = self.client.delete(f'/api/parties/{self.party.id}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['error'],
            'Cannot delete party with existing transactions. Please delete all transactions first.'
        )

        self.client.delete(f'/api/transactions/{txn.id}')
        response = self.client.delete(f'/api/parties/{self.party.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Party deleted successfully')
        self.assertFalse(Party.objects.filter(pk=self.party.pk).exists())
        self.assertFalse(PartyItem.objects.filter(party_id=self.party.pk).exists())

    def test_delete_logs_detached_entries_of_other_owners(self):
        other = TestDataFactory.create_user()
        txn = TestDataFactory.create_transaction(
            other, type=Transaction.TransactionType.PAYMENT, party=self.party, quantity='1', unit_price='20'
        )
        with self.assertLogs('fenceledger.parties.views', level='WARNING') as logs:
            response = self.client.delete(f'/api/parties/{self.party.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('1 transactions of other owners', '\n'.join(logs.output))

        txn.refresh_from_db()
        self.assertIsNone(txn.party_id)
        self.assertEqual(txn.party_name, self.party.name)


class BackfillPartyItemsCommandTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.bare = Party.objects.create(owner=self.user, name='Legacy', type=Party.PartyType.BUYER)
        self.stocked = TestDataFactory.create_party(self.user, items=[('Wire', '10')])

    def test_dry_run_changes_nothing(self):
        call_command('backfill_party_items', '--dry-run', stdout=StringIO())
        self.assertFalse(self.bare.items.exists())

    def test_backfill_adds_default_item(self):
        out = StringIO()
        call_command('backfill_party_items', stdout=out)
        item = self.bare.items.get()
        self.assertEqual(item.item_name, 'Default Item')
        self.assertEqual(item.item_price, Decimal('0.00'))
        self.assertEqual(self.stocked.items.count(), 1)
        self.assertIn('Found 1 parties without items', out.getvalue())
