"""
Tests for the transaction ledger: debit/credit split, stock movement,
running-balance rebuilds, bill numbers, filters and party statements
"""
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from fenceledger.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fenceledger.inventory.models import Material
from fenceledger.ledger import services
from fenceledger.ledger.models import Transaction

PURCHASE = Transaction.TransactionType.PURCHASE
SALE = Transaction.TransactionType.SALE
PAYMENT = Transaction.TransactionType.PAYMENT
RECEIPT = Transaction.TransactionType.RECEIPT


def days_ago(n):
    return timezone.now() - timedelta(days=n)


class LedgerAssertions:

    def assertLedgerConsistent(self, owner, party):
        """Replaying the ledger in (date, id) order reproduces every stored total"""
        running = Decimal('0.00')
        for txn in Transaction.objects.filter(owner=owner, party=party).order_by('date', 'id'):
            running += txn.debit - txn.credit
            self.assertEqual(txn.total, running, f"stale total on {txn.bill_no}")
        return running


class TransactionModelTests(TestCase):

    def test_amount_rounds_half_up(self):
        txn = Transaction(type=PURCHASE, quantity=Decimal('0.333'), unit_price=Decimal('1.50'))
        self.assertEqual(txn.get_amount(), Decimal('0.50'))

    def test_stock_delta(self):
        self.assertEqual(Transaction(type=PURCHASE, quantity=Decimal('4')).stock_delta(), Decimal('4'))
        self.assertEqual(Transaction(type=SALE, quantity=Decimal('4')).stock_delta(), Decimal('-4'))
        self.assertEqual(Transaction(type=RECEIPT, quantity=Decimal('4')).stock_delta(), Decimal('0'))


class CreateTransactionTests(LedgerAssertions, TestCase):
    """Test the create operation of the ledger service"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.steel = TestDataFactory.create_material(self.owner, name='Steel')
        self.supplier = TestDataFactory.create_party(self.owner, name='Supplier A')

    def test_purchase_is_debit_and_adds_stock(self):
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 100, 10, material=self.steel, party=self.supplier)
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('100'))
        self.assertEqual(txn.debit, Decimal('1000.00'))
        self.assertEqual(txn.credit, Decimal('0.00'))
        self.assertEqual(txn.total, Decimal('1000.00'))
        self.assertEqual(txn.material_name, 'Steel')
        self.assertEqual(txn.category, Material.Category.RAW)
        self.assertEqual(txn.party_name, 'Supplier A')

    def test_payment_is_credit_and_leaves_stock(self):
        TestDataFactory.create_transaction(self.owner, PURCHASE, 10, 10, material=self.steel, party=self.supplier)
        txn = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 40, material=self.steel, party=self.supplier)
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('10'))
        self.assertEqual(txn.debit, Decimal('0.00'))
        self.assertEqual(txn.credit, Decimal('40.00'))
        self.assertEqual(txn.total, Decimal('60.00'))

    def test_sale_floors_stock_at_zero(self):
        TestDataFactory.create_transaction(self.owner, PURCHASE, 5, 1, material=self.steel)
        TestDataFactory.create_transaction(self.owner, SALE, 8, 1, material=self.steel)
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('0'))

    def test_backdated_entry_rebuilds_later_totals(self):
        later = TestDataFactory.create_transaction(self.owner, RECEIPT, 1, 100, party=self.supplier, date=days_ago(1))
        TestDataFactory.create_transaction(self.owner, PURCHASE, 5, 100, material=self.steel, party=self.supplier, date=days_ago(3))
        later.refresh_from_db()
        self.assertEqual(later.total, Decimal('400.00'))
        self.assertLedgerConsistent(self.owner, self.supplier)

    def test_same_date_ties_follow_creation_order(self):
        when = days_ago(2)
        first = TestDataFactory.create_transaction(self.owner, PURCHASE, 1, 50, material=self.steel, party=self.supplier, date=when)
        second = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 20, party=self.supplier, date=when)
        first.refresh_from_db()
        self.assertEqual(first.total, Decimal('50.00'))
        self.assertEqual(second.total, Decimal('30.00'))

    def test_ledgers_are_per_owner(self):
        other = TestDataFactory.create_user()
        TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 70, party=self.supplier)
        txn = TestDataFactory.create_transaction(other, RECEIPT, 1, 30, party=self.supplier)
        self.assertEqual(txn.total, Decimal('-30.00'))

    def test_entry_without_party_has_zero_total(self):
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 2, 5, material=self.steel)
        self.assertIsNone(txn.party_id)
        self.assertEqual(txn.total, Decimal('0.00'))

    def test_purchase_requires_material(self):
        with self.assertRaises(ValidationError):
            services.create_transaction(self.owner, type=PURCHASE, quantity=Decimal('1'), unit_price=Decimal('1'))
        self.assertFalse(Transaction.objects.exists())

    def test_unknown_party_is_not_found(self):
        with self.assertRaises(NotFound):
            services.create_transaction(
                self.owner, type=PAYMENT, quantity=Decimal('1'), unit_price=Decimal('1'), party_id=999999
            )

    def test_other_users_material_is_not_found(self):
        foreign = TestDataFactory.create_material(TestDataFactory.create_user())
        with self.assertRaises(NotFound):
            services.create_transaction(
                self.owner, type=PURCHASE, quantity=Decimal('1'), unit_price=Decimal('1'), material_id=foreign.id
            )
        foreign.refresh_from_db()
        self.assertEqual(foreign.quantity, Decimal('0'))

    def test_bill_numbers_are_unique(self):
        bill_numbers = set()
        for _ in range(1000):
            txn = services.create_transaction(self.owner, type=RECEIPT, quantity=Decimal('1'), unit_price=Decimal('1'))
            self.assertTrue(txn.bill_no.startswith('BILL-'))
            bill_numbers.add(txn.bill_no)
        self.assertEqual(len(bill_numbers), 1000)


class UpdateDeleteTransactionTests(LedgerAssertions, TestCase):
    """Test that updates and deletes reverse the old effect before applying the new one"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.steel = TestDataFactory.create_material(self.owner, name='Steel')
        self.wire = TestDataFactory.create_material(self.owner, name='Wire')
        self.supplier = TestDataFactory.create_party(self.owner, name='Supplier A')
        self.buyer = TestDataFactory.create_party(self.owner, name='Buyer B', type='Buyer')

    def test_update_quantity_moves_stock_by_difference(self):
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 10, 5, material=self.steel, party=self.supplier)
        updated = services.update_transaction(self.owner, txn.pk, {'quantity': Decimal('4')})
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('4'))
        self.assertEqual(updated.debit, Decimal('20.00'))
        self.assertEqual(updated.total, Decimal('20.00'))

    def test_update_type_reverses_then_applies(self):
        TestDataFactory.create_transaction(self.owner, PURCHASE, 20, 1, material=self.steel)
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 5, 1, material=self.steel)
        services.update_transaction(self.owner, txn.pk, {'type': SALE})
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('15'))

    def test_update_material_moves_stock_between_materials(self):
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 7, 1, material=self.steel)
        updated = services.update_transaction(self.owner, txn.pk, {'material_id': self.wire.id})
        self.steel.refresh_from_db()
        self.wire.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('0'))
        self.assertEqual(self.wire.quantity, Decimal('7'))
        self.assertEqual(updated.material_name, 'Wire')

    def test_update_party_rebuilds_both_ledgers(self):
        TestDataFactory.create_transaction(self.owner, PURCHASE, 1, 100, material=self.steel, party=self.supplier, date=days_ago(5))
        moved = TestDataFactory.create_transaction(self.owner, PURCHASE, 1, 50, material=self.steel, party=self.supplier, date=days_ago(4))
        tail = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 30, party=self.supplier, date=days_ago(3))

        updated = services.update_transaction(self.owner, moved.pk, {'party_id': self.buyer.id})
        tail.refresh_from_db()
        self.assertEqual(updated.party_name, 'Buyer B')
        self.assertEqual(updated.total, Decimal('50.00'))
        self.assertEqual(tail.total, Decimal('70.00'))
        self.assertLedgerConsistent(self.owner, self.supplier)
        self.assertLedgerConsistent(self.owner, self.buyer)

    def test_update_date_reorders_ledger(self):
        a = TestDataFactory.create_transaction(self.owner, PURCHASE, 1, 100, material=self.steel, party=self.supplier, date=days_ago(3))
        b = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 40, party=self.supplier, date=days_ago(2))
        services.update_transaction(self.owner, b.pk, {'date': days_ago(4)})
        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual(b.total, Decimal('-40.00'))
        self.assertEqual(a.total, Decimal('60.00'))

    def test_failed_update_rolls_back_stock(self):
        txn = TestDataFactory.create_transaction(self.owner, PURCHASE, 10, 1, material=self.steel)
        with self.assertRaises(ValidationError):
            services.update_transaction(self.owner, txn.pk, {'material_id': None})
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('10'))

    def test_delete_reverts_stock_and_rebuilds(self):
        first = TestDataFactory.create_transaction(self.owner, PURCHASE, 10, 10, material=self.steel, party=self.supplier, date=days_ago(2))
        second = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 30, party=self.supplier, date=days_ago(1))
        services.delete_transaction(self.owner, first.pk)

        self.steel.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('0'))
        self.assertEqual(second.total, Decimal('-30.00'))
        self.assertFalse(Transaction.objects.filter(pk=first.pk).exists())

    def test_non_owner_cannot_touch_entry(self):
        txn = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 10, party=self.supplier)
        stranger = TestDataFactory.create_user()
        with self.assertRaises(NotFound):
            services.update_transaction(stranger, txn.pk, {'quantity': Decimal('2')})
        with self.assertRaises(NotFound):
            services.delete_transaction(stranger, txn.pk)

    def test_admin_update_rebuilds_owners_ledger(self):
        admin = TestDataFactory.create_admin()
        TestDataFactory.create_transaction(self.owner, PURCHASE, 1, 100, material=self.steel, party=self.supplier, date=days_ago(2))
        txn = TestDataFactory.create_transaction(self.owner, PAYMENT, 1, 10, party=self.supplier, date=days_ago(1))
        updated = services.update_transaction(admin, txn.pk, {'unit_price': Decimal('25')})
        self.assertEqual(updated.total, Decimal('75.00'))
        self.assertEqual(updated.owner_id, self.owner.id)

    def test_random_edit_sequence_keeps_ledger_consistent(self):
        entries = [
            TestDataFactory.create_transaction(self.owner, kind, qty, price, material=self.steel, party=self.supplier, date=days_ago(age))
            for kind, qty, price, age in [
                (PURCHASE, 10, 12, 9), (PAYMENT, 1, 50, 7), (SALE, 3, 20, 8), (RECEIPT, 1, 15, 6), (PURCHASE, 2, 12, 9),
            ]
        ]
        self.assertLedgerConsistent(self.owner, self.supplier)
        services.update_transaction(self.owner, entries[1].pk, {'date': days_ago(10)})
        self.assertLedgerConsistent(self.owner, self.supplier)
        services.delete_transaction(self.owner, entries[2].pk)
        self.assertLedgerConsistent(self.owner, self.supplier)
        services.update_transaction(self.owner, entries[4].pk, {'quantity': Decimal('6'), 'unit_price': Decimal('11.25')})
        closing = self.assertLedgerConsistent(self.owner, self.supplier)
        self.assertEqual(closing, services.rebuild_party_balances(self.owner.id, self.supplier.id))


class SteelScenarioTests(TestCase):
    """Purchase, sale on another party, then delete the purchase"""

    def test_steel_scenario(self):
        owner = TestDataFactory.create_user()
        steel = TestDataFactory.create_material(owner, name='Steel')
        supplier_a = TestDataFactory.create_party(owner, name='Supplier A')
        buyer_b = TestDataFactory.create_party(owner, name='Buyer B', type='Buyer')

        purchase = TestDataFactory.create_transaction(owner, PURCHASE, 100, 10, material=steel, party=supplier_a, date=days_ago(2))
        steel.refresh_from_db()
        self.assertEqual(steel.quantity, Decimal('100'))
        self.assertEqual(purchase.debit, Decimal('1000.00'))
        self.assertEqual(purchase.total, Decimal('1000.00'))

        sale = TestDataFactory.create_transaction(owner, SALE, 40, 15, material=steel, party=buyer_b, date=days_ago(1))
        steel.refresh_from_db()
        self.assertEqual(steel.quantity, Decimal('60'))
        self.assertEqual(sale.debit, Decimal('600.00'))
        self.assertEqual(sale.total, Decimal('600.00'))

        services.delete_transaction(owner, purchase.pk)
        steel.refresh_from_db()
        self.assertEqual(steel.quantity, Decimal('0'))
        self.assertFalse(Transaction.objects.filter(party=supplier_a).exists())


class TransactionAPITests(TestCase):
    """Test transaction endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.steel = TestDataFactory.create_material(self.user, name='Steel')
        self.supplier = TestDataFactory.create_party(self.user, name='Supplier A')

    def test_create_via_api(self):
        data = {
            'type': 'Purchase', 'quantity': '12.5', 'unitPrice': '8',
            'materialId': self.steel.id, 'partyId': self.supplier.id,
            'date': '2024-03-01', 'notes': 'first load',
        }
        response = self.client.post('/api/transactions', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        txn = response.data['transaction']
        self.assertTrue(txn['billNo'].startswith('BILL-'))
        self.assertEqual(txn['debit'], Decimal('100.00'))
        self.assertEqual(txn['total'], Decimal('100.00'))
        self.assertEqual(txn['materialName'], 'Steel')
        self.assertEqual(txn['partyName'], 'Supplier A')
        self.assertTrue(txn['date'].startswith('2024-03-01'))

    def test_create_missing_required_fields(self):
        response = self.client.post('/api/transactions', {'type': 'Payment'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('quantity', response.data['error'])
        self.assertIn('unitPrice', response.data['error'])

    def test_create_invalid_type(self):
        data = {'type': 'Gift', 'quantity': '1', 'unitPrice': '1'}
        response = self.client.post('/api/transactions', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid transaction type', response.data['error'])

    def test_create_negative_quantity(self):
        data = {'type': 'Payment', 'quantity': '-1', 'unitPrice': '1'}
        response = self.client.post('/api/transactions', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_unknown_material(self):
        data = {'type': 'Purchase', 'quantity': '1', 'unitPrice': '1', 'materialId': 999999}
        response = self.client.post('/api/transactions', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Material not found')

    def test_update_and_delete_via_api(self):
        txn = TestDataFactory.create_transaction(self.user, PURCHASE, 10, 2, material=self.steel, party=self.supplier)
        response = self.client.put(f'/api/transactions/{txn.id}', {'quantity': '3', 'notes': 'corrected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['debit'], Decimal('6.00'))
        self.assertEqual(response.data['transaction']['notes'], 'corrected')
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('3'))

        response = self.client.delete(f'/api/transactions/{txn.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Transaction deleted successfully')
        self.steel.refresh_from_db()
        self.assertEqual(self.steel.quantity, Decimal('0'))

        response = self.client.get(f'/api/transactions/{txn.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters(self):
        buyer = TestDataFactory.create_party(self.user, name='Buyer B', type='Buyer')
        old = TestDataFactory.create_transaction(
            self.user, PURCHASE, 1, 1, material=self.steel, party=self.supplier,
            date=timezone.make_aware(datetime(2024, 1, 10, 9, 0)),
        )
        mid = TestDataFactory.create_transaction(
            self.user, PAYMENT, 1, 1, party=self.supplier,
            date=timezone.make_aware(datetime(2024, 1, 20, 23, 30)),
        )
        TestDataFactory.create_transaction(
            self.user, SALE, 1, 1, material=self.steel, party=buyer,
            date=timezone.make_aware(datetime(2024, 2, 5, 12, 0)),
        )

        response = self.client.get('/api/transactions')
        self.assertEqual(len(response.data['transactions']), 3)
        self.assertEqual(response.data['transactions'][0]['partyName'], 'Buyer B')

        response = self.client.get('/api/transactions', {'partyId': self.supplier.id})
        self.assertEqual([t['id'] for t in response.data['transactions']], [mid.id, old.id])

        response = self.client.get('/api/transactions', {'type': 'Payment'})
        self.assertEqual([t['id'] for t in response.data['transactions']], [mid.id])

        response = self.client.get('/api/transactions', {'startDate': '2024-01-10', 'endDate': '2024-01-20'})
        self.assertEqual([t['id'] for t in response.data['transactions']], [mid.id, old.id])

    def test_list_is_owner_scoped(self):
        TestDataFactory.create_transaction(TestDataFactory.create_user(), PAYMENT, 1, 1)
        TestDataFactory.create_transaction(self.user, PAYMENT, 1, 1)
        response = self.client.get('/api/transactions')
        self.assertEqual(len(response.data['transactions']), 1)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/transactions')
        self.assertEqual(len(response.data['transactions']), 2)


class PartyLedgerTests(TestCase):
    """Test the party statement endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.steel = TestDataFactory.create_material(self.user, name='Steel')
        self.supplier = TestDataFactory.create_party(self.user, name='Supplier A')

    def test_statement(self):
        TestDataFactory.create_transaction(self.user, PURCHASE, 10, 10, material=self.steel, party=self.supplier, date=days_ago(3))
        TestDataFactory.create_transaction(self.user, PAYMENT, 1, 60, party=self.supplier, date=days_ago(2))
        TestDataFactory.create_transaction(TestDataFactory.create_user(), PAYMENT, 1, 5, party=self.supplier)

        response = self.client.get(f'/api/parties/{self.supplier.id}/ledger')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ledger = response.data['ledger']
        self.assertEqual(ledger['party']['name'], 'Supplier A')
        self.assertEqual([e['runningBalance'] for e in ledger['entries']], [Decimal('100.00'), Decimal('40.00')])
        self.assertEqual(ledger['totalDebit'], Decimal('100.00'))
        self.assertEqual(ledger['totalCredit'], Decimal('60.00'))
        self.assertEqual(ledger['balance'], Decimal('40.00'))

    def test_admin_statement_for_one_owner(self):
        TestDataFactory.create_transaction(self.user, PAYMENT, 1, 10, party=self.supplier)
        TestDataFactory.create_transaction(TestDataFactory.create_user(), PAYMENT, 1, 5, party=self.supplier)
        self.client.authenticate_user(TestDataFactory.create_admin())

        response = self.client.get(f'/api/parties/{self.supplier.id}/ledger')
        self.assertEqual(len(response.data['ledger']['entries']), 2)
        response = self.client.get(f'/api/parties/{self.supplier.id}/ledger', {'ownerId': self.user.id})
        self.assertEqual(response.data['ledger']['balance'], Decimal('-10.00'))

    def test_unknown_party(self):
        response = self.client.get('/api/parties/999999/ledger')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RebuildPartyBalancesCommandTests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.party = TestDataFactory.create_party(self.owner)
        self.first = TestDataFactory.create_transaction(self.owner, RECEIPT, 1, 10, party=self.party, date=days_ago(2))
        self.second = TestDataFactory.create_transaction(self.owner, RECEIPT, 1, 15, party=self.party, date=days_ago(1))
        Transaction.objects.filter(pk=self.second.pk).update(total=Decimal('999.00'))

    def test_dry_run_reports_without_saving(self):
        out = StringIO()
        call_command('rebuild_party_balances', '--dry-run', stdout=out)
        self.second.refresh_from_db()
        self.assertEqual(self.second.total, Decimal('999.00'))
        self.assertIn('1 totals would change', out.getvalue())

    def test_rebuild_fixes_totals(self):
        call_command('rebuild_party_balances', '--party', str(self.party.id), stdout=StringIO())
        self.second.refresh_from_db()
        self.assertEqual(self.second.total, Decimal('-25.00'))
