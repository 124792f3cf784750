"""
Test suite for the dashboard summary report
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from fenceledger.core.cache_utils import get_cached_dashboard, get_dashboard_version
from fenceledger.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from fenceledger.ledger.models import Transaction


class DashboardSummaryTests(TestCase):
    """Test the summary endpoint"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_summary(self):
        response = self.client.get('/api/reports/summary')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['totalPurchases'], Decimal('0.00'))
        self.assertEqual(summary['profit'], Decimal('0.00'))
        self.assertEqual(summary['transactionCount'], 0)

    def test_totals(self):
        steel = TestDataFactory.create_material(self.user, name='Steel', unit_price=Decimal('10'),
                                                low_stock_threshold=Decimal('80'))
        TestDataFactory.create_material(self.user, name='Unpriced', quantity=Decimal('5'))
        supplier = TestDataFactory.create_party(self.user)
        buyer = TestDataFactory.create_party(self.user, type='Buyer')
        TestDataFactory.create_transaction(self.user, Transaction.TransactionType.PURCHASE, 100, 10, material=steel, party=supplier)
        TestDataFactory.create_transaction(self.user, Transaction.TransactionType.SALE, 40, 15, material=steel, party=buyer)
        TestDataFactory.create_transaction(self.user, Transaction.TransactionType.PAYMENT, 1, 250, party=supplier)

        summary = self.client.get('/api/reports/summary').data['summary']
        self.assertEqual(summary['totalPurchases'], Decimal('1000.00'))
        self.assertEqual(summary['totalSales'], Decimal('600.00'))
        self.assertEqual(summary['profit'], Decimal('-400.00'))
        self.assertEqual(summary['stockValue'], Decimal('600.00'))
        self.assertEqual(summary['totalDebit'], Decimal('1600.00'))
        self.assertEqual(summary['totalCredit'], Decimal('250.00'))
        self.assertEqual(summary['materialCount'], 2)
        self.assertEqual(summary['lowStockCount'], 1)
        self.assertEqual(summary['partyCount'], 2)
        self.assertEqual(summary['transactionCount'], 3)

    def test_scoped_to_owner_unless_admin(self):
        other = TestDataFactory.create_user()
        TestDataFactory.create_transaction(other, Transaction.TransactionType.RECEIPT, 1, 99)
        summary = self.client.get('/api/reports/summary').data['summary']
        self.assertEqual(summary['transactionCount'], 0)

        admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        summary = admin_client.get('/api/reports/summary').data['summary']
        self.assertEqual(summary['transactionCount'], 1)
        self.assertEqual(summary['totalCredit'], Decimal('99.00'))

    def test_summary_is_cached_and_invalidated(self):
        self.client.get('/api/reports/summary')
        self.assertIsNotNone(get_cached_dashboard(str(self.user.id)))
        version = get_dashboard_version()

        TestDataFactory.create_transaction(self.user, Transaction.TransactionType.RECEIPT, 1, 5)
        self.assertGreater(get_dashboard_version(), version)
        self.assertIsNone(get_cached_dashboard(str(self.user.id)))

        summary = self.client.get('/api/reports/summary').data['summary']
        self.assertEqual(summary['transactionCount'], 1)
