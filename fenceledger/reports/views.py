import logging
from decimal import Decimal, ROUND_HALF_UP
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, Q, F, DecimalField, ExpressionWrapper

from fenceledger.core.cache_utils import get_cached_dashboard, cache_dashboard
from fenceledger.core.permissions import scope_to_owner, is_admin_user
from fenceledger.inventory.models import Material
from fenceledger.ledger.models import Transaction
from fenceledger.parties.models import Party

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
CENT = Decimal('0.01')


def summary_scope(user):
    return 'all' if is_admin_user(user) else str(user.id)


def _money(value):
    return (value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def build_summary(user):
    """Totals over the materials and transactions the user may see"""
    transactions = scope_to_owner(Transaction.objects.all(), user)
    amount = ExpressionWrapper(F('quantity') * F('unit_price'), output_field=DecimalField(max_digits=24, decimal_places=5))
    money = transactions.aggregate(
        total_purchases=Sum(amount, filter=Q(type=Transaction.TransactionType.PURCHASE)),
        total_sales=Sum(amount, filter=Q(type=Transaction.TransactionType.SALE)),
        total_debit=Sum('debit'),
        total_credit=Sum('credit'),
        transaction_count=Count('id'),
    )

    materials = scope_to_owner(Material.objects.all(), user)
    stock = materials.aggregate(
        stock_value=Sum(amount, filter=Q(unit_price__isnull=False)),
        material_count=Count('id'),
        low_stock_count=Count('id', filter=Q(low_stock_threshold__gt=0, quantity__lte=F('low_stock_threshold'))),
    )

    total_purchases = _money(money['total_purchases'])
    total_sales = _money(money['total_sales'])
    return {
        'totalPurchases': total_purchases,
        'totalSales': total_sales,
        'stockValue': _money(stock['stock_value']),
        'profit': total_sales - total_purchases,
        'totalDebit': _money(money['total_debit']),
        'totalCredit': _money(money['total_credit']),
        'materialCount': stock['material_count'],
        'lowStockCount': stock['low_stock_count'],
        'partyCount': Party.objects.count(),
        'transactionCount': money['transaction_count'],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_summary(request):
    """Dashboard totals (purchases, sales, stock value, profit and record counts)"""
    scope = summary_scope(request.user)
    summary = get_cached_dashboard(scope)
    if summary is None:
        summary = build_summary(request.user)
        cache_dashboard(scope, summary)
    return Response({'summary': summary})
