from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
import logging

from fenceledger.core.permissions import scope_to_owner, is_admin_user
from fenceledger.core.utils import get_object_or_not_found
from fenceledger.parties.models import Party
from fenceledger.parties.serializers import PartySerializer
from .filters import TransactionFilter
from .models import Transaction
from .serializers import TransactionSerializer, StatementEntrySerializer
from . import services

logger = logging.getLogger(__name__)


def visible_transactions(user):
    return scope_to_owner(Transaction.objects.all(), user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """
    List transactions (filters: partyId, type, startDate, endDate), newest first,
    or record a new one.
    """
    if request.method == 'GET':
        filterset = TransactionFilter(request.query_params, queryset=visible_transactions(request.user))
        if not filterset.is_valid():
            raise ValidationError(filterset.errors)
        queryset = filterset.qs.order_by('-date', '-id')
        return Response({'transactions': TransactionSerializer(queryset, many=True).data})

    serializer = TransactionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    txn = services.create_transaction(
        request.user,
        type=data['type'],
        quantity=data['quantity'],
        unit_price=data['unit_price'],
        material_id=data.get('material_id'),
        party_id=data.get('party_id'),
        date=data.get('date'),
        notes=data.get('notes'),
    )
    return Response({'transaction': TransactionSerializer(txn).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve, update or delete a transaction"""
    if request.method == 'GET':
        txn = get_object_or_not_found(visible_transactions(request.user), 'Transaction not found', pk=pk)
        return Response({'transaction': TransactionSerializer(txn).data})

    if request.method in ('PUT', 'PATCH'):
        # Updates are always patches: omitted fields keep their stored values
        serializer = TransactionSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        txn = services.update_transaction(request.user, pk, dict(serializer.validated_data))
        return Response({'transaction': TransactionSerializer(txn).data})

    # DELETE
    services.delete_transaction(request.user, pk)
    return Response({'message': 'Transaction deleted successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_ledger(request, party_id):
    """
    Chronological statement of a party: the caller's entries (every owner's for
    admin, or one owner's with ?ownerId=) with running balances and totals.
    """
    party = get_object_or_not_found(Party.objects.prefetch_related('items'), 'Party not found', pk=party_id)

    owner_id = None
    raw_owner = request.query_params.get('ownerId')
    if raw_owner and is_admin_user(request.user):
        try:
            owner_id = int(raw_owner)
        except ValueError:
            raise ValidationError({'ownerId': 'A valid integer is required.'})

    statement = services.party_statement(request.user, party, owner_id=owner_id)
    entries = [entry for entry, _ in statement['rows']]
    running_balances = {entry.pk: running for entry, running in statement['rows']}
    return Response({'ledger': {
        'party': PartySerializer(party).data,
        'entries': StatementEntrySerializer(
            entries, many=True, context={'running_balances': running_balances}
        ).data,
        'totalDebit': statement['total_debit'],
        'totalCredit': statement['total_credit'],
        'balance': statement['balance'],
    }})
