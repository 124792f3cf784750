from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
import logging

from fenceledger.core.exceptions import Conflict
from fenceledger.core.permissions import scope_to_owner
from fenceledger.core.utils import get_object_or_not_found
from fenceledger.ledger.models import Transaction
from .models import Party
from .serializers import PartySerializer, PartyItemSerializer

logger = logging.getLogger(__name__)


def all_parties():
    """Parties are shared: every authenticated role sees every party"""
    return Party.objects.all().prefetch_related('items')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_list_create(request):
    """List all parties (optionally by type) or create a new party"""
    if request.method == 'GET':
        queryset = all_parties()
        party_type = request.query_params.get('type', None)
        if party_type:
            queryset = queryset.filter(type=party_type)
        serializer = PartySerializer(queryset.order_by('name', 'id'), many=True)
        return Response({'parties': serializer.data})

    serializer = PartySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    party = serializer.save(owner=request.user)
    logger.info(f"Party {party.id} '{party.name}' created by {request.user.email} with {party.items.count()} items")
    return Response({'party': PartySerializer(party).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def party_detail(request, pk):
    """Retrieve, update or delete a party"""
    if request.method == 'GET':
        party = get_object_or_not_found(all_parties(), 'Party not found', pk=pk)
        return Response({'party': PartySerializer(party).data})

    # Mutations are limited to the creator unless admin
    party = get_object_or_not_found(scope_to_owner(Party.objects.all(), request.user), 'Party not found', pk=pk)
    related_transactions = scope_to_owner(Transaction.objects.filter(party=party), request.user)

    if request.method in ('PUT', 'PATCH'):
        old_name = party.name
        serializer = PartySerializer(party, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            party = serializer.save()
            if party.name != old_name:
                renamed = related_transactions.update(party_name=party.name)
                logger.info(f"Party {party.id} renamed '{old_name}' -> '{party.name}', updated {renamed} transactions")
        party = all_parties().get(pk=party.pk)
        return Response({'party': PartySerializer(party).data})

    # DELETE
    transaction_count = related_transactions.count()
    if transaction_count > 0:
        logger.warning(f"Refused to delete party {party.id}: {transaction_count} transactions reference it")
        raise Conflict('Cannot delete party with existing transactions. Please delete all transactions first.')
    # Entries of other owners are not counted for a non-admin; they keep their partyName snapshot
    detached = Transaction.objects.filter(party=party).count()
    if detached:
        logger.warning(
            f"Party {party.id} deleted by {request.user.email} while {detached} transactions of other owners "
            f"reference it; they are detached from the party and leave its ledgers"
        )
    party_id = party.id
    party.delete()
    logger.info(f"Party {party_id} deleted by {request.user.email}")
    return Response({'message': 'Party deleted successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_items(request, pk):
    """Catalog items of a party (visible to all users)"""
    party = get_object_or_not_found(all_parties(), 'Party not found', pk=pk)
    return Response({'items': PartyItemSerializer(party.items.all(), many=True).data})
