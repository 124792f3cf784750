import django_filters
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Query filters for the transaction list; date bounds are inclusive whole days"""

    partyId = django_filters.NumberFilter(field_name='party_id', lookup_expr='exact')
    type = django_filters.ChoiceFilter(choices=Transaction.TransactionType.choices)
    startDate = django_filters.DateFilter(field_name='date', lookup_expr='date__gte')
    endDate = django_filters.DateFilter(field_name='date', lookup_expr='date__lte')

    class Meta:
        model = Transaction
        fields = ['partyId', 'type', 'startDate', 'endDate']
