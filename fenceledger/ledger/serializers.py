from datetime import datetime, time
from decimal import Decimal
from django.utils.dateparse import parse_date
from rest_framework import serializers
from .models import Transaction


class LedgerDateField(serializers.DateTimeField):
    """DateTimeField that also accepts a bare calendar date (midnight of that day)"""

    def to_internal_value(self, value):
        if isinstance(value, str) and len(value.strip()) == 10:
            day = parse_date(value.strip())
            if day is not None:
                return self.enforce_timezone(datetime.combine(day, time.min))
        return super().to_internal_value(value)


class TransactionSerializer(serializers.ModelSerializer):
    """
    Wire form of a transaction. Writable fields are validated here and handed
    to the ledger services; amounts, snapshots and totals are derived.
    """
    date = LedgerDateField(required=False, allow_null=True)
    billNo = serializers.CharField(source='bill_no', read_only=True)
    materialId = serializers.IntegerField(source='material_id', required=False, allow_null=True)
    materialName = serializers.CharField(source='material_name', read_only=True)
    category = serializers.CharField(read_only=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'))
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=12, decimal_places=2, min_value=Decimal('0'))
    debit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    credit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    total = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)
    partyId = serializers.IntegerField(source='party_id', required=False, allow_null=True)
    partyName = serializers.CharField(source='party_name', read_only=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ownerId = serializers.IntegerField(source='owner_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'date', 'billNo', 'materialId', 'materialName', 'category', 'type',
            'quantity', 'unitPrice', 'debit', 'credit', 'total',
            'partyId', 'partyName', 'notes', 'ownerId', 'createdAt', 'updatedAt'
        ]
        extra_kwargs = {
            'type': {'error_messages': {'invalid_choice': 'Invalid transaction type'}},
        }


class StatementEntrySerializer(TransactionSerializer):
    runningBalance = serializers.SerializerMethodField()

    class Meta(TransactionSerializer.Meta):
        fields = TransactionSerializer.Meta.fields + ['runningBalance']

    def get_runningBalance(self, obj):
        return self.context['running_balances'][obj.pk]
