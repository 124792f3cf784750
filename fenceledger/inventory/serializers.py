from decimal import Decimal
from rest_framework import serializers
from .models import Material


class MaterialSerializer(serializers.ModelSerializer):
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=12, decimal_places=2,
                                         min_value=Decimal('0'), required=False, allow_null=True)
    lowStockThreshold = serializers.DecimalField(source='low_stock_threshold', max_digits=12, decimal_places=3,
                                                 min_value=Decimal('0'), required=False)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'), required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    isLowStock = serializers.BooleanField(source='is_low_stock', read_only=True)
    ownerId = serializers.IntegerField(source='owner_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Material
        fields = [
            'id', 'name', 'category', 'unit', 'quantity', 'unitPrice', 'description',
            'lowStockThreshold', 'isLowStock', 'ownerId', 'createdAt', 'updatedAt'
        ]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('This field may not be blank.')
        return value

    def validate_quantity(self, value):
        # Stock only moves through transactions once the material exists
        if self.instance is not None and value != self.instance.quantity:
            raise serializers.ValidationError('Quantity is managed by transactions and cannot be edited.')
        return value
