from decimal import Decimal
from django.db import transaction
from rest_framework import serializers
from .models import Party, PartyItem


class PartyItemSerializer(serializers.ModelSerializer):
    itemName = serializers.CharField(source='item_name', max_length=200, allow_blank=True)
    itemPrice = serializers.DecimalField(source='item_price', max_digits=12, decimal_places=2)

    class Meta:
        model = PartyItem
        fields = ['id', 'itemName', 'itemPrice']

    def validate_itemName(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Each item must have an itemName')
        return value

    def validate_itemPrice(self, value):
        if value < Decimal('0'):
            raise serializers.ValidationError('Each item must have a valid itemPrice (>= 0)')
        return value


class PartySerializer(serializers.ModelSerializer):
    items = PartyItemSerializer(many=True)
    contact = serializers.CharField(max_length=200, required=False, allow_blank=True)
    ownerId = serializers.IntegerField(source='owner_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Party
        fields = ['id', 'name', 'type', 'contact', 'items', 'ownerId', 'createdAt', 'updatedAt']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('This field may not be blank.')
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('A party must contain at least one item.')
        # A partial party update also makes the nested item fields optional; items are always whole
        for item in value:
            if not item.get('item_name'):
                raise serializers.ValidationError('Each item must have an itemName')
            if item.get('item_price') is None:
                raise serializers.ValidationError('Each item must have a valid itemPrice (>= 0)')
        return value

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        with transaction.atomic():
            party = Party.objects.create(**validated_data)
            PartyItem.objects.bulk_create([PartyItem(party=party, **item) for item in items_data])
        return party

    def update(self, instance, validated_data):
        # Items are replaced wholesale when provided
        items_data = validated_data.pop('items', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if items_data is not None:
                instance.items.all().delete()
                PartyItem.objects.bulk_create([PartyItem(party=instance, **item) for item in items_data])
        return instance
