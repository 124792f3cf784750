from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from fenceledger.core.models import User


class Party(models.Model):
    """Buyer or supplier with a priced item catalog"""

    class PartyType(models.TextChoices):
        BUYER = 'Buyer', 'Buyer'
        SUPPLIER = 'Supplier', 'Supplier'

    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=PartyType.choices)
    contact = models.CharField(max_length=200, blank=True)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='parties')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'parties'
        ordering = ['name', 'id']
        verbose_name_plural = 'parties'
        indexes = [
            models.Index(fields=['owner', 'type'], name='idx_party_owner_type'),
            models.Index(fields=['owner', 'name'], name='idx_party_owner_name'),
        ]


class PartyItem(models.Model):
    """Catalog line of a party: an item and its agreed price"""
    party = models.ForeignKey(Party, on_delete=models.CASCADE, related_name='items')
    item_name = models.CharField(max_length=200)
    item_price = models.DecimalField(max_digits=12, decimal_places=2,
                                     validators=[MinValueValidator(Decimal('0'))])

    def __str__(self):
        return f"{self.item_name} @ {self.item_price}"

    class Meta:
        db_table = 'party_items'
        ordering = ['id']
