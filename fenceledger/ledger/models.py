from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal, ROUND_HALF_UP
from fenceledger.core.models import User
from fenceledger.inventory.models import Material
from fenceledger.parties.models import Party


class Transaction(models.Model):
    """
    One ledger entry against a party.

    Purchase/Sale entries are debits and move stock; Payment/Receipt entries
    are credits. `total` holds the owner's running balance with the party
    after this entry, in (date, id) order.
    """

    class TransactionType(models.TextChoices):
        PURCHASE = 'Purchase', 'Purchase'
        SALE = 'Sale', 'Sale'
        PAYMENT = 'Payment', 'Payment'
        RECEIPT = 'Receipt', 'Receipt'

    STOCK_TYPES = (TransactionType.PURCHASE, TransactionType.SALE)
    DEBIT_TYPES = (TransactionType.PURCHASE, TransactionType.SALE)

    date = models.DateTimeField(default=timezone.now)
    bill_no = models.CharField(max_length=64, unique=True)
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    material_name = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=20, choices=Material.Category.choices, blank=True)
    type = models.CharField(max_length=20, choices=TransactionType.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, validators=[MinValueValidator(Decimal('0'))])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    debit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    party = models.ForeignKey(Party, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    party_name = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='transactions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.bill_no} {self.type} {self.debit or self.credit}"

    @property
    def moves_stock(self):
        return self.material_id is not None and self.type in self.STOCK_TYPES

    def stock_delta(self):
        """Signed quantity this entry applies to its material"""
        if self.type == self.TransactionType.PURCHASE:
            return self.quantity
        if self.type == self.TransactionType.SALE:
            return -self.quantity
        return Decimal('0')

    def get_amount(self):
        return (self.quantity * self.unit_price).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    class Meta:
        db_table = 'transactions'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['owner', 'type'], name='idx_txn_owner_type'),
            models.Index(fields=['owner', 'party', 'date'], name='idx_txn_owner_party_date'),
        ]
