from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from fenceledger.core.models import User


class Material(models.Model):
    """Inventory item: raw input, semi-finished part or final product"""

    class Category(models.TextChoices):
        RAW = 'Raw', 'Raw'
        SEMI_FINISHED = 'Semi-Finished', 'Semi-Finished'
        FINAL = 'Final', 'Final'

    class Unit(models.TextChoices):
        KG = 'kg', 'kg'
        PCS = 'pcs', 'pcs'

    name = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=Category.choices)
    unit = models.CharField(max_length=10, choices=Unit.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'),
                                   validators=[MinValueValidator(Decimal('0'))])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                     validators=[MinValueValidator(Decimal('0'))])
    description = models.TextField(blank=True)
    low_stock_threshold = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'),
                                              validators=[MinValueValidator(Decimal('0'))])
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='materials')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.category})"

    @property
    def is_low_stock(self):
        return self.low_stock_threshold > 0 and self.quantity <= self.low_stock_threshold

    def stock_value(self):
        """Quantity on hand valued at the material's unit price"""
        return self.quantity * (self.unit_price or Decimal('0'))

    class Meta:
        db_table = 'materials'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', 'category'], name='idx_material_owner_category'),
            models.Index(fields=['owner', 'name'], name='idx_material_owner_name'),
        ]
