"""Material quantity adjustment."""
from decimal import Decimal
import logging

from .models import Material

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def lock_material(material_id):
    """Fetch a material row for update, or None when it no longer exists"""
    return Material.objects.select_for_update().filter(pk=material_id).first()


def adjust_quantity(material, delta):
    """
    Apply a signed quantity delta to a material, flooring the result at zero.

    Must run inside a transaction when the material was fetched with
    lock_material(). Returns the new quantity.
    """
    delta = Decimal(str(delta))
    old_quantity = material.quantity
    new_quantity = old_quantity + delta
    if new_quantity < ZERO:
        logger.warning(
            f"Stock for material {material.name} (ID: {material.id}) would go negative "
            f"({old_quantity} + {delta}); clamping to 0"
        )
        new_quantity = ZERO
    material.quantity = new_quantity
    material.save(update_fields=['quantity', 'updated_at'])
    logger.info(f"Material {material.id} quantity {old_quantity} -> {new_quantity} (delta {delta})")
    return new_quantity
