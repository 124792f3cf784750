"""
Cache invalidation signals
Automatically invalidate cached summaries when ledger data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from fenceledger.inventory.models import Material
from fenceledger.parties.models import Party
from fenceledger.ledger.models import Transaction
from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    The cache is invalidated once when the block exits.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False
        invalidate_dashboard_cache()


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete], sender=Material)
@receiver([post_save, post_delete], sender=Party)
@receiver([post_save, post_delete], sender=Transaction)
def invalidate_on_ledger_change(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_dashboard_cache()
