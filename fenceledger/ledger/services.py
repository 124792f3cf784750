"""
Transaction ledger engine.

Keeps three things consistent for every create/update/delete of a
transaction:

- the stock quantity of the referenced material (Purchase adds, Sale removes,
  never below zero),
- the debit/credit split of the entry itself,
- the running `total` of every entry in the owner's ledger with the party.

Each public operation runs in one database transaction. Affected material and
party rows are locked with SELECT ... FOR UPDATE so concurrent writers on the
same party are serialized on databases that support row locks.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
import logging
import time
import uuid

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from fenceledger.core.permissions import scope_to_owner
from fenceledger.core.utils import get_object_or_not_found
from fenceledger.inventory.models import Material
from fenceledger.inventory.services import adjust_quantity, lock_material
from fenceledger.parties.models import Party
from .models import Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# Fields a caller may patch on an existing transaction
UPDATABLE_FIELDS = ('date', 'type', 'quantity', 'unit_price', 'notes')


def generate_bill_no() -> str:
    """Unique bill number: BILL-<epoch ms>-<8 hex chars>, redrawn on collision"""
    while True:
        bill_no = f"BILL-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"
        if not Transaction.objects.filter(bill_no=bill_no).exists():
            return bill_no


def apply_amounts(txn: Transaction) -> None:
    """Purchase/Sale are debits, Payment/Receipt credits; exactly one side is non-zero"""
    amount = txn.get_amount()
    if txn.type in Transaction.DEBIT_TYPES:
        txn.debit, txn.credit = amount, ZERO
    else:
        txn.debit, txn.credit = ZERO, amount


def rebuild_party_balances(owner_id, party_id) -> Optional[Decimal]:
    """
    Replay an owner's ledger with a party in (date, id) order and store each
    entry's running total. Idempotent; only rows whose total changed are written.

    Returns the closing balance, or None when there is no party.
    """
    if party_id is None:
        return None

    rows = list(
        Transaction.objects.select_for_update()
        .filter(owner_id=owner_id, party_id=party_id)
        .order_by('date', 'id')
    )
    running = ZERO
    changed = []
    for row in rows:
        running += row.debit - row.credit
        if row.total != running:
            row.total = running
            changed.append(row)

    if changed:
        Transaction.objects.bulk_update(changed, ['total'])
    logger.debug(
        f"Rebuilt balances for owner {owner_id} / party {party_id}: "
        f"{len(rows)} entries, {len(changed)} updated, closing {running}"
    )
    return running


def _resolve_material(actor, material_id) -> Material:
    queryset = scope_to_owner(Material.objects.select_for_update(), actor)
    return get_object_or_not_found(queryset, 'Material not found', pk=material_id)


def _resolve_party(party_id) -> Party:
    # Parties are shared between roles; the row lock serializes ledger writers
    return get_object_or_not_found(Party.objects.select_for_update(), 'Party not found', pk=party_id)


def _lock_party(party_id) -> None:
    if party_id is not None:
        list(Party.objects.select_for_update().filter(pk=party_id).values_list('pk', flat=True))


def _snapshot_material(txn: Transaction, material: Optional[Material]) -> None:
    txn.material = material
    txn.material_name = material.name if material else ''
    txn.category = material.category if material else ''


def _snapshot_party(txn: Transaction, party: Optional[Party]) -> None:
    txn.party = party
    txn.party_name = party.name if party else ''


def _apply_stock(txn: Transaction, sign: int) -> None:
    """Apply (sign=1) or revert (sign=-1) the entry's effect on its material"""
    if not txn.moves_stock:
        return
    material = lock_material(txn.material_id)
    if material is None:
        logger.warning(f"Material {txn.material_id} of transaction {txn.bill_no} no longer exists; stock not adjusted")
        return
    adjust_quantity(material, txn.stock_delta() * sign)


def _validate(txn: Transaction) -> None:
    if txn.type not in Transaction.TransactionType.values:
        raise ValidationError({'type': 'Invalid transaction type'})
    if txn.quantity is None or txn.quantity < 0:
        raise ValidationError({'quantity': 'Quantity must be zero or greater'})
    if txn.unit_price is None or txn.unit_price < 0:
        raise ValidationError({'unitPrice': 'Unit price must be zero or greater'})
    if txn.type in Transaction.STOCK_TYPES and txn.material_id is None:
        raise ValidationError({'materialId': 'A material is required for Purchase and Sale transactions'})


@transaction.atomic
def create_transaction(owner, *, type, quantity, unit_price, material_id=None, party_id=None,
                       date=None, notes='') -> Transaction:
    """Record a new entry, move stock and rebuild the owner's ledger with the party"""
    txn = Transaction(
        owner=owner,
        type=type,
        quantity=quantity,
        unit_price=unit_price,
        date=date or timezone.now(),
        notes=notes or '',
    )
    if party_id is not None:
        _snapshot_party(txn, _resolve_party(party_id))
    if material_id is not None:
        _snapshot_material(txn, _resolve_material(owner, material_id))
    _validate(txn)

    apply_amounts(txn)
    txn.bill_no = generate_bill_no()
    txn.save()

    _apply_stock(txn, 1)
    rebuild_party_balances(owner.id, txn.party_id)
    txn.refresh_from_db()

    logger.info(
        f"Transaction {txn.bill_no} created by {owner.email}: {txn.type} "
        f"qty={txn.quantity} price={txn.unit_price} debit={txn.debit} credit={txn.credit} total={txn.total}"
    )
    return txn


@transaction.atomic
def update_transaction(actor, pk, changes: dict) -> Transaction:
    """
    Patch an entry. The old stock effect is reverted before fields change and
    the new effect applied afterwards, then every affected party ledger is
    rebuilt.

    `changes` may hold any of UPDATABLE_FIELDS plus `material_id` and
    `party_id`; an explicit None for either clears the reference.
    """
    queryset = scope_to_owner(Transaction.objects.select_for_update(), actor)
    txn = get_object_or_not_found(queryset, 'Transaction not found', pk=pk)
    old_party_id = txn.party_id
    _lock_party(old_party_id)

    _apply_stock(txn, -1)

    for field in UPDATABLE_FIELDS:
        if field in changes:
            value = changes[field]
            if field == 'notes':
                value = value or ''
            if field == 'date' and value is None:
                continue
            setattr(txn, field, value)

    if 'material_id' in changes and changes['material_id'] != txn.material_id:
        material_id = changes['material_id']
        _snapshot_material(txn, _resolve_material(actor, material_id) if material_id is not None else None)

    if 'party_id' in changes and changes['party_id'] != txn.party_id:
        party_id = changes['party_id']
        _snapshot_party(txn, _resolve_party(party_id) if party_id is not None else None)

    _validate(txn)
    apply_amounts(txn)
    txn.save()

    _apply_stock(txn, 1)

    # Rebuild against the entry's owner, not the caller (admins edit others' entries)
    rebuild_party_balances(txn.owner_id, txn.party_id)
    if old_party_id != txn.party_id:
        rebuild_party_balances(txn.owner_id, old_party_id)
    txn.refresh_from_db()

    logger.info(f"Transaction {txn.bill_no} updated by {actor.email}: fields={sorted(changes)} total={txn.total}")
    return txn


@transaction.atomic
def delete_transaction(actor, pk) -> None:
    """Remove an entry, revert its stock effect and rebuild its party ledger"""
    queryset = scope_to_owner(Transaction.objects.select_for_update(), actor)
    txn = get_object_or_not_found(queryset, 'Transaction not found', pk=pk)
    owner_id, party_id, bill_no = txn.owner_id, txn.party_id, txn.bill_no
    _lock_party(party_id)

    _apply_stock(txn, -1)
    txn.delete()
    rebuild_party_balances(owner_id, party_id)

    logger.info(f"Transaction {bill_no} deleted by {actor.email}")


def party_statement(viewer, party, owner_id=None) -> dict:
    """
    Entries the viewer may see for a party in chronological order, each with
    the running balance over that list, plus the closing figures.
    """
    entries = scope_to_owner(Transaction.objects.filter(party=party), viewer)
    if owner_id is not None:
        entries = entries.filter(owner_id=owner_id)
    entries = list(entries.order_by('date', 'id'))

    running = ZERO
    total_debit = ZERO
    total_credit = ZERO
    rows = []
    for entry in entries:
        running += entry.debit - entry.credit
        total_debit += entry.debit
        total_credit += entry.credit
        rows.append((entry, running))

    return {
        'party': party,
        'rows': rows,
        'total_debit': total_debit,
        'total_credit': total_credit,
        'balance': running,
    }
