"""
Stock bookkeeping and inventory transfer workflow.

Every function that changes stock or a transfer status must run inside
``transaction.atomic()``; the transfer actions open their own block and lock
the transfer row first, so a status write and its stock movements commit or
roll back together.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from backend.core.exceptions import InsufficientStock, InvalidStatusTransition
from backend.core.utils import create_audit_log
from .models import Stock, StockMovement, InventoryTransfer
from .status import TransferStatus, transfer_status_machine, can_cancel

logger = logging.getLogger('backend.inventory')


# ==================== STOCK ====================

def _locked_stock(product, location):
    stock, _created = Stock.objects.select_for_update().get_or_create(
        product=product,
        location=location,
        defaults={'quantity': Decimal('0.000')},
    )
    return stock


def _record_movement(stock, quantity, reason, reference, user):
    return StockMovement.objects.create(
        product=stock.product,
        location=stock.location,
        quantity=quantity,
        balance_after=stock.quantity,
        reason=reason,
        reference_type=reference._meta.model_name,
        reference_id=reference.pk,
        created_by=user if user is not None and user.is_authenticated else None,
    )


def get_available_quantity(product, location):
    stock = Stock.objects.filter(product=product, location=location).first()
    return stock.quantity if stock else Decimal('0.000')


def add_stock(product, location, quantity, reason, reference, user=None):
    """Increase stock of ``product`` at ``location`` and record the movement"""
    quantity = Decimal(quantity)
    if quantity <= 0 or not product.track_inventory:
        return None
    stock = _locked_stock(product, location)
    stock.quantity += quantity
    stock.save(update_fields=['quantity', 'updated_at'])
    _record_movement(stock, quantity, reason, reference, user)
    logger.info(f"Stock +{quantity} {product.name} at {location.name} ({reason} {reference}), now {stock.quantity}")
    return stock


def remove_stock(product, location, quantity, reason, reference, user=None):
    """Decrease stock of ``product`` at ``location``; raise InsufficientStock if it would go negative"""
    quantity = Decimal(quantity)
    if quantity <= 0 or not product.track_inventory:
        return None
    stock = _locked_stock(product, location)
    if stock.quantity < quantity:
        raise InsufficientStock(product, location, stock.quantity, quantity)
    stock.quantity -= quantity
    stock.save(update_fields=['quantity', 'updated_at'])
    _record_movement(stock, -quantity, reason, reference, user)
    logger.info(f"Stock -{quantity} {product.name} at {location.name} ({reason} {reference}), now {stock.quantity}")
    return stock


# ==================== TRANSFERS ====================

def _lock_transfer(transfer):
    return (
        InventoryTransfer.objects.select_for_update()
        .select_related('from_location', 'to_location')
        .get(pk=transfer.pk)
    )


def _audit_status_change(transfer, previous, user, request=None, **extra):
    create_audit_log(
        request=request,
        user=user,
        action='status_change',
        model_name='InventoryTransfer',
        object_id=transfer.pk,
        object_reference=transfer.transfer_number,
        company_id=transfer.company_id,
        changes={'from': previous.value, 'to': transfer.status, **extra},
    )
    logger.info(f"Transfer {transfer.transfer_number} moved from {previous.value} to {transfer.status}")


def _quantity_overrides(items, overrides, field_name, limit_field):
    """
    Map of item id -> quantity, defaulting to ``limit_field`` of each item.

    ``overrides`` maps item ids (int or str) to quantities; each must be
    between zero and the item's ``limit_field`` value.
    """
    overrides = {int(key): Decimal(str(value)) for key, value in (overrides or {}).items()}
    known_ids = {item.pk for item in items}
    unknown = set(overrides) - known_ids
    if unknown:
        raise ValueError(f"Unknown transfer items: {sorted(unknown)}")

    result = {}
    for item in items:
        limit = getattr(item, limit_field)
        quantity = overrides.get(item.pk, limit)
        if quantity < 0 or quantity > limit:
            raise ValueError(f"{field_name} for item {item.pk} must be between 0 and {limit}")
        result[item.pk] = quantity
    return result


def approve_transfer(transfer, user, request=None):
    with transaction.atomic():
        transfer = _lock_transfer(transfer)
        previous = transfer.get_status()
        transfer_status_machine.ensure_transition(previous, TransferStatus.APPROVED)
        transfer.status = TransferStatus.APPROVED
        transfer.approved_by = user
        transfer.approved_at = timezone.now()
        transfer.save()
        _audit_status_change(transfer, previous, user, request)
    return transfer


def reject_transfer(transfer, user, reason, request=None):
    with transaction.atomic():
        transfer = _lock_transfer(transfer)
        previous = transfer.get_status()
        transfer_status_machine.ensure_transition(previous, TransferStatus.REJECTED)
        transfer.status = TransferStatus.REJECTED
        transfer.rejected_at = timezone.now()
        transfer.rejection_reason = reason or ''
        transfer.save()
        _audit_status_change(transfer, previous, user, request, reason=transfer.rejection_reason)
    return transfer


def ship_transfer(transfer, user, shipped=None, request=None):
    """Send an approved transfer: take the shipped quantities out of the origin location"""
    with transaction.atomic():
        transfer = _lock_transfer(transfer)
        previous = transfer.get_status()
        transfer_status_machine.ensure_transition(previous, TransferStatus.IN_TRANSIT)

        items = list(transfer.items.select_related('product'))
        quantities = _quantity_overrides(items, shipped, 'quantity_shipped', 'quantity_requested')
        for item in items:
            item.quantity_shipped = quantities[item.pk]
            item.save(update_fields=['quantity_shipped'])
            remove_stock(item.product, transfer.from_location, item.quantity_shipped,
                         StockMovement.REASON_TRANSFER_OUT, transfer, user)

        transfer.status = TransferStatus.IN_TRANSIT
        transfer.shipped_by = user
        transfer.shipped_at = timezone.now()
        transfer.save()
        _audit_status_change(transfer, previous, user, request)
    return transfer


def receive_transfer(transfer, user, received=None, request=None):
    """Complete an in-transit transfer: put the received quantities into the destination location"""
    with transaction.atomic():
        transfer = _lock_transfer(transfer)
        previous = transfer.get_status()
        transfer_status_machine.ensure_transition(previous, TransferStatus.COMPLETED)

        items = list(transfer.items.select_related('product'))
        quantities = _quantity_overrides(items, received, 'quantity_received', 'quantity_shipped')
        for item in items:
            item.quantity_received = quantities[item.pk]
            item.save(update_fields=['quantity_received'])
            if item.quantity_received < item.quantity_shipped:
                logger.warning(
                    f"Transfer {transfer.transfer_number}: {item.product.name} shipped "
                    f"{item.quantity_shipped}, received {item.quantity_received}"
                )
            add_stock(item.product, transfer.to_location, item.quantity_received,
                      StockMovement.REASON_TRANSFER_IN, transfer, user)

        transfer.status = TransferStatus.COMPLETED
        transfer.received_by = user
        transfer.received_at = timezone.now()
        transfer.save()
        _audit_status_change(transfer, previous, user, request)
    return transfer


def cancel_transfer(transfer, user, reason='', request=None):
    """Cancel a transfer that has not finished; stock already shipped goes back to the origin"""
    with transaction.atomic():
        transfer = _lock_transfer(transfer)
        previous = transfer.get_status()
        if not can_cancel(previous):
            raise InvalidStatusTransition(previous, TransferStatus.CANCELLED)

        if previous == TransferStatus.IN_TRANSIT:
            for item in transfer.items.select_related('product'):
                add_stock(item.product, transfer.from_location, item.quantity_shipped or Decimal('0'),
                          StockMovement.REASON_TRANSFER_RETURN, transfer, user)

        transfer.status = TransferStatus.CANCELLED
        transfer.cancelled_at = timezone.now()
        transfer.cancellation_reason = reason or ''
        transfer.save()
        _audit_status_change(transfer, previous, user, request, reason=transfer.cancellation_reason)
    return transfer


def transition_transfer(transfer, target, user, data=None, request=None):
    """Move a transfer to ``target`` through the action that owns that status"""
    target = transfer_status_machine.coerce(target)
    data = data or {}
    if target == TransferStatus.APPROVED:
        return approve_transfer(transfer, user, request=request)
    if target == TransferStatus.REJECTED:
        return reject_transfer(transfer, user, data.get('reason', ''), request=request)
    if target == TransferStatus.IN_TRANSIT:
        return ship_transfer(transfer, user, data.get('items'), request=request)
    if target == TransferStatus.COMPLETED:
        return receive_transfer(transfer, user, data.get('items'), request=request)
    if target == TransferStatus.CANCELLED:
        return cancel_transfer(transfer, user, data.get('reason', ''), request=request)
    # Nothing moves back to pending
    raise InvalidStatusTransition(transfer.get_status(), target)
