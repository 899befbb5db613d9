"""Purchase status changes and the stock they move"""
import logging

from django.db import transaction
from django.utils import timezone

from backend.core.utils import create_audit_log
from backend.inventory.models import StockMovement
from backend.inventory.services import add_stock
from .models import Purchase
from .status import PurchaseStatus, purchase_status_machine

logger = logging.getLogger('backend.purchasing')


def receive_into_stock(purchase, user):
    """Add every line of ``purchase`` to stock at its location"""
    for item in purchase.items.select_related('product'):
        add_stock(item.product, purchase.location, item.quantity, StockMovement.REASON_PURCHASE, purchase, user)
    purchase.received_at = timezone.now()


def transition_purchase(purchase, target, user, request=None):
    """
    Move ``purchase`` to ``target``.

    Raises UnknownStatus for a value outside PurchaseStatus and
    InvalidStatusTransition for an illegal move. The purchase row is locked
    for the duration, so concurrent requests cannot receive the same purchase
    twice.
    """
    target = purchase_status_machine.coerce(target)
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().select_related('location').get(pk=purchase.pk)
        previous = purchase.get_status()
        purchase_status_machine.ensure_transition(previous, target)

        if target == PurchaseStatus.RECEIVED:
            receive_into_stock(purchase, user)

        purchase.status = target
        purchase.save()

        create_audit_log(
            request=request,
            user=user,
            action='status_change',
            model_name='Purchase',
            object_id=purchase.pk,
            object_reference=purchase.purchase_number,
            company_id=purchase.company_id,
            changes={'from': previous.value, 'to': target.value},
        )
    logger.info(f"Purchase {purchase.purchase_number} moved from {previous.value} to {target.value}")
    return purchase


def advance_purchase(purchase, user, request=None):
    """Move to the next status of the flow; InvalidStatusTransition at the end of it"""
    target = purchase_status_machine.advance_target(purchase.status)
    return transition_purchase(purchase, target, user, request=request)


def revert_purchase(purchase, user, request=None):
    """Move back to the previous status of the flow, if that move is allowed"""
    target = purchase_status_machine.revert_target(purchase.status)
    return transition_purchase(purchase, target, user, request=request)
