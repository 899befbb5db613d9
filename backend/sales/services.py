"""Sale status changes and their stock side effects"""
import logging

from django.db import transaction
from django.utils import timezone

from backend.core.utils import create_audit_log
from backend.inventory.models import StockMovement
from backend.inventory.services import add_stock, remove_stock
from .models import Sale
from .status import SaleStatus, sale_status_machine

logger = logging.getLogger('backend.sales')


def _take_from_stock(sale, user):
    # remove_stock raises InsufficientStock on the first short line and the
    # surrounding atomic block rolls back any lines already taken
    for item in sale.items.select_related('product'):
        remove_stock(item.product, sale.location, item.quantity, StockMovement.REASON_SALE, sale, user)


def _return_to_stock(sale, user):
    for item in sale.items.select_related('product'):
        add_stock(item.product, sale.location, item.quantity, StockMovement.REASON_SALE_REVERT, sale, user)


def transition_sale(sale, target, user, request=None):
    """
    Move ``sale`` to ``target`` and apply the stock side effect of the move.

    Entering ``closed`` takes the sold quantities out of stock at the sale's
    location; leaving it puts them back.
    """
    target = sale_status_machine.coerce(target)
    with transaction.atomic():
        sale = Sale.objects.select_for_update().select_related('location').get(pk=sale.pk)
        previous = sale.get_status()
        sale_status_machine.ensure_transition(previous, target)

        if target == SaleStatus.CLOSED:
            _take_from_stock(sale, user)
            sale.closed_at = timezone.now()
        elif previous == SaleStatus.CLOSED:
            _return_to_stock(sale, user)
            sale.closed_at = None

        if target == SaleStatus.CANCELLED:
            sale.cancelled_at = timezone.now()

        sale.status = target
        sale.save()

        create_audit_log(
            request=request,
            user=user,
            action='status_change',
            model_name='Sale',
            object_id=sale.pk,
            object_reference=sale.sale_number,
            company_id=sale.company_id,
            changes={'from': previous.value, 'to': target.value},
        )
    logger.info(f"Sale {sale.sale_number} moved from {previous.value} to {target.value}")
    return sale


def advance_sale(sale, user, request=None):
    target = sale_status_machine.advance_target(sale.status)
    return transition_sale(sale, target, user, request=request)


def revert_sale(sale, user, request=None):
    target = sale_status_machine.revert_target(sale.status)
    return transition_sale(sale, target, user, request=request)


def cancel_sale(sale, user, request=None):
    return transition_sale(sale, SaleStatus.CANCELLED, user, request=request)
