"""
Purchase lifecycle: draft -> ordered -> in_transit -> received.

Strictly linear; every legal move is one step along the flow, and only the
final step into ``received`` is irreversible. Receiving is what puts the
goods into stock.
"""
from django.db import models

from backend.core.status_machine import StatusMachine


class PurchaseStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    ORDERED = 'ordered', 'Ordered'
    IN_TRANSIT = 'in_transit', 'In Transit'
    RECEIVED = 'received', 'Received'


PURCHASE_TRANSITIONS = {
    PurchaseStatus.DRAFT: [PurchaseStatus.ORDERED],
    PurchaseStatus.ORDERED: [PurchaseStatus.DRAFT, PurchaseStatus.IN_TRANSIT],
    PurchaseStatus.IN_TRANSIT: [PurchaseStatus.ORDERED, PurchaseStatus.RECEIVED],
    PurchaseStatus.RECEIVED: [],
}

purchase_status_machine = StatusMachine(
    PurchaseStatus,
    PURCHASE_TRANSITIONS,
    flow=[PurchaseStatus.DRAFT, PurchaseStatus.ORDERED, PurchaseStatus.IN_TRANSIT, PurchaseStatus.RECEIVED],
)

PURCHASE_STATUS_DESCRIPTIONS = {
    PurchaseStatus.DRAFT: 'Purchase is a draft and can be edited',
    PurchaseStatus.ORDERED: 'Order sent to the supplier',
    PurchaseStatus.IN_TRANSIT: 'Goods are on their way',
    PurchaseStatus.RECEIVED: 'Goods received, stock updated',
}

PURCHASE_STATUS_ICONS = {
    PurchaseStatus.DRAFT: '📝',
    PurchaseStatus.ORDERED: '📋',
    PurchaseStatus.IN_TRANSIT: '🚚',
    PurchaseStatus.RECEIVED: '📦',
}


def is_editable(status):
    return purchase_status_machine.coerce(status) == PurchaseStatus.DRAFT


def affects_stock(status):
    """Received purchases are the only ones reflected in stock"""
    return purchase_status_machine.coerce(status) == PurchaseStatus.RECEIVED


def status_options():
    return purchase_status_machine.options(
        description=PURCHASE_STATUS_DESCRIPTIONS,
        icon=PURCHASE_STATUS_ICONS,
    )
