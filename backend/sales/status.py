"""
Sale lifecycle.

draft -> processed -> closed, with cancellation from draft or processed.
A closed sale may be reopened to processed; that is the only way out of a
terminal-looking state in any document lifecycle. Stock leaves the shelf
when the sale closes and comes back if it is reopened.
"""
from django.db import models

from backend.core.status_machine import StatusMachine


class SaleStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PROCESSED = 'processed', 'Processed'
    CLOSED = 'closed', 'Closed'
    CANCELLED = 'cancelled', 'Cancelled'


SALE_TRANSITIONS = {
    SaleStatus.DRAFT: [SaleStatus.PROCESSED, SaleStatus.CANCELLED],
    SaleStatus.PROCESSED: [SaleStatus.CLOSED, SaleStatus.CANCELLED, SaleStatus.DRAFT],
    SaleStatus.CLOSED: [SaleStatus.PROCESSED],
    SaleStatus.CANCELLED: [],
}

sale_status_machine = StatusMachine(
    SaleStatus,
    SALE_TRANSITIONS,
    flow=[SaleStatus.DRAFT, SaleStatus.PROCESSED, SaleStatus.CLOSED],
)

SALE_STATUS_COLORS = {
    SaleStatus.DRAFT: 'gray',
    SaleStatus.PROCESSED: 'blue',
    SaleStatus.CLOSED: 'green',
    SaleStatus.CANCELLED: 'red',
}


def active():
    """Statuses of sales that still count (everything but cancelled)"""
    return [SaleStatus.DRAFT, SaleStatus.PROCESSED, SaleStatus.CLOSED]


def is_editable(status):
    return sale_status_machine.coerce(status) == SaleStatus.DRAFT


def affects_stock(status):
    return sale_status_machine.coerce(status) == SaleStatus.CLOSED


def status_options():
    return sale_status_machine.options(color=SALE_STATUS_COLORS)
