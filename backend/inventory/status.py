"""
Inventory transfer lifecycle.

Happy path: pending -> approved -> in_transit -> completed. A pending transfer
may also be rejected, and anything not yet finished may be cancelled; those
branches are separate actions and never reached through next()/previous().
"""
from django.db import models

from backend.core.status_machine import StatusMachine


class TransferStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    IN_TRANSIT = 'in_transit', 'In Transit'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


TRANSFER_TRANSITIONS = {
    TransferStatus.PENDING: [TransferStatus.APPROVED, TransferStatus.REJECTED, TransferStatus.CANCELLED],
    TransferStatus.APPROVED: [TransferStatus.IN_TRANSIT, TransferStatus.CANCELLED],
    TransferStatus.REJECTED: [],
    TransferStatus.IN_TRANSIT: [TransferStatus.COMPLETED, TransferStatus.CANCELLED],
    TransferStatus.COMPLETED: [],
    TransferStatus.CANCELLED: [],
}

transfer_status_machine = StatusMachine(
    TransferStatus,
    TRANSFER_TRANSITIONS,
    flow=[TransferStatus.PENDING, TransferStatus.APPROVED, TransferStatus.IN_TRANSIT, TransferStatus.COMPLETED],
)

TRANSFER_STATUS_COLORS = {
    TransferStatus.PENDING: '#FFA726',
    TransferStatus.APPROVED: '#42A5F5',
    TransferStatus.REJECTED: '#F44336',
    TransferStatus.IN_TRANSIT: '#AB47BC',
    TransferStatus.COMPLETED: '#66BB6A',
    TransferStatus.CANCELLED: '#EF5350',
}

CANCELLABLE_STATUSES = frozenset([TransferStatus.PENDING, TransferStatus.APPROVED, TransferStatus.IN_TRANSIT])


def can_edit(status):
    """Only pending transfers can have their lines or locations changed"""
    return transfer_status_machine.coerce(status) == TransferStatus.PENDING


def can_cancel(status):
    return transfer_status_machine.coerce(status) in CANCELLABLE_STATUSES


def status_options():
    return transfer_status_machine.options(color=TRANSFER_STATUS_COLORS)
