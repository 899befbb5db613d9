from django.conf import settings
from django.db import models
from decimal import Decimal
from backend.catalog.models import Product
from backend.core.models import StatusTrackedModel
from backend.core.utils import generate_document_number
from backend.locations.models import Company, Location
from .status import TransferStatus, transfer_status_machine


class Stock(models.Model):
    """On-hand quantity of a product at a location"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_entries')
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='stock_entries')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} @ {self.location.name}: {self.quantity}"

    class Meta:
        db_table = 'stock'
        unique_together = [['product', 'location']]
        indexes = [
            models.Index(fields=['location'], name='idx_stock_location'),
        ]


class StockMovement(models.Model):
    """Ledger entry for every stock change"""
    REASON_PURCHASE = 'purchase'
    REASON_SALE = 'sale'
    REASON_SALE_REVERT = 'sale_revert'
    REASON_TRANSFER_OUT = 'transfer_out'
    REASON_TRANSFER_IN = 'transfer_in'
    REASON_TRANSFER_RETURN = 'transfer_return'
    REASON_CHOICES = [
        (REASON_PURCHASE, 'Purchase Received'),
        (REASON_SALE, 'Sale Closed'),
        (REASON_SALE_REVERT, 'Sale Reopened'),
        (REASON_TRANSFER_OUT, 'Transfer Shipped'),
        (REASON_TRANSFER_IN, 'Transfer Received'),
        (REASON_TRANSFER_RETURN, 'Transfer Cancelled In Transit'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_movements')
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='stock_movements')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, help_text='Signed: positive adds stock, negative removes it')
    balance_after = models.DecimalField(max_digits=12, decimal_places=3)
    reason = models.CharField(max_length=30, choices=REASON_CHOICES)
    reference_type = models.CharField(max_length=50)
    reference_id = models.BigIntegerField()
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'location'], name='idx_movement_product_location'),
            models.Index(fields=['reference_type', 'reference_id'], name='idx_movement_reference'),
        ]


class InventoryTransfer(StatusTrackedModel):
    """Stock transfer between two locations of the same company"""
    status_machine = transfer_status_machine
    status_fields = (
        'status', 'approved_by', 'approved_at', 'rejected_at', 'rejection_reason', 'shipped_by', 'shipped_at',
        'received_by', 'received_at', 'cancelled_at', 'cancellation_reason',
    )

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='inventory_transfers')
    transfer_number = models.CharField(max_length=100, unique=True, blank=True)
    from_location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='transfers_out')
    to_location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='transfers_in')
    status = models.CharField(max_length=20, choices=TransferStatus.choices, default=TransferStatus.PENDING)
    notes = models.TextField(blank=True)
    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_requested')
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_approved')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    shipped_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_shipped')
    shipped_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transfers_received')
    received_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.transfer_number or f"Transfer-{self.id}"

    def save(self, *args, **kwargs):
        if not self.transfer_number:
            self.transfer_number = generate_document_number('TRF')
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'inventory_transfers'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_transfer_company_status'),
        ]


class InventoryTransferItem(models.Model):
    """Line of an inventory transfer"""
    transfer = models.ForeignKey(InventoryTransfer, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='transfer_items')
    quantity_requested = models.DecimalField(max_digits=12, decimal_places=3)
    quantity_shipped = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    quantity_received = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)

    class Meta:
        db_table = 'inventory_transfer_items'
        ordering = ['id']
