from decimal import Decimal

from django.conf import settings
from django.db import models
from backend.catalog.models import Product
from backend.core.models import StatusTrackedModel
from backend.core.utils import generate_document_number
from backend.locations.models import Company, Location
from backend.parties.models import Supplier
from .status import PurchaseStatus, purchase_status_machine


class Purchase(StatusTrackedModel):
    """Purchase order from a supplier, received into one location"""
    status_machine = purchase_status_machine
    status_fields = ('status', 'received_at')

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='purchases')
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='purchases')
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchases')
    purchase_number = models.CharField(max_length=100, unique=True, blank=True)
    bill_number = models.CharField(max_length=100, blank=True, null=True)  # Bill/Invoice number from supplier
    status = models.CharField(max_length=20, choices=PurchaseStatus.choices, default=PurchaseStatus.DRAFT)
    notes = models.TextField(blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='purchases')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.purchase_number or f"Purchase-{self.id}"

    def save(self, *args, **kwargs):
        if not self.purchase_number:
            self.purchase_number = generate_document_number('PUR')
        super().save(*args, **kwargs)

    def get_total(self):
        """Sum of all line totals"""
        return sum((item.get_line_total() for item in self.items.all()), Decimal('0'))

    class Meta:
        db_table = 'purchases'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_purchase_company_status'),
            models.Index(fields=['supplier', 'status'], name='idx_purchase_supplier_status'),
        ]


class PurchaseItem(models.Model):
    """Purchase line items"""
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchase_items')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2)

    def get_line_total(self):
        return self.quantity * self.unit_cost

    class Meta:
        db_table = 'purchase_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['purchase', 'product'], name='idx_puritem_pur_product'),
        ]
