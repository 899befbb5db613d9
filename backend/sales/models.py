from decimal import Decimal

from django.conf import settings
from django.db import models
from backend.catalog.models import Product
from backend.core.models import StatusTrackedModel
from backend.core.utils import generate_document_number
from backend.locations.models import Company, Location
from backend.parties.models import Customer
from .status import SaleStatus, sale_status_machine


class Sale(StatusTrackedModel):
    """Sale made from one location"""
    PAYMENT_CASH = 'cash'
    PAYMENT_CARD = 'card'
    PAYMENT_TRANSFER = 'transfer'
    PAYMENT_CHOICES = [
        (PAYMENT_CASH, 'Cash'),
        (PAYMENT_CARD, 'Card'),
        (PAYMENT_TRANSFER, 'Bank Transfer'),
    ]

    status_machine = sale_status_machine
    status_fields = ('status', 'closed_at', 'cancelled_at')

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='sales')
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='sales')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    sale_number = models.CharField(max_length=100, unique=True, blank=True)
    status = models.CharField(max_length=20, choices=SaleStatus.choices, default=SaleStatus.DRAFT)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_CHOICES, blank=True)
    received_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='sales')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.sale_number or f"Sale-{self.id}"

    def save(self, *args, **kwargs):
        if not self.sale_number:
            self.sale_number = generate_document_number('SAL')
        super().save(*args, **kwargs)

    def get_total(self):
        return sum((item.get_line_total() for item in self.items.all()), Decimal('0'))

    def get_change_amount(self):
        """Change owed for a cash sale, or None"""
        if self.payment_method != self.PAYMENT_CASH or self.received_amount is None:
            return None
        return self.received_amount - self.get_total()

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_sale_company_status'),
            models.Index(fields=['location', 'status'], name='idx_sale_location_status'),
        ]


class SaleItem(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sale_items')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    def get_line_total(self):
        return self.quantity * self.unit_price

    class Meta:
        db_table = 'sale_items'
        ordering = ['id']
