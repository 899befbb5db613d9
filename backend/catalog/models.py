from django.db import models
from backend.locations.models import Company


class Product(models.Model):
    """Product master, owned by one company"""
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    sku = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True)
    track_inventory = models.BooleanField(default=True)
    low_stock_threshold = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['company', 'sku'], name='uniq_product_company_sku'),
        ]
