from django.contrib import admin
from .models import Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 1
    fields = ['product', 'quantity', 'unit_price']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_number', 'company', 'location', 'customer', 'status', 'payment_method', 'get_total', 'closed_at', 'created_at']
    list_filter = ['status', 'payment_method', 'company', 'created_at']
    search_fields = ['sale_number', 'customer__name', 'notes']
    ordering = ['-created_at']
    inlines = [SaleItemInline]
    readonly_fields = ['status', 'closed_at', 'cancelled_at', 'created_at', 'updated_at']

    def get_total(self, obj):
        return f"{obj.get_total():.2f}"
    get_total.short_description = 'Total'
