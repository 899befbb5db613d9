from django.contrib import admin
from .models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 1
    fields = ['product', 'quantity', 'unit_cost']


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ['purchase_number', 'company', 'location', 'supplier', 'status', 'get_total', 'received_at', 'created_by', 'created_at']
    list_filter = ['status', 'company', 'created_at']
    search_fields = ['purchase_number', 'bill_number', 'notes']
    ordering = ['-created_at']
    inlines = [PurchaseItemInline]
    readonly_fields = ['status', 'received_at', 'created_at', 'updated_at']

    def get_total(self, obj):
        return f"{obj.get_total():.2f}"
    get_total.short_description = 'Total'
