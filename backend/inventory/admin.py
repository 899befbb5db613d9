from django.contrib import admin
from .models import Stock, StockMovement, InventoryTransfer, InventoryTransferItem


@admin.register(Stock)
class StockAdmin(admin.ModelAdmin):
    list_display = ['product', 'location', 'quantity', 'updated_at']
    list_filter = ['location', 'updated_at']
    search_fields = ['product__name', 'product__sku']
    ordering = ['product', 'location']


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ['product', 'location', 'quantity', 'balance_after', 'reason', 'reference_type', 'reference_id', 'created_by', 'created_at']
    list_filter = ['reason', 'location', 'created_at']
    search_fields = ['product__name']
    ordering = ['-created_at']
    readonly_fields = ['created_at']


class InventoryTransferItemInline(admin.TabularInline):
    model = InventoryTransferItem
    extra = 1


@admin.register(InventoryTransfer)
class InventoryTransferAdmin(admin.ModelAdmin):
    list_display = ['transfer_number', 'company', 'from_location', 'to_location', 'status', 'requested_by', 'created_at']
    list_filter = ['status', 'company', 'created_at']
    search_fields = ['transfer_number', 'notes']
    ordering = ['-created_at']
    inlines = [InventoryTransferItemInline]
    readonly_fields = ['status', 'created_at', 'updated_at']
