from django.contrib import admin
from .models import Company, Location, Worker


class LocationInline(admin.TabularInline):
    model = Location
    extra = 0
    fields = ['name', 'address', 'phone', 'is_active']


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'business_name', 'tax_id', 'phone', 'email', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'business_name', 'tax_id', 'email']
    ordering = ['name']
    inlines = [LocationInline]


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'company', 'phone', 'email', 'is_active', 'created_at']
    list_filter = ['company', 'is_active', 'created_at']
    search_fields = ['name', 'address', 'email']
    ordering = ['company', 'name']


@admin.register(Worker)
class WorkerAdmin(admin.ModelAdmin):
    list_display = ['user', 'company', 'role', 'is_active', 'created_at']
    list_filter = ['company', 'role', 'is_active']
    search_fields = ['user__username', 'user__email', 'company__name']
    filter_horizontal = ['locations']
