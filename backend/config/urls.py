"""
URL configuration for backend project.

Every API app mounts its routes under ``api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Business Management Admin Panel"
admin.site.site_title = "Business Management Admin Portal"
admin.site.index_title = "Companies, locations and documents"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.locations.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.purchasing.urls')),
    path('api/v1/', include('backend.sales.urls')),
]
