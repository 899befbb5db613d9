from django.urls import path
from .views import (
    company_list, tenant_context,
    location_list_create, location_detail
)

urlpatterns = [
    path('companies/', company_list, name='company-list'),
    path('context/', tenant_context, name='tenant-context'),
    path('locations/', location_list_create, name='location-list-create'),
    path('locations/<int:pk>/', location_detail, name='location-detail'),
]
