from django.urls import path
from .views import (
    sale_list_create, sale_detail, sale_status_info,
    sale_advance, sale_revert, sale_cancel, sale_transition
)

urlpatterns = [
    # Sale endpoints
    path('sales/', sale_list_create, name='sale-list-create'),
    path('sales/status-info/', sale_status_info, name='sale-status-info'),
    path('sales/<int:pk>/', sale_detail, name='sale-detail'),
    path('sales/<int:pk>/advance/', sale_advance, name='sale-advance'),
    path('sales/<int:pk>/revert/', sale_revert, name='sale-revert'),
    path('sales/<int:pk>/cancel/', sale_cancel, name='sale-cancel'),
    path('sales/<int:pk>/transition/', sale_transition, name='sale-transition'),
]
