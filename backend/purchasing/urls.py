from django.urls import path
from .views import (
    purchase_list_create, purchase_detail, purchase_status_info,
    purchase_advance, purchase_revert, purchase_transition
)

urlpatterns = [
    # Purchase endpoints
    path('purchases/', purchase_list_create, name='purchase-list-create'),
    path('purchases/status-info/', purchase_status_info, name='purchase-status-info'),
    path('purchases/<int:pk>/', purchase_detail, name='purchase-detail'),
    path('purchases/<int:pk>/advance/', purchase_advance, name='purchase-advance'),
    path('purchases/<int:pk>/revert/', purchase_revert, name='purchase-revert'),
    path('purchases/<int:pk>/transition/', purchase_transition, name='purchase-transition'),
]
