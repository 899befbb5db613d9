from django.urls import path
from .views import (
    stock_list,
    transfer_list_create, transfer_detail, transfer_status_info,
    transfer_approve, transfer_reject, transfer_ship, transfer_receive, transfer_transition
)

urlpatterns = [
    # Stock endpoints
    path('stock/', stock_list, name='stock-list'),

    # InventoryTransfer endpoints
    path('inventory-transfers/', transfer_list_create, name='inventory-transfer-list-create'),
    path('inventory-transfers/status-info/', transfer_status_info, name='inventory-transfer-status-info'),
    path('inventory-transfers/<int:pk>/', transfer_detail, name='inventory-transfer-detail'),
    path('inventory-transfers/<int:pk>/approve/', transfer_approve, name='inventory-transfer-approve'),
    path('inventory-transfers/<int:pk>/reject/', transfer_reject, name='inventory-transfer-reject'),
    path('inventory-transfers/<int:pk>/ship/', transfer_ship, name='inventory-transfer-ship'),
    path('inventory-transfers/<int:pk>/receive/', transfer_receive, name='inventory-transfer-receive'),
    path('inventory-transfers/<int:pk>/transition/', transfer_transition, name='inventory-transfer-transition'),
]
