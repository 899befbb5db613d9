from django.urls import path
from .views import customer_list_create, supplier_list_create

urlpatterns = [
    path('customers/', customer_list_create, name='customer-list-create'),
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
]
