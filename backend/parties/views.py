from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from backend.locations.context import current_company
from backend.locations.permissions import IsCompanyMember
from .models import Customer, Supplier
from .serializers import CustomerSerializer, SupplierSerializer


def _list_or_create(request, model, serializer_class):
    company = current_company.get()
    if request.method == 'GET':
        queryset = model.objects.filter(company=company, is_active=True)
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search))
        serializer = serializer_class(queryset.order_by('name'), many=True)
        return Response(serializer.data)

    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        serializer.save(company=company)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def customer_list_create(request):
    """List or create customers of the current company"""
    return _list_or_create(request, Customer, CustomerSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def supplier_list_create(request):
    """List or create suppliers of the current company"""
    return _list_or_create(request, Supplier, SupplierSerializer)
