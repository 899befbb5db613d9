from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from backend.core.pagination import paginated_response
from backend.locations.context import current_company
from backend.locations.permissions import IsCompanyMember
from .models import Product
from .serializers import ProductSerializer


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def product_list_create(request):
    """List or create products of the current company"""
    company = current_company.get()
    if request.method == 'GET':
        queryset = Product.objects.filter(company=company)
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(sku__icontains=search))
        return paginated_response(request, queryset.order_by('name', 'id'), ProductSerializer)

    serializer = ProductSerializer(data=request.data, context={'company': company})
    if serializer.is_valid():
        serializer.save(company=company)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
