import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404
from backend.core.pagination import paginated_response
from backend.core.responses import error_response, STATUS_ERRORS
from backend.core.utils import create_audit_log, query_param_id
from backend.locations.context import current_company, current_location
from backend.locations.permissions import IsCompanyMember, HasCurrentLocation
from .models import Sale
from .serializers import SaleSerializer, StatusChangeSerializer
from .status import sale_status_machine, is_editable, status_options, active
from . import services

logger = logging.getLogger('backend.sales')


def _sale_queryset():
    return Sale.objects.filter(company=current_company.get()).select_related(
        'customer', 'location'
    ).prefetch_related('items', 'items__product')


def _get_sale(pk):
    return get_object_or_404(_sale_queryset(), pk=pk)


def _lock_sale(sale):
    return Sale.objects.select_for_update().get(pk=sale.pk)


def _sale_response(sale):
    sale = _get_sale(sale.pk)
    return Response(SaleSerializer(sale, context={'company': current_company.get()}).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_list_create(request):
    """List sales of the current company or register one at the current location"""
    company = current_company.get()
    if request.method == 'GET':
        queryset = _sale_queryset()

        status_filter = request.query_params.get('status', None)
        if status_filter == 'active':
            queryset = queryset.filter(status__in=active())
        elif status_filter:
            try:
                queryset = queryset.filter(status=sale_status_machine.coerce(status_filter))
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            customer = query_param_id(request, 'customer')
            location = query_param_id(request, 'location')
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        if customer:
            queryset = queryset.filter(customer_id=customer)
        if location:
            queryset = queryset.filter(location_id=location)

        return paginated_response(
            request, queryset.order_by('-created_at', '-id'), SaleSerializer,
            context={'company': company}
        )

    if not HasCurrentLocation().has_permission(request, None):
        return Response({'error': HasCurrentLocation.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = SaleSerializer(data=request.data, context={'company': company})
    if serializer.is_valid():
        sale = serializer.save(company=company, location=current_location.get(), created_by=request.user)
        logger.info(f"Sale {sale.sale_number} created by {request.user.username} at location {sale.location_id}")
        create_audit_log(
            request=request,
            action='create',
            model_name='Sale',
            object_id=sale.pk,
            object_reference=sale.sale_number,
            company_id=company.pk,
        )
        return Response(SaleSerializer(sale, context={'company': company}).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Sale creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_detail(request, pk):
    """Retrieve, update or delete a sale (changes only while draft)"""
    company = current_company.get()
    sale = _get_sale(pk)

    if request.method == 'GET':
        return Response(SaleSerializer(sale, context={'company': company}).data)

    if request.method == 'PATCH' and 'status' in request.data:
        return Response(
            {'error': 'Status cannot be set directly; use the transition endpoints'},
            status=status.HTTP_400_BAD_REQUEST
        )

    with transaction.atomic():
        # Re-read under lock: a concurrent transition may have moved it on
        sale = _lock_sale(sale)
        if not is_editable(sale.status):
            return Response(
                {'error': f"Sale {sale.sale_number} can only be modified while draft"},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY
            )

        if request.method == 'PATCH':
            serializer = SaleSerializer(sale, data=request.data, partial=True, context={'company': company})
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Sale',
                object_id=sale.pk,
                object_reference=sale.sale_number,
                company_id=company.pk,
                changes={key: value for key, value in request.data.items() if key != 'items'},
            )
            logger.info(f"Sale {sale.sale_number} updated by {request.user.username}")
            return _sale_response(sale)

        # DELETE
        sale_number = sale.sale_number
        sale_id = sale.pk
        sale.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Sale',
            object_id=sale_id,
            object_reference=sale_number,
            company_id=company.pk,
        )
    logger.info(f"Sale {sale_number} deleted by {request.user.username}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_advance(request, pk):
    """Move a sale one step forward; closing takes the items out of stock"""
    sale = _get_sale(pk)
    try:
        sale = services.advance_sale(sale, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _sale_response(sale)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_revert(request, pk):
    """Move a sale one step back; reopening a closed sale returns its items to stock"""
    sale = _get_sale(pk)
    try:
        sale = services.revert_sale(sale, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _sale_response(sale)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_cancel(request, pk):
    sale = _get_sale(pk)
    try:
        sale = services.cancel_sale(sale, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _sale_response(sale)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def sale_transition(request, pk):
    sale = _get_sale(pk)
    serializer = StatusChangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        sale = services.transition_sale(sale, serializer.validated_data['status'], request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _sale_response(sale)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sale_status_info(request):
    """Sale statuses with labels, colors and allowed transitions"""
    return Response(status_options())
