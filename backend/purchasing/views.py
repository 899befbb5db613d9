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
from .models import Purchase
from .serializers import PurchaseSerializer, StatusChangeSerializer
from .status import purchase_status_machine, is_editable, status_options
from . import services

logger = logging.getLogger('backend.purchasing')


def _purchase_queryset():
    return Purchase.objects.filter(company=current_company.get()).select_related(
        'supplier', 'location'
    ).prefetch_related('items', 'items__product')


def _get_purchase(pk):
    return get_object_or_404(_purchase_queryset(), pk=pk)


def _lock_purchase(purchase):
    return Purchase.objects.select_for_update().get(pk=purchase.pk)


def _purchase_response(purchase):
    purchase = _get_purchase(purchase.pk)
    return Response(PurchaseSerializer(purchase, context={'company': current_company.get()}).data)


def _not_editable(purchase):
    return Response(
        {'error': f"Purchase {purchase.purchase_number} can only be modified while {purchase_status_machine.initial.label.lower()}"},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def purchase_list_create(request):
    """List purchases of the current company or create one for the current location"""
    company = current_company.get()
    if request.method == 'GET':
        queryset = _purchase_queryset()

        # Filters
        status_filter = request.query_params.get('status', None)
        try:
            supplier = query_param_id(request, 'supplier')
            location = query_param_id(request, 'location')
            if status_filter:
                queryset = queryset.filter(status=purchase_status_machine.coerce(status_filter))
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if location:
            queryset = queryset.filter(location_id=location)

        return paginated_response(
            request, queryset.order_by('-created_at', '-id'), PurchaseSerializer,
            context={'company': company}
        )

    # POST
    if not HasCurrentLocation().has_permission(request, None):
        return Response({'error': HasCurrentLocation.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = PurchaseSerializer(data=request.data, context={'company': company})
    if serializer.is_valid():
        purchase = serializer.save(company=company, location=current_location.get(), created_by=request.user)
        logger.info(f"Purchase {purchase.purchase_number} created by {request.user.username} for location {purchase.location_id}")
        create_audit_log(
            request=request,
            action='create',
            model_name='Purchase',
            object_id=purchase.pk,
            object_reference=purchase.purchase_number,
            company_id=company.pk,
        )
        return Response(PurchaseSerializer(purchase, context={'company': company}).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Purchase creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def purchase_detail(request, pk):
    """Retrieve, update or delete a purchase (changes only while draft)"""
    company = current_company.get()
    purchase = _get_purchase(pk)

    if request.method == 'GET':
        return Response(PurchaseSerializer(purchase, context={'company': company}).data)

    elif request.method == 'PATCH':
        if 'status' in request.data:
            return Response(
                {'error': 'Status cannot be set directly; use the transition endpoints'},
                status=status.HTTP_400_BAD_REQUEST
            )
        with transaction.atomic():
            # Re-read under lock: a concurrent transition may have moved it on
            purchase = _lock_purchase(purchase)
            if not is_editable(purchase.status):
                return _not_editable(purchase)
            serializer = PurchaseSerializer(purchase, data=request.data, partial=True, context={'company': company})
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Purchase',
                object_id=purchase.pk,
                object_reference=purchase.purchase_number,
                company_id=company.pk,
                changes={key: value for key, value in request.data.items() if key != 'items'},
            )
        logger.info(f"Purchase {purchase.purchase_number} updated by {request.user.username}")
        return _purchase_response(purchase)

    else:  # DELETE
        with transaction.atomic():
            purchase = _lock_purchase(purchase)
            if not is_editable(purchase.status):
                return _not_editable(purchase)
            purchase_number = purchase.purchase_number
            purchase_id = purchase.pk
            purchase.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='Purchase',
                object_id=purchase_id,
                object_reference=purchase_number,
                company_id=company.pk,
            )
        logger.info(f"Purchase {purchase_number} deleted by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def purchase_advance(request, pk):
    """Move a purchase one step forward (draft -> ordered -> in transit -> received)"""
    purchase = _get_purchase(pk)
    try:
        purchase = services.advance_purchase(purchase, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _purchase_response(purchase)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def purchase_revert(request, pk):
    """Move a purchase one step back; received purchases cannot be reverted"""
    purchase = _get_purchase(pk)
    try:
        purchase = services.revert_purchase(purchase, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _purchase_response(purchase)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def purchase_transition(request, pk):
    purchase = _get_purchase(pk)
    serializer = StatusChangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        purchase = services.transition_purchase(purchase, serializer.validated_data['status'], request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _purchase_response(purchase)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_status_info(request):
    """Purchase statuses with labels, descriptions, icons and allowed transitions"""
    return Response(status_options())
