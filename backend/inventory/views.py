import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backend.core.pagination import paginated_response
from backend.core.responses import error_response, STATUS_ERRORS
from backend.core.utils import create_audit_log, query_param_id
from backend.locations.context import current_company, current_location
from backend.locations.permissions import IsCompanyMember, HasCurrentLocation, CanManageCompany
from .models import Stock, InventoryTransfer
from .serializers import (
    StockSerializer, InventoryTransferSerializer, TransferQuantitiesSerializer,
    ReasonSerializer, TransitionSerializer
)
from .status import TransferStatus, transfer_status_machine, can_edit, status_options
from . import services

logger = logging.getLogger('backend.inventory')


def _transfer_queryset():
    return InventoryTransfer.objects.filter(company=current_company.get()).select_related(
        'from_location', 'to_location'
    ).prefetch_related('items', 'items__product')


def _get_transfer(pk):
    return get_object_or_404(_transfer_queryset(), pk=pk)


def _transfer_response(transfer):
    transfer = _get_transfer(transfer.pk)
    return Response(InventoryTransferSerializer(transfer, context={'company': current_company.get()}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasCurrentLocation])
def stock_list(request):
    """Stock of the current location"""
    queryset = Stock.objects.filter(location=current_location.get()).select_related('product', 'location')
    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(Q(product__name__icontains=search) | Q(product__sku__icontains=search))
    return paginated_response(request, queryset.order_by('product__name', 'id'), StockSerializer)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def transfer_list_create(request):
    """List transfers of the current company or request a new one"""
    company = current_company.get()
    if request.method == 'GET':
        queryset = _transfer_queryset()

        status_filter = request.query_params.get('status', None)
        if status_filter:
            try:
                status_filter = transfer_status_machine.coerce(status_filter)
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(status=status_filter)

        try:
            location = query_param_id(request, 'location')
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        if location:
            queryset = queryset.filter(Q(from_location_id=location) | Q(to_location_id=location))

        return paginated_response(
            request, queryset.order_by('-created_at', '-id'), InventoryTransferSerializer,
            context={'company': company}
        )

    serializer = InventoryTransferSerializer(data=request.data, context={'company': company})
    if serializer.is_valid():
        transfer = serializer.save(company=company, requested_by=request.user)
        logger.info(f"Transfer {transfer.transfer_number} requested by {request.user.username}: "
                    f"{transfer.from_location.name} -> {transfer.to_location.name}")
        create_audit_log(
            request=request,
            action='create',
            model_name='InventoryTransfer',
            object_id=transfer.pk,
            object_reference=transfer.transfer_number,
            company_id=company.pk,
        )
        return Response(InventoryTransferSerializer(transfer, context={'company': company}).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Transfer creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def transfer_detail(request, pk):
    """Retrieve, edit (pending only) or cancel a transfer"""
    company = current_company.get()
    transfer = _get_transfer(pk)

    if request.method == 'GET':
        return Response(InventoryTransferSerializer(transfer, context={'company': company}).data)

    elif request.method == 'PATCH':
        with transaction.atomic():
            # Re-read under lock: a concurrent approval may have moved it on
            transfer = InventoryTransfer.objects.select_for_update().get(pk=transfer.pk)
            if not can_edit(transfer.status):
                return Response(
                    {'error': f"Transfer {transfer.transfer_number} can only be edited while pending"},
                    status=status.HTTP_422_UNPROCESSABLE_ENTITY
                )
            serializer = InventoryTransferSerializer(transfer, data=request.data, partial=True, context={'company': company})
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='InventoryTransfer',
                object_id=transfer.pk,
                object_reference=transfer.transfer_number,
                company_id=company.pk,
                changes={key: value for key, value in request.data.items() if key != 'items'},
            )
        logger.info(f"Transfer {transfer.transfer_number} updated by {request.user.username}")
        return _transfer_response(transfer)

    else:  # DELETE cancels
        reason = ReasonSerializer(data=request.data)
        reason.is_valid(raise_exception=True)
        try:
            transfer = services.cancel_transfer(transfer, request.user, reason.validated_data['reason'], request=request)
        except STATUS_ERRORS as e:
            return error_response(e)
        return _transfer_response(transfer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanManageCompany])
def transfer_approve(request, pk):
    transfer = _get_transfer(pk)
    try:
        transfer = services.approve_transfer(transfer, request.user, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _transfer_response(transfer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanManageCompany])
def transfer_reject(request, pk):
    transfer = _get_transfer(pk)
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        transfer = services.reject_transfer(transfer, request.user, serializer.validated_data['reason'], request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _transfer_response(transfer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def transfer_ship(request, pk):
    """Ship an approved transfer; body may override shipped quantities per item id"""
    transfer = _get_transfer(pk)
    serializer = TransferQuantitiesSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        transfer = services.ship_transfer(transfer, request.user, serializer.validated_data.get('items'), request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _transfer_response(transfer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def transfer_receive(request, pk):
    """Receive an in-transit transfer; body may override received quantities per item id"""
    transfer = _get_transfer(pk)
    serializer = TransferQuantitiesSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        transfer = services.receive_transfer(transfer, request.user, serializer.validated_data.get('items'), request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _transfer_response(transfer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def transfer_transition(request, pk):
    """Move a transfer to the status given in the body"""
    transfer = _get_transfer(pk)
    serializer = TransitionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    try:
        target = transfer_status_machine.coerce(data['status'])
        if target in (TransferStatus.APPROVED, TransferStatus.REJECTED) \
                and not CanManageCompany().has_permission(request, None):
            return Response({'error': CanManageCompany.message}, status=status.HTTP_403_FORBIDDEN)
        transfer = services.transition_transfer(transfer, target, request.user, data=data, request=request)
    except STATUS_ERRORS as e:
        return error_response(e)
    return _transfer_response(transfer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transfer_status_info(request):
    """Transfer statuses with labels, colors and allowed transitions"""
    return Response(status_options())
