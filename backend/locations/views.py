import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import ProtectedError
from backend.core.utils import create_audit_log
from .context import current_company, current_location
from .models import Location
from .permissions import (
    IsCompanyMember, CanManageCompany, get_worker,
    can_view_location, can_update_location, can_delete_location
)
from .serializers import CompanySerializer, LocationSerializer, WorkerCompanySerializer

logger = logging.getLogger('backend.locations')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def company_list(request):
    """Companies the current user works for, with the user's role in each"""
    workers = request.user.workers.filter(is_active=True, company__is_active=True).select_related('company').prefetch_related('locations')
    serializer = WorkerCompanySerializer(workers.order_by('company__name'), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def tenant_context(request):
    """Company and location resolved from the tenant headers of this request"""
    company = current_company.get()
    location = current_location.get()
    worker = get_worker(request.user, company)
    return Response({
        'company': CompanySerializer(company).data,
        'location': LocationSerializer(location).data if location else None,
        'role': worker.role if worker else None,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def location_list_create(request):
    """List locations of the current company or create one (create requires admin/manager)"""
    company = current_company.get()
    if request.method == 'GET':
        locations = Location.objects.filter(company=company)
        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            locations = locations.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))
        serializer = LocationSerializer(locations.order_by('name'), many=True)
        return Response(serializer.data)

    if not CanManageCompany().has_permission(request, None):
        logger.warning(f"User {request.user.username} attempted to create a location in company {company.pk} without manager privileges")
        return Response({'error': CanManageCompany.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = LocationSerializer(data=request.data)
    if serializer.is_valid():
        location = serializer.save(company=company)
        logger.info(f"Location '{location.name}' created in company {company.pk} by {request.user.username}")
        create_audit_log(
            request=request,
            action='create',
            model_name='Location',
            object_id=location.pk,
            object_reference=location.name,
            company_id=company.pk,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    logger.warning(f"Location creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def location_detail(request, pk):
    """Retrieve, update or delete a location of the current company"""
    location = get_object_or_404(Location, pk=pk, company=current_company.get())

    if request.method == 'GET':
        if not can_view_location(request.user, location):
            return Response({'error': 'You cannot view this location'}, status=status.HTTP_403_FORBIDDEN)
        return Response(LocationSerializer(location).data)

    elif request.method == 'PATCH':
        if not can_update_location(request.user, location):
            logger.warning(f"User {request.user.username} attempted to modify location {pk} without manager privileges")
            return Response({'error': 'Only company administrators or managers can modify locations'}, status=status.HTTP_403_FORBIDDEN)
        serializer = LocationSerializer(location, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Location {pk} updated by {request.user.username}")
            create_audit_log(
                request=request,
                action='update',
                model_name='Location',
                object_id=location.pk,
                object_reference=location.name,
                changes=dict(request.data),
                company_id=location.company_id,
            )
            return Response(serializer.data)
        logger.warning(f"Location update validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    else:  # DELETE
        if not can_delete_location(request.user, location):
            logger.warning(f"User {request.user.username} attempted to delete location {pk} without admin privileges")
            return Response({'error': 'Only company administrators can delete locations'}, status=status.HTTP_403_FORBIDDEN)
        logger.info(f"User {request.user.username} deleting location {pk} ({location.name})")
        location_name = location.name
        company_id = location.company_id
        try:
            location.delete()
        except ProtectedError:
            logger.warning(f"Location {pk} still has documents or stock; refusing delete")
            return Response(
                {"error": "Location has purchases, sales, transfers or stock and cannot be deleted; deactivate it instead"},
                status=status.HTTP_409_CONFLICT
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Location',
            object_id=pk,
            object_reference=location_name,
            company_id=company_id,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
