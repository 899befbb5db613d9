import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from backend.locations.context import current_company
from backend.locations.permissions import IsCompanyMember
from backend.locations.serializers import WorkerCompanySerializer
from .models import AuditLog
from .pagination import paginated_response
from .serializers import UserSerializer, AuditLogSerializer

User = get_user_model()
logger = logging.getLogger('backend.core')


def _active_workers(user):
    return user.workers.filter(is_active=True, company__is_active=True).select_related('company').prefetch_related('locations')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        # Ensure user is active
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        logger.info(f"User {self.user.username} logged in")
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        # Companies the user can send in the company header
        token['companies'] = list(_active_workers(user).values_list('company_id', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with the companies, roles and locations they work in"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['companies'] = WorkerCompanySerializer(_active_workers(user).order_by('company__name'), many=True).data
    return Response(user_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def audit_log_list(request):
    """Audit logs of the current company, with filtering"""
    queryset = AuditLog.objects.filter(company_id=current_company.id()).select_related('user')

    # Filter by action
    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    # Filter by model_name
    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    # Filter by date range
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__lte=date_to)

    return paginated_response(request, queryset.order_by('-created_at', '-id'), AuditLogSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCompanyMember])
def audit_log_detail(request, pk):
    """Retrieve an audit log of the current company"""
    audit_log = get_object_or_404(AuditLog, pk=pk, company_id=current_company.id())
    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
