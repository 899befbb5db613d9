"""
Tenant-aware authorization.

Every check here denies when no company is set for the request: an unset
tenant never means "all companies".
"""
from rest_framework.permissions import BasePermission

from .context import current_company, current_location
from .models import Worker

MANAGE_ROLES = [Worker.ROLE_ADMIN, Worker.ROLE_MANAGER]


def get_worker(user, company):
    """Active worker record of ``user`` in ``company``, or None"""
    if company is None or user is None or not user.is_authenticated:
        return None
    return Worker.objects.filter(user=user, company=company, is_active=True).first()


def is_company_member(user, company):
    if company is None or user is None or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return get_worker(user, company) is not None


def has_company_role(user, company, roles):
    if company is None or user is None or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    worker = get_worker(user, company)
    return worker is not None and worker.role in roles


def can_view_location(user, location):
    """Any member of the location's company"""
    return is_company_member(user, location.company)


def can_update_location(user, location):
    """Administrators and managers of the location's company"""
    return has_company_role(user, location.company, MANAGE_ROLES)


def can_delete_location(user, location):
    """Administrators of the location's company only"""
    return has_company_role(user, location.company, [Worker.ROLE_ADMIN])


class IsCompanyMember(BasePermission):
    """Requires a current company that the authenticated user works for"""
    message = 'A valid X-Company-ID header for a company you belong to is required.'

    def has_permission(self, request, view):
        return is_company_member(request.user, current_company.get())


class HasCurrentLocation(IsCompanyMember):
    """Requires a current company membership and a current location in that company"""
    message = 'A valid X-Company-ID and X-Location-ID header pair is required.'

    def has_permission(self, request, view):
        return super().has_permission(request, view) and current_location.exists()


class CanManageCompany(IsCompanyMember):
    """Administrators and managers of the current company"""
    message = 'Only company administrators or managers can perform this action.'

    def has_permission(self, request, view):
        return has_company_role(request.user, current_company.get(), MANAGE_ROLES)
