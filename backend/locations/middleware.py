"""
Tenant middleware: resolve the company and location headers for one request.

A missing, malformed or unknown header leaves the slot unset and the request
continues; the permission classes in ``backend.locations.permissions`` treat
an unset tenant as a denial.
"""
import logging

from django.conf import settings

from backend.core.model_cache import get_active_company, get_active_location
from .context import current_company, current_location

logger = logging.getLogger('backend.locations')


def _header_id(request, header_name):
    raw = request.headers.get(header_name)
    if raw is None or raw.strip() == '':
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed {header_name} header: {raw!r}")
        return None
    if value <= 0:
        logger.warning(f"Ignoring malformed {header_name} header: {raw!r}")
        return None
    return value


class SetCurrentCompanyMiddleware:
    """Set ``current_company`` (and ``request.company``) from the company header"""

    def __init__(self, get_response):
        self.get_response = get_response
        self.header_name = getattr(settings, 'TENANT_COMPANY_HEADER', 'X-Company-ID')

    def __call__(self, request):
        company = None
        company_id = _header_id(request, self.header_name)
        if company_id is not None:
            company = get_active_company(company_id)
            if company is None:
                logger.warning(f"{self.header_name} {company_id} does not match an active company")

        current_company.clear()
        if company is not None:
            current_company.set(company)
        request.company = company
        try:
            return self.get_response(request)
        finally:
            current_company.clear()


class SetCurrentLocationMiddleware:
    """
    Set ``current_location`` (and ``request.location``) from the location header.

    Must run after SetCurrentCompanyMiddleware: when a company is set, a
    location belonging to another company is ignored.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.header_name = getattr(settings, 'TENANT_LOCATION_HEADER', 'X-Location-ID')

    def __call__(self, request):
        location = None
        location_id = _header_id(request, self.header_name)
        if location_id is not None:
            location = get_active_location(location_id)
            if location is None:
                logger.warning(f"{self.header_name} {location_id} does not match an active location")
            elif current_company.exists() and location.company_id != current_company.id():
                logger.warning(
                    f"{self.header_name} {location_id} belongs to company {location.company_id}, "
                    f"not the current company {current_company.id()}"
                )
                location = None

        current_location.clear()
        if location is not None:
            current_location.set(location)
        request.location = location
        try:
            return self.get_response(request)
        finally:
            current_location.clear()
