"""
Caching for the tenant lookups done on every request: Company and Location.

The tenant middleware resolves ``X-Company-ID`` / ``X-Location-ID`` on each
request, so the resolved instances are cached and dropped again whenever the
row is saved or deleted.
"""
from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
COMPANY_KEY_PREFIX = 'company:'
LOCATION_KEY_PREFIX = 'location:'

# Cache TTL (Time To Live) in seconds
# Companies and locations change rarely: 15 minutes
COMPANY_CACHE_TTL = 900
LOCATION_CACHE_TTL = 900


# ==================== COMPANY CACHING ====================

def get_company_cache_key(company_id: int) -> str:
    """Get cache key for company by ID"""
    return f"{COMPANY_KEY_PREFIX}{company_id}"


def get_active_company(company_id: int):
    """Active company by ID, from cache when possible; None if missing or inactive"""
    from backend.locations.models import Company

    cache_key = get_company_cache_key(company_id)
    company = cache.get(cache_key)
    if company is not None:
        logger.debug(f"Cache hit for company: {company_id}")
        return company

    company = Company.objects.filter(pk=company_id, is_active=True).first()
    if company is not None:
        cache.set(cache_key, company, COMPANY_CACHE_TTL)
    return company


def invalidate_company_cache(company_obj):
    """Invalidate the cache entry for a company"""
    if not company_obj:
        return
    cache.delete(get_company_cache_key(company_obj.pk))
    logger.debug(f"Invalidated cache for company: {company_obj.name} (ID: {company_obj.pk})")


# ==================== LOCATION CACHING ====================

def get_location_cache_key(location_id: int) -> str:
    """Get cache key for location by ID"""
    return f"{LOCATION_KEY_PREFIX}{location_id}"


def get_active_location(location_id: int):
    """Active location by ID, from cache when possible; None if missing or inactive"""
    from backend.locations.models import Location

    cache_key = get_location_cache_key(location_id)
    location = cache.get(cache_key)
    if location is not None:
        logger.debug(f"Cache hit for location: {location_id}")
        return location

    location = Location.objects.filter(pk=location_id, is_active=True).first()
    if location is not None:
        cache.set(cache_key, location, LOCATION_CACHE_TTL)
    return location


def invalidate_location_cache(location_obj):
    """Invalidate the cache entry for a location"""
    if not location_obj:
        return
    cache.delete(get_location_cache_key(location_obj.pk))
    logger.debug(f"Invalidated cache for location: {location_obj.name} (ID: {location_obj.pk})")


# ==================== SIGNALS ====================

@receiver(post_save, sender='locations.Company')
@receiver(post_delete, sender='locations.Company')
def company_changed(sender, instance, **kwargs):
    invalidate_company_cache(instance)


@receiver(post_save, sender='locations.Location')
@receiver(post_delete, sender='locations.Location')
def location_changed(sender, instance, **kwargs):
    invalidate_location_cache(instance)
