"""
Caching helpers for the dashboard summary.

Cached summaries are keyed by scope ('all' for admins, the user id otherwise)
and by a shared version number. Bumping the version invalidates every scope
at once without needing a key scan.
"""
from django.conf import settings
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

DASHBOARD_KEY_PREFIX = 'dashboard_summary:'
DASHBOARD_VERSION_KEY = 'dashboard_summary_version'


def get_dashboard_version() -> int:
    return cache.get(DASHBOARD_VERSION_KEY, 0)


def get_dashboard_cache_key(scope) -> str:
    """Get cache key for a dashboard summary scope"""
    return f"{DASHBOARD_KEY_PREFIX}v{get_dashboard_version()}:{scope}"


def get_cached_dashboard(scope):
    cached_data = cache.get(get_dashboard_cache_key(scope))
    if cached_data is not None:
        logger.debug(f"Cache hit for dashboard summary: {scope}")
    return cached_data


def cache_dashboard(scope, data, ttl: int = None):
    ttl = ttl or getattr(settings, 'DASHBOARD_CACHE_TTL', 300)
    cache.set(get_dashboard_cache_key(scope), data, ttl)
    logger.debug(f"Cached dashboard summary: {scope}")


def invalidate_dashboard_cache():
    """Drop every cached dashboard summary"""
    try:
        cache.incr(DASHBOARD_VERSION_KEY)
    except ValueError:
        cache.set(DASHBOARD_VERSION_KEY, 1, None)
    logger.debug("Invalidated dashboard summary cache")
