"""
Caching for the product list.

The POS screen reloads the whole catalogue after every sale, so the
serialized list is kept in the Django cache and dropped whenever a product
row or its stock counters change.
"""
from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import hashlib
import logging

from .models import Product

logger = logging.getLogger(__name__)

PRODUCT_LIST_KEY_PREFIX = 'product_list:'
PRODUCT_LIST_VERSION_KEY = 'product_list:version'

# Products: 3 minutes (stock changes on every sale)
PRODUCT_LIST_CACHE_TTL = 180


def _list_version():
    version = cache.get(PRODUCT_LIST_VERSION_KEY)
    if version is None:
        version = 1
        cache.set(PRODUCT_LIST_VERSION_KEY, version, None)
    return version


def get_product_list_cache_key(filters: dict = None) -> str:
    """Get cache key for a filtered product list"""
    parts = '&'.join(f"{key}={str(value).strip().lower()}" for key, value in sorted((filters or {}).items()) if value)
    digest = hashlib.md5(parts.encode('utf-8')).hexdigest()
    return f"{PRODUCT_LIST_KEY_PREFIX}v{_list_version()}:{digest}"


def get_cached_product_list(filters: dict = None):
    cached_data = cache.get(get_product_list_cache_key(filters))
    if cached_data is not None:
        logger.debug(f"Cache hit for product list {filters!r}")
    return cached_data


def cache_product_list(data, filters: dict = None, ttl: int = None):
    cache.set(get_product_list_cache_key(filters), data, ttl or PRODUCT_LIST_CACHE_TTL)


def invalidate_product_cache():
    """Drop every cached product list by bumping the list version"""
    try:
        cache.incr(PRODUCT_LIST_VERSION_KEY)
    except ValueError:
        cache.set(PRODUCT_LIST_VERSION_KEY, 2, None)
    logger.debug("Product list cache invalidated")


def invalidate_product_cache_on_commit():
    """Invalidate now and again once the surrounding transaction commits

    The second bump drops lists cached by readers that ran between the
    write and the commit.
    """
    invalidate_product_cache()
    transaction.on_commit(invalidate_product_cache)


@receiver(post_save, sender=Product)
def product_saved(sender, instance, **kwargs):
    invalidate_product_cache_on_commit()


@receiver(post_delete, sender=Product)
def product_deleted(sender, instance, **kwargs):
    invalidate_product_cache_on_commit()
