"""Cache Module - Caching services."""
from core.cache.result_cache import ResultCache
from core.cache.redis_store import RedisResultStore

__all__ = [
    'ResultCache',
    'RedisResultStore'
]
