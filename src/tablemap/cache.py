"""
Caching for schema introspection.

Live column and index lookups are cached per connection and table using
cachetools TTLCache. Reconciliation reads with bypass_cache=True and clears a
table's entries after it changes the table's shape.
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Cache manager for the tablemap package.

    Thread-safe singleton that manages all TTL caches.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Get or create a TTL cache with the given name.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size
            ttl: Time-to-live in seconds

        Returns
            TTLCache instance
        """
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_for_table(self, table_name: str, connection_id: int | None = None) -> None:
        """Clear all cache entries related to a specific table.

        Args:
            table_name: Name of the table to clear cache entries for
            connection_id: Restrict clearing to one connection, or None for all
        """
        with self._lock:
            for cache in self._caches.values():
                keys_to_clear = [
                    key for key in list(cache.keys())
                    if key[1] == table_name.lower()
                    and (connection_id is None or key[0] == connection_id)
                ]
                for key in keys_to_clear:
                    cache.pop(key, None)
                    logger.debug(f'Cleared cache entry {key} for table {table_name}')


def _create_cache_key(cn, table: str, method_args: tuple) -> tuple:
    """Create a deterministic cache key from the connection, table and arguments.
    """
    connection_id = getattr(cn, 'uid', id(cn))
    return (connection_id, table.lower(), *(repr(arg) for arg in method_args))


def cacheable_strategy(cache_name: str, ttl: int = 300, maxsize: int = 50):
    """Decorator for caching strategy method results.

    Caches results keyed by connection, table name and method arguments.
    Respects bypass_cache parameter to skip cache lookup.

    Args:
        cache_name: Base name for the cache
        ttl: Time-to-live in seconds
        maxsize: Maximum cache size
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, cn, table, *args, bypass_cache=False):
            if bypass_cache:
                logger.debug(f'Bypassing cache for {method.__name__}({table})')
                return method(self, cn, table, *args)

            strategy_class = self.__class__.__name__
            specific_cache_name = f'{cache_name}_{strategy_class}_{method.__name__}'

            cache = Cache.get_instance().get_cache(specific_cache_name, ttl=ttl, maxsize=maxsize)
            cache_key = _create_cache_key(cn, table, args)

            if cache_key in cache:
                logger.debug(f'Cache hit for {method.__name__}({table})')
                return cache[cache_key]

            logger.debug(f'Cache miss for {method.__name__}({table})')
            result = method(self, cn, table, *args)
            cache[cache_key] = result
            return result

        return wrapper
    return decorator
