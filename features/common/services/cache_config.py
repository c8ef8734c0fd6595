from typing import Optional
from aiocache import SimpleMemoryCache, caches

# Cache expiration times (in seconds)
TIDE_PREDICTIONS_EXPIRE = 14400  # 4 hours - matches the background tide refresh

# Configure default cache
caches.set_config({
    'default': {
        'cache': "aiocache.SimpleMemoryCache",
        'serializer': {
            'class': "aiocache.serializers.PickleSerializer"
        },
        'ttl': TIDE_PREDICTIONS_EXPIRE,
    }
})

def get_cache() -> SimpleMemoryCache:
    """Get the default cache instance."""
    return caches.get('default')  # type: ignore

def station_cache_key(namespace: str, station_id: Optional[str]) -> str:
    """Cache key in format {namespace}:station:{station_id}."""
    if not station_id:
        raise ValueError("station_id is required for caching")
    return f"{namespace}:station:{station_id}"
