from .redis_presence_cache import RedisPresenceCache, create_redis_client

__all__ = ["RedisPresenceCache", "create_redis_client"]
