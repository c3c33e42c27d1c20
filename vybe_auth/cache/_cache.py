import redis.asyncio as redis


def build_redis_client(redis_url: str) -> redis.Redis:
    """Create the Redis client owned by the process entry point."""
    return redis.Redis.from_url(redis_url, decode_responses=True)
