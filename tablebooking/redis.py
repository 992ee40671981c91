import asyncio
import logging

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError

from tablebooking.config import REDIS_URL

logger = logging.getLogger(__name__)


async def get_redis():
    redis_client = redis.Redis.from_url(
        REDIS_URL, decode_responses=True, max_connections=500
    )
    try:
        yield redis_client
    finally:
        await redis_client.aclose()


async def get_redis_session():
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


async def redis_execute(redis_client, command, *args, retries=3, delay=0.5):
    for attempt in range(retries):
        try:
            return await getattr(redis_client, command)(*args)
        except RedisConnectionError:
            if attempt == retries - 1:
                raise
            logger.warning("Redis %s failed (attempt %d/%d), retrying", command, attempt + 1, retries)
            await asyncio.sleep(delay)
