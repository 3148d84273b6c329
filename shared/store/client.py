import logging

import redis.asyncio as redis

from shared.config import BaseRedisConfig
from shared.utils.retry import retry_async


async def connect_redis(config: BaseRedisConfig, logger: logging.Logger) -> redis.Redis:
    """Connect to the telemetry store, retrying while it comes up."""

    async def _connect():
        r = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            decode_responses=True,
        )
        try:
            await r.ping()
        except Exception:
            await r.aclose()
            raise
        return r

    def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    r = await retry_async(
        _connect, retries=config.redis_connect_retries, on_retry=_on_retry
    )
    logger.info(
        "redis_connected", extra={"host": config.redis_host, "db": config.redis_db}
    )
    return r
