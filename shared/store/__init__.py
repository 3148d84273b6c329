from .base import ChangeStream, TelemetryStore
from .client import connect_redis
from .redis_store import RedisChangeStream, RedisTelemetryStore

__all__ = [
    "ChangeStream",
    "RedisChangeStream",
    "RedisTelemetryStore",
    "TelemetryStore",
    "connect_redis",
]
