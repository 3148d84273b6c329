from .collections import Collections
from .environments import Environment
from .redis_keys import RedisKeys

__all__ = ["Collections", "Environment", "RedisKeys"]
