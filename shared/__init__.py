"""Shared utilities and components for the capture agent and realtime service."""

from .config import BaseLoggingConfig, BaseRedisConfig, BaseServiceConfig
from .constants import Collections, Environment, RedisKeys

__all__ = [
    "Collections",
    "Environment",
    "RedisKeys",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseRedisConfig",
]
