"""Settings bases for the capture agent and the realtime service.

Each package defines ``core/config.py`` with a ``Settings`` class derived from
``BaseServiceConfig`` and a module-level ``settings`` instance; values come
from the environment (``REDIS_HOST``, ``APP_LOG_LEVEL``...).
"""

from pydantic_settings import BaseSettings

from shared.constants.environments import Environment


class BaseLoggingConfig(BaseSettings):
    app_log_level: str = "INFO"
    # Field names containing any of these are masked in JSON logs.
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "key",
        "authorization",
        "cookie",
    ]
    app_environment: str = "production"

    @property
    def environment(self) -> Environment:
        return Environment.parse(self.app_environment)

    @property
    def effective_log_level(self) -> str:
        """Configured level, forced to DEBUG in development."""
        if self.environment.verbose_logging:
            return "DEBUG"
        return self.app_log_level.upper()


class BaseRedisConfig(BaseSettings):
    """Location of the shared telemetry store."""

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    redis_connect_retries: int = 6


class BaseServiceConfig(BaseLoggingConfig, BaseRedisConfig):
    otel_service_name: str = "unknown"  # set by each package


__all__ = ["BaseLoggingConfig", "BaseRedisConfig", "BaseServiceConfig"]
