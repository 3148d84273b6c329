from __future__ import annotations

import logging

from shared.logging.json import configure_logging as _shared_configure_logging
from shared.logging.logger import get_logger as _shared_get_logger

from .config import settings


def configure_logging():
    _shared_configure_logging(
        service=settings.otel_service_name,
        level=settings.effective_log_level,
        environment=settings.environment.value,
        redaction_patterns=settings.app_log_redaction_patterns,
    )


def get_logger(name: str) -> logging.Logger:
    return _shared_get_logger(f"realtime.{name}")
