from typing import Any

from pydantic import Field

from .base import FrozenDocumentModel
from .enums import UserEventType


class TrackingConfig(FrozenDocumentModel):
    """Process-wide capture configuration.

    Frozen: the only way to change it is ``updated()``, which validates the
    merged values and returns a new instance.
    """

    enabled: bool = True
    sample_rate: float = Field(1.0, ge=0.0, le=1.0)
    exclude_pages: list[str] = Field(default_factory=lambda: ["/health", "/api"])
    exclude_events: list[UserEventType] = Field(default_factory=list)
    enable_performance_tracking: bool = True
    enable_error_tracking: bool = True
    batch_size: int = Field(10, ge=1)
    flush_interval: int = Field(5000, gt=0, description="Milliseconds")

    def updated(self, **changes: Any) -> "TrackingConfig":
        return TrackingConfig.model_validate({**self.model_dump(), **changes})

    def is_page_excluded(self, page: str | None) -> bool:
        if not page:
            return False
        return any(page.startswith(prefix) for prefix in self.exclude_pages)


DEFAULT_TRACKING_CONFIG = TrackingConfig()
