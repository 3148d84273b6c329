from shared.config import BaseServiceConfig
from shared.models import TrackingConfig, UserEventType


class Settings(BaseServiceConfig):
    otel_service_name: str = "capture"

    # Tracking
    tracking_enabled: bool = True
    tracking_sample_rate: float = 1.0
    tracking_exclude_pages: list[str] = ["/health", "/api"]
    tracking_exclude_events: list[UserEventType] = []
    tracking_enable_performance: bool = True
    tracking_enable_errors: bool = True

    # Batching
    tracking_batch_size: int = 10
    tracking_flush_interval_ms: int = 5000
    # Auto-flush backoff after a failed write; timer flushes keep their pace.
    tracking_flush_retry_base_seconds: float = 5.0
    tracking_flush_retry_max_seconds: float = 300.0

    # Sessions
    session_idle_timeout_seconds: int = 1800  # 30 minutes without input
    session_idle_check_interval_seconds: int = 60
    page_dwell_threshold_ms: int = 1000

    def tracking_config(self) -> TrackingConfig:
        return TrackingConfig(
            enabled=self.tracking_enabled,
            sample_rate=self.tracking_sample_rate,
            exclude_pages=self.tracking_exclude_pages,
            exclude_events=self.tracking_exclude_events,
            enable_performance_tracking=self.tracking_enable_performance,
            enable_error_tracking=self.tracking_enable_errors,
            batch_size=self.tracking_batch_size,
            flush_interval=self.tracking_flush_interval_ms,
        )


settings = Settings()
