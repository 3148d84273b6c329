from typing import Literal

from shared.config import BaseServiceConfig


class Settings(BaseServiceConfig):
    otel_service_name: str = "realtime"

    # Live feeds
    active_session_window_seconds: int = 300  # lastActivity within 5 minutes
    active_session_feed_limit: int = 50
    recent_event_window_seconds: int = 600  # timestamp within 10 minutes
    recent_event_feed_limit: int = 100

    # One-shot queries
    active_session_query_limit: int = 100
    recent_event_query_limit: int = 200
    bounce_threshold_ms: int = 10_000

    # Top pages / features refresh
    top_activity_hours: int = 1
    top_activity_limit: int = 10
    top_refresh_policy: Literal["interval", "probability"] = "interval"
    top_refresh_interval_seconds: float = 60.0
    top_refresh_probability: float = 0.1


settings = Settings()
