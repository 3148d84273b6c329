"""Canonical telemetry vocabulary shared by the capture agent and the realtime service."""

from .activity import (
    FeatureActivity,
    PageActivity,
    RealTimeActivitySnapshot,
    UserBehaviorMetrics,
)
from .base import BrowserInfo, PerformanceTimings
from .documents import sanitize_document, to_document
from .enums import DeviceType, UserEventCategory, UserEventType, UserRole
from .events import (
    EventDraft,
    UserEvent,
    create_clinical_action_event,
    create_error_event,
    create_feature_click_event,
    create_page_view_event,
    create_search_event,
    create_session_event,
    resolve_clinical_event_type,
)
from .sessions import UserSession
from .tracking import DEFAULT_TRACKING_CONFIG, TrackingConfig

__all__ = [
    "BrowserInfo",
    "DEFAULT_TRACKING_CONFIG",
    "DeviceType",
    "EventDraft",
    "FeatureActivity",
    "PageActivity",
    "PerformanceTimings",
    "RealTimeActivitySnapshot",
    "TrackingConfig",
    "UserBehaviorMetrics",
    "UserEvent",
    "UserEventCategory",
    "UserEventType",
    "UserRole",
    "UserSession",
    "create_clinical_action_event",
    "create_error_event",
    "create_feature_click_event",
    "create_page_view_event",
    "create_search_event",
    "create_session_event",
    "resolve_clinical_event_type",
    "sanitize_document",
    "to_document",
]
