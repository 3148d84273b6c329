from pydantic import Field

from .base import DocumentModel, FrozenDocumentModel
from .enums import UserRole
from .events import UserEvent
from .sessions import UserSession


class PageActivity(FrozenDocumentModel):
    page: str
    views: int
    unique_users: int
    average_duration: float = Field(..., description="Milliseconds")
    bounce_rate: float = Field(..., description="Percentage of views < 10s")


class FeatureActivity(FrozenDocumentModel):
    feature: str
    component: str
    interactions: int
    unique_users: int
    average_usage_time: float


class UserBehaviorMetrics(FrozenDocumentModel):
    user_id: str
    user_role: UserRole
    total_sessions: int
    total_page_views: int
    total_interactions: int
    average_session_duration: float
    most_visited_pages: list[str]
    most_used_features: list[str]
    last_activity: int
    engagement_score: int = Field(..., ge=0, le=100)


class RealTimeActivitySnapshot(DocumentModel):
    """Rolling aggregate owned by the realtime service, recomputed in place."""

    active_users: int = 0
    active_sessions: list[UserSession] = Field(default_factory=list)
    recent_events: list[UserEvent] = Field(default_factory=list)
    top_pages: list[PageActivity] = Field(default_factory=list)
    top_features: list[FeatureActivity] = Field(default_factory=list)
    users_by_role: dict[str, int] = Field(default_factory=dict)
    average_session_duration: float = 0.0
    last_updated: int = 0
