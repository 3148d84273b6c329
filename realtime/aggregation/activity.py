from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from shared.models import (
    FeatureActivity,
    PageActivity,
    UserBehaviorMetrics,
    UserEvent,
    UserEventType,
    UserSession,
)

MOST_VISITED_LIMIT = 5


@dataclass
class _PageStats:
    views: int = 0
    users: Set[str] = field(default_factory=set)
    total_duration: float = 0.0
    bounces: int = 0


@dataclass
class _FeatureStats:
    component: str
    interactions: int = 0
    users: Set[str] = field(default_factory=set)
    total_time: float = 0.0


def _duration(event: UserEvent) -> float:
    value = event.data.get("duration")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def summarize_page_activity(
    events: Sequence[UserEvent], bounce_threshold_ms: int = 10_000
) -> List[PageActivity]:
    """Per-page statistics over page_view events, most viewed first.

    A view is a bounce when it carries a dwell time shorter than the
    threshold; views without a dwell time count neither way.
    """
    stats: Dict[str, _PageStats] = {}
    for event in events:
        if event.event_type is not UserEventType.PAGE_VIEW:
            continue
        page = stats.setdefault(event.page or "unknown", _PageStats())
        page.views += 1
        page.users.add(event.user_id)
        duration = _duration(event)
        page.total_duration += duration
        if 0 < duration < bounce_threshold_ms:
            page.bounces += 1

    results = [
        PageActivity(
            page=name,
            views=s.views,
            unique_users=len(s.users),
            average_duration=s.total_duration / s.views,
            bounce_rate=s.bounces / s.views * 100,
        )
        for name, s in stats.items()
    ]
    return sorted(results, key=lambda p: p.views, reverse=True)


def summarize_feature_activity(events: Sequence[UserEvent]) -> List[FeatureActivity]:
    """Per-feature statistics over feature_click events, most used first."""
    stats: Dict[str, _FeatureStats] = {}
    for event in events:
        if event.event_type is not UserEventType.FEATURE_CLICK:
            continue
        feature = stats.setdefault(
            event.feature or "unknown", _FeatureStats(event.component or "unknown")
        )
        feature.interactions += 1
        feature.users.add(event.user_id)
        feature.total_time += _duration(event)

    results = [
        FeatureActivity(
            feature=name,
            component=s.component,
            interactions=s.interactions,
            unique_users=len(s.users),
            average_usage_time=s.total_time / s.interactions,
        )
        for name, s in stats.items()
    ]
    return sorted(results, key=lambda f: f.interactions, reverse=True)


def engagement_score(
    page_views: int, interactions: int, session_count: int, days: int
) -> int:
    """Bounded engagement heuristic in [0, 100].

    Monotonic in every count and deliberately simple; not calibrated.
    """
    if days < 1:
        raise ValueError("days must be >= 1")
    if min(page_views, interactions, session_count) < 0:
        raise ValueError("counts must be non-negative")
    raw = (page_views * 2 + interactions * 3 + session_count * 5) // days
    return min(100, int(raw))


def summarize_user_behavior(
    user_id: str,
    events: Sequence[UserEvent],
    sessions: Sequence[UserSession],
    days: int,
) -> UserBehaviorMetrics | None:
    """Behaviour summary for one user, or None when they have no events."""
    if not events:
        return None

    page_views = [e for e in events if e.event_type is UserEventType.PAGE_VIEW]
    clicks = [e for e in events if e.event_type is UserEventType.FEATURE_CLICK]
    total_duration = sum(s.duration or 0 for s in sessions)
    average_duration = total_duration / len(sessions) if sessions else 0.0

    visited = Counter(e.page or "unknown" for e in page_views)
    used = Counter(e.feature or "unknown" for e in clicks)

    return UserBehaviorMetrics(
        user_id=user_id,
        user_role=events[0].user_role,
        total_sessions=len(sessions),
        total_page_views=len(page_views),
        total_interactions=len(clicks),
        average_session_duration=average_duration,
        most_visited_pages=[p for p, _ in visited.most_common(MOST_VISITED_LIMIT)],
        most_used_features=[f for f, _ in used.most_common(MOST_VISITED_LIMIT)],
        last_activity=max(e.timestamp for e in events),
        engagement_score=engagement_score(
            len(page_views), len(clicks), len(sessions), days
        ),
    )
