from collections import Counter
from typing import Any, Dict, Sequence

from shared.models import (
    FeatureActivity,
    PageActivity,
    RealTimeActivitySnapshot,
    UserEvent,
    UserSession,
)


def count_users_by_role(sessions: Sequence[UserSession]) -> Dict[str, int]:
    return dict(Counter(s.user_role.value for s in sessions))


def average_session_duration(sessions: Sequence[UserSession], now_ms: int) -> float:
    """Mean duration in seconds; open sessions count up to ``now_ms``."""
    if not sessions:
        return 0.0
    total = 0.0
    for s in sessions:
        if s.end_time is None:
            total += max(0, now_ms - s.start_time) / 1000
        elif s.duration is not None:
            total += s.duration
        else:
            total += max(0, s.end_time - s.start_time) / 1000
    return total / len(sessions)


def recompute_snapshot(
    previous: RealTimeActivitySnapshot,
    *,
    now_ms: int,
    active_sessions: Sequence[UserSession] | None = None,
    recent_events: Sequence[UserEvent] | None = None,
) -> RealTimeActivitySnapshot:
    """Return a new snapshot with the cheap fields derived from the feeds.

    Each feed delivers its whole result set, so derived fields are rebuilt
    from scratch rather than patched. A feed that did not push keeps its
    previous list.
    """
    update: Dict[str, Any] = {"last_updated": now_ms}
    if recent_events is not None:
        update["recent_events"] = list(recent_events)
    if active_sessions is not None:
        sessions = list(active_sessions)
        update["active_sessions"] = sessions
        update["active_users"] = len(sessions)
        update["users_by_role"] = count_users_by_role(sessions)
        update["average_session_duration"] = average_session_duration(
            sessions, now_ms
        )
    return previous.model_copy(update=update)


def with_top_activity(
    previous: RealTimeActivitySnapshot,
    top_pages: Sequence[PageActivity],
    top_features: Sequence[FeatureActivity],
    limit: int,
    now_ms: int,
) -> RealTimeActivitySnapshot:
    return previous.model_copy(
        update={
            "top_pages": list(top_pages[:limit]),
            "top_features": list(top_features[:limit]),
            "last_updated": now_ms,
        }
    )
