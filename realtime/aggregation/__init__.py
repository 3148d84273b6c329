"""Pure aggregation functions: records in, derived statistics out."""

from .activity import (
    engagement_score,
    summarize_feature_activity,
    summarize_page_activity,
    summarize_user_behavior,
)
from .refresh import IntervalRefresh, ProbabilisticRefresh, RefreshPolicy
from .snapshot import (
    average_session_duration,
    count_users_by_role,
    recompute_snapshot,
    with_top_activity,
)

__all__ = [
    "IntervalRefresh",
    "ProbabilisticRefresh",
    "RefreshPolicy",
    "average_session_duration",
    "count_users_by_role",
    "engagement_score",
    "recompute_snapshot",
    "summarize_feature_activity",
    "summarize_page_activity",
    "summarize_user_behavior",
    "with_top_activity",
]
