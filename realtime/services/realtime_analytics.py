"""Real-time activity aggregation.

Keeps one ``RealTimeActivitySnapshot`` fresh from two live feeds (active
sessions, recent events) and fans it out to local subscribers, so that
dashboards do not each run their own scans.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence

from realtime.aggregation import (
    IntervalRefresh,
    ProbabilisticRefresh,
    RefreshPolicy,
    recompute_snapshot,
    summarize_feature_activity,
    summarize_page_activity,
    summarize_user_behavior,
    with_top_activity,
)
from realtime.core.config import Settings, settings
from realtime.core.logger import get_logger
from realtime.infrastructure.live_query import LiveQuery, ObservableSource, Subscription
from realtime.metrics import (
    ACTIVE_USERS,
    FEED_ERRORS_TOTAL,
    FEED_PUSHES_TOTAL,
    QUERY_ERRORS_TOTAL,
    SUBSCRIBERS,
    TOP_ACTIVITY_REFRESH_SECONDS,
)
from shared.constants import Collections
from shared.models import (
    FeatureActivity,
    PageActivity,
    RealTimeActivitySnapshot,
    UserBehaviorMetrics,
    UserEvent,
    UserEventType,
    UserSession,
)
from shared.store import TelemetryStore

logger = get_logger("analytics")

SnapshotCallback = Callable[[RealTimeActivitySnapshot], Any]

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS


@dataclass
class ActivitySources:
    active_sessions: ObservableSource[UserSession]
    recent_events: ObservableSource[UserEvent]


def build_refresh_policy(config: Settings) -> RefreshPolicy:
    if config.top_refresh_policy == "probability":
        return ProbabilisticRefresh(config.top_refresh_probability)
    return IntervalRefresh(config.top_refresh_interval_seconds)


class RealTimeAnalytics:
    def __init__(
        self,
        store: TelemetryStore,
        config: Settings = settings,
        sources: ActivitySources | None = None,
        refresh_policy: RefreshPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config
        self._clock = clock
        self._sources = sources or self._live_sources()
        self._refresh_policy = refresh_policy or build_refresh_policy(config)
        self._snapshot: RealTimeActivitySnapshot | None = None
        self._callbacks: List[SnapshotCallback] = []
        self._subscriptions: List[Subscription] = []

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _live_sources(self) -> ActivitySources:
        cfg = self.config

        async def fetch_sessions() -> List[UserSession]:
            return await self.store.query_sessions(
                active_only=True,
                active_since=self._now_ms() - cfg.active_session_window_seconds * 1000,
                limit=cfg.active_session_feed_limit,
            )

        async def fetch_events() -> List[UserEvent]:
            return await self.store.query_events(
                since=self._now_ms() - cfg.recent_event_window_seconds * 1000,
                limit=cfg.recent_event_feed_limit,
            )

        return ActivitySources(
            active_sessions=LiveQuery(
                "active_sessions",
                fetch_sessions,
                lambda: self.store.watch(Collections.USER_SESSIONS),
            ),
            recent_events=LiveQuery(
                "recent_events",
                fetch_events,
                lambda: self.store.watch(Collections.USER_ANALYTICS),
            ),
        )

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------
    @property
    def monitoring(self) -> bool:
        return bool(self._subscriptions)

    async def start_monitoring(self):
        if self._subscriptions:
            return
        self._subscriptions = [
            self._sources.active_sessions.subscribe(
                self._on_active_sessions, self._feed_error_handler("active_sessions")
            ),
            self._sources.recent_events.subscribe(
                self._on_recent_events, self._feed_error_handler("recent_events")
            ),
        ]
        logger.info("realtime_monitoring_started")

    async def stop_monitoring(self):
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.cancel()
        if subscriptions:
            logger.info("realtime_monitoring_stopped")

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a listener; it immediately receives the current snapshot.

        Listeners get the live snapshot object and must treat it as
        read-only. Returns an idempotent unsubscribe function.
        """
        self._callbacks.append(callback)
        SUBSCRIBERS.set(len(self._callbacks))
        if self._snapshot is not None:
            self._invoke(callback, self._snapshot)

        def unsubscribe():
            try:
                self._callbacks.remove(callback)
            except ValueError:
                return
            SUBSCRIBERS.set(len(self._callbacks))

        return unsubscribe

    def get_current_activity(self) -> RealTimeActivitySnapshot | None:
        return self._snapshot

    async def _on_active_sessions(self, sessions: Sequence[UserSession]):
        FEED_PUSHES_TOTAL.labels(feed="active_sessions").inc()
        await self._update(active_sessions=sessions)

    async def _on_recent_events(self, events: Sequence[UserEvent]):
        FEED_PUSHES_TOTAL.labels(feed="recent_events").inc()
        await self._update(recent_events=events)

    def _feed_error_handler(self, feed: str) -> Callable[[BaseException], None]:
        def on_error(error: BaseException):
            # Keep the last snapshot: stale data beats a blank dashboard.
            FEED_ERRORS_TOTAL.labels(feed=feed).inc()
            logger.error(
                "live_feed_error", extra={"feed": feed, "error": str(error)}
            )

        return on_error

    async def _update(
        self,
        *,
        active_sessions: Sequence[UserSession] | None = None,
        recent_events: Sequence[UserEvent] | None = None,
    ):
        try:
            now = self._clock()
            self._commit(
                recompute_snapshot(
                    self._snapshot or RealTimeActivitySnapshot(),
                    now_ms=int(now * 1000),
                    active_sessions=active_sessions,
                    recent_events=recent_events,
                )
            )
            if self._refresh_policy.should_refresh(now):
                self._refresh_policy.mark_refreshed(now)
                await self._refresh_top_activity()
        except Exception as e:  # noqa: BLE001
            logger.error("activity_update_failed", extra={"error": str(e)})
            return
        self._notify()

    async def _refresh_top_activity(self):
        hours = self.config.top_activity_hours
        with TOP_ACTIVITY_REFRESH_SECONDS.time():
            top_pages, top_features = await asyncio.gather(
                self.get_page_activity(hours), self.get_feature_activity(hours)
            )
        # Re-read the snapshot: another push may have landed during the scan.
        self._commit(
            with_top_activity(
                self._snapshot,
                top_pages,
                top_features,
                limit=self.config.top_activity_limit,
                now_ms=self._now_ms(),
            )
        )

    def _commit(self, updated: RealTimeActivitySnapshot):
        """Copy ``updated`` into the owned snapshot, keeping its identity."""
        if self._snapshot is None:
            self._snapshot = updated
        else:
            for name in RealTimeActivitySnapshot.model_fields:
                setattr(self._snapshot, name, getattr(updated, name))
        ACTIVE_USERS.set(self._snapshot.active_users)

    def _notify(self):
        snapshot = self._snapshot
        if snapshot is None:
            return
        for callback in list(self._callbacks):
            self._invoke(callback, snapshot)

    @staticmethod
    def _invoke(callback: SnapshotCallback, snapshot: RealTimeActivitySnapshot):
        try:
            callback(snapshot)
        except Exception as e:  # noqa: BLE001
            logger.error("activity_callback_failed", extra={"error": str(e)})

    # ------------------------------------------------------------------
    # One-shot queries
    # ------------------------------------------------------------------
    async def get_active_sessions(self) -> List[UserSession]:
        try:
            return await self.store.query_sessions(
                active_only=True,
                active_since=self._now_ms()
                - self.config.active_session_window_seconds * 1000,
                limit=self.config.active_session_query_limit,
            )
        except Exception as e:  # noqa: BLE001
            QUERY_ERRORS_TOTAL.labels(query="active_sessions").inc()
            logger.error("active_sessions_query_failed", extra={"error": str(e)})
            return []

    async def get_recent_events(self, minutes: int = 30) -> List[UserEvent]:
        try:
            return await self.store.query_events(
                since=self._now_ms() - minutes * _MINUTE_MS,
                limit=self.config.recent_event_query_limit,
            )
        except Exception as e:  # noqa: BLE001
            QUERY_ERRORS_TOTAL.labels(query="recent_events").inc()
            logger.error("recent_events_query_failed", extra={"error": str(e)})
            return []

    async def get_page_activity(self, hours: float = 24) -> List[PageActivity]:
        try:
            events = await self.store.query_events(
                since=self._now_ms() - int(hours * _HOUR_MS),
                event_type=UserEventType.PAGE_VIEW.value,
            )
            return summarize_page_activity(events, self.config.bounce_threshold_ms)
        except Exception as e:  # noqa: BLE001
            QUERY_ERRORS_TOTAL.labels(query="page_activity").inc()
            logger.error("page_activity_query_failed", extra={"error": str(e)})
            return []

    async def get_feature_activity(self, hours: float = 24) -> List[FeatureActivity]:
        try:
            events = await self.store.query_events(
                since=self._now_ms() - int(hours * _HOUR_MS),
                event_type=UserEventType.FEATURE_CLICK.value,
            )
            return summarize_feature_activity(events)
        except Exception as e:  # noqa: BLE001
            QUERY_ERRORS_TOTAL.labels(query="feature_activity").inc()
            logger.error("feature_activity_query_failed", extra={"error": str(e)})
            return []

    async def get_user_behavior_metrics(
        self, user_id: str, days: int = 30
    ) -> UserBehaviorMetrics | None:
        try:
            since = self._now_ms() - days * _DAY_MS
            events, sessions = await asyncio.gather(
                self.store.query_events(since=since, user_id=user_id),
                self.store.query_sessions(user_id=user_id, started_since=since),
            )
            return summarize_user_behavior(user_id, events, sessions, days)
        except Exception as e:  # noqa: BLE001
            QUERY_ERRORS_TOTAL.labels(query="user_behavior").inc()
            logger.error(
                "user_behavior_query_failed",
                extra={"user_id": user_id, "error": str(e)},
            )
            return None
