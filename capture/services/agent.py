"""Client-resident telemetry capture agent.

One agent per process, constructed by the composition root and handed to
the UI layer. The agent owns the current session and the event queue;
nothing crosses into the store except through ``flush`` and the terminal
session write in ``end_session``.
"""

from __future__ import annotations

import asyncio
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Iterator, List, Tuple

from capture.core.config import settings
from capture.core.logger import get_logger
from capture.infrastructure.auth import AuthProvider
from capture.infrastructure.host import (
    ACTIVITY_EVENTS,
    BEFORE_UNLOAD,
    VISIBILITY_CHANGE,
    Host,
    Listener,
)
from capture.metrics import (
    EVENTS_DROPPED_TOTAL,
    EVENTS_ENQUEUED_TOTAL,
    EVENTS_FLUSHED_TOTAL,
    FLUSH_FAILURES_TOTAL,
    FLUSH_LATENCY_SECONDS,
    QUEUE_CURRENT_SIZE,
    SESSIONS_TOTAL,
)
from capture.services.session import SessionState
from capture.transformations.device_categorizer import browser_info, categorize_device
from shared.models import (
    DEFAULT_TRACKING_CONFIG,
    EventDraft,
    PerformanceTimings,
    TrackingConfig,
    UserEvent,
    UserEventType,
    UserSession,
    create_clinical_action_event,
    create_error_event,
    create_feature_click_event,
    create_page_view_event,
    create_search_event,
    create_session_event,
)
from shared.store import TelemetryStore
from shared.utils.retry import Backoff

logger = get_logger("agent")


class AgentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    ENDED = "ended"


def _ms(seconds: float) -> int:
    return int(seconds * 1000)


class TelemetryAgent:
    def __init__(
        self,
        store: TelemetryStore,
        auth: AuthProvider,
        host: Host,
        config: TrackingConfig | None = None,
        *,
        idle_timeout_seconds: float = settings.session_idle_timeout_seconds,
        idle_check_interval_seconds: float = (
            settings.session_idle_check_interval_seconds
        ),
        page_dwell_threshold_ms: int = settings.page_dwell_threshold_ms,
        flush_backoff: Backoff = Backoff(
            base_delay=settings.tracking_flush_retry_base_seconds,
            max_delay=settings.tracking_flush_retry_max_seconds,
        ),
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ):
        self._store = store
        self._auth = auth
        self._host = host
        self._config = config or DEFAULT_TRACKING_CONFIG
        self._idle_timeout = idle_timeout_seconds
        self._idle_check_interval = idle_check_interval_seconds
        self._page_dwell_threshold_ms = page_dwell_threshold_ms
        self._flush_backoff = flush_backoff
        self._clock = clock
        self._rng = rng

        self._state = AgentState.UNINITIALIZED
        self._session: SessionState | None = None
        self._queue: List[UserEvent] = []
        self._retry_delays: Iterator[float] | None = None
        self._flush_retry_at: float | None = None
        self._page_started_at: float | None = None
        self._last_activity = clock()
        self._device_type = categorize_device(host.user_agent)
        self._browser = browser_info(host.user_agent)

        self._flush_timer: asyncio.Task | None = None
        self._idle_timer: asyncio.Task | None = None
        self._listeners: List[Tuple[str, Listener]] = []
        self._background: set[asyncio.Task] = set()
        self._session_write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def config(self) -> TrackingConfig:
        return self._config

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def current_session(self) -> UserSession | None:
        """Copy of the current session; mutating it has no effect."""
        return self._session.snapshot() if self._session else None

    def update_config(self, **changes: Any) -> TrackingConfig:
        previous = self._config
        self._config = previous.updated(**changes)
        if (
            self._state is AgentState.ACTIVE
            and self._config.flush_interval != previous.flush_interval
        ):
            self._restart_flush_timer()
        logger.info("tracking_config_updated", extra={"changes": sorted(changes)})
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> bool:
        """Open a session once identity is available.

        Returns True when the agent is active afterwards. Failures leave the
        agent uninitialized; tracking calls stay no-ops.
        """
        if not self._config.enabled:
            logger.debug("tracking_disabled")
            return False
        if self._state is AgentState.ACTIVE:
            return True
        if self._state is AgentState.INITIALIZING:
            return False

        self._state = AgentState.INITIALIZING
        try:
            await self._auth.wait_for_initial_auth_state()
            user = self._auth.get_current_user()
        except Exception as e:
            logger.warning("agent_initialization_failed", extra={"error": str(e)})
            self._state = AgentState.UNINITIALIZED
            return False
        if user is None:
            logger.debug("agent_initialization_skipped_no_user")
            self._state = AgentState.UNINITIALIZED
            return False

        now = self._clock()
        self._session = SessionState.open(
            user_id=user.id,
            user_role=user.role,
            now_ms=_ms(now),
            entry_page=self._host.location,
            referrer=self._host.referrer,
            user_agent=self._host.user_agent,
            device_type=self._device_type,
            browser=self._browser,
        )
        self._last_activity = now
        self._page_started_at = None
        self._state = AgentState.ACTIVE
        self._install_listeners()
        self._start_timers()
        SESSIONS_TOTAL.labels(transition="start").inc()
        logger.info(
            "session_started",
            extra={
                "session_id": self._session.id,
                "user_role": user.role.value,
                "entry_page": self._host.location,
            },
        )

        await self._enqueue(
            create_session_event(
                self._session.user_id,
                self._session.user_role,
                self._session.id,
                UserEventType.SESSION_START,
                page=self._host.location,
                data={
                    "entryPage": self._host.location,
                    "referrer": self._host.referrer,
                },
            )
        )
        return True

    async def end_session(self, reason: str = "shutdown") -> bool:
        """Finalize and persist the current session.

        Idempotent: only the first call after activation does anything.
        """
        if self._state is not AgentState.ACTIVE or self._session is None:
            return False
        self._state = AgentState.ENDED
        session = self._session
        final = session.finalize(_ms(self._clock()), exit_page=self._host.location)
        self._stop_timers()
        self._remove_listeners()

        await self._enqueue(
            create_session_event(
                final.user_id,
                final.user_role,
                final.id,
                UserEventType.SESSION_END,
                page=final.exit_page,
                data={
                    "duration": final.duration,
                    "pageViews": final.page_views,
                    "interactions": final.interactions,
                    "exitPage": final.exit_page,
                    "reason": reason,
                },
            )
        )

        async with self._session_write_lock:
            try:
                await self._store.save_session(final)
                session.mark_persisted(session.version)
            except Exception as e:
                logger.warning(
                    "session_save_failed",
                    extra={"session_id": final.id, "error": str(e)},
                )

        SESSIONS_TOTAL.labels(transition=f"end_{reason}").inc()
        logger.info(
            "session_ended",
            extra={
                "session_id": final.id,
                "reason": reason,
                "duration": final.duration,
                "page_views": final.page_views,
                "interactions": final.interactions,
            },
        )
        await self.flush()
        return True

    async def shutdown(self) -> bool:
        return await self.end_session("shutdown")

    async def check_idle(self) -> bool:
        """End the session if no activity was seen within the idle timeout."""
        if self._state is not AgentState.ACTIVE:
            return False
        idle_for = self._clock() - self._last_activity
        if idle_for <= self._idle_timeout:
            return False
        logger.info(
            "session_idle_timeout",
            extra={"idle_seconds": round(idle_for, 1)},
        )
        return await self.end_session("idle")

    def record_activity(self, *_args: Any) -> None:
        """Passive input signal; feeds the idle clock, never enqueues."""
        if self._state is not AgentState.ACTIVE or self._session is None:
            return
        now = self._clock()
        self._last_activity = now
        self._session.touch(_ms(now))

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------
    async def track_page_view(self, page: str, previous_page: str | None = None):
        if not self._is_active():
            return
        session = self._session
        now = self._clock()
        if self._page_started_at is not None:
            duration = _ms(now - self._page_started_at)
            if duration > self._page_dwell_threshold_ms:
                await self._enqueue(
                    create_page_view_event(
                        session.user_id,
                        session.user_role,
                        session.id,
                        page=previous_page or "unknown",
                        data={"duration": duration, "exitType": "navigation"},
                    )
                )
                if not self._is_active():
                    return

        self._page_started_at = now
        self._last_activity = now
        session.record_page_view(_ms(now))
        await self._enqueue(
            create_page_view_event(
                session.user_id,
                session.user_role,
                session.id,
                page=page,
                previous_page=previous_page,
                data={"timestamp": _ms(now)},
            )
        )

    async def track_feature_usage(
        self,
        feature: str,
        component: str,
        action: str | None = None,
        extra: dict[str, Any] | None = None,
    ):
        if not self._is_active():
            return
        session = self._session
        now = self._clock()
        self._last_activity = now
        session.record_interaction(_ms(now))
        await self._enqueue(
            create_feature_click_event(
                session.user_id,
                session.user_role,
                session.id,
                feature=feature,
                component=component,
                page=self._host.location,
                action=action,
                extra=extra,
            )
        )

    async def track_search(self, term: str, result_count: int | None = None):
        if not self._is_active():
            return
        session = self._session
        self._touch()
        await self._enqueue(
            create_search_event(
                session.user_id,
                session.user_role,
                session.id,
                search_term=term,
                page=self._host.location,
                results_count=result_count,
            )
        )

    async def track_clinical_action(
        self,
        action: str,
        resource_type: str,
        resource_id: str | None = None,
        extra: dict[str, Any] | None = None,
    ):
        if not self._is_active():
            return
        session = self._session
        self._touch()
        await self._enqueue(
            create_clinical_action_event(
                session.user_id,
                session.user_role,
                session.id,
                action=action,
                resource_type=resource_type,
                page=self._host.location,
                resource_id=resource_id,
                extra=extra,
            )
        )

    async def track_error(
        self, error: BaseException, context: dict[str, Any] | None = None
    ):
        if not self._config.enable_error_tracking or not self._is_active():
            return
        session = self._session
        await self._enqueue(
            create_error_event(
                session.user_id,
                session.user_role,
                session.id,
                error=error,
                page=self._host.location,
                context=context,
            ),
            sampled=False,
        )

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------
    async def flush(self) -> int:
        """Write queued events, then the session state if it changed.

        A rejected batch goes back to the front of the queue, so a retry may
        duplicate events the store partially accepted but never loses them.
        Returns the number of events written.
        """
        batch = self._queue
        self._queue = []
        QUEUE_CURRENT_SIZE.set(0)
        written = 0
        if batch:
            try:
                with FLUSH_LATENCY_SECONDS.time():
                    await self._store.add_events(batch)
            except asyncio.CancelledError:
                self._requeue(batch)
                raise
            except Exception as e:
                FLUSH_FAILURES_TOTAL.inc()
                self._requeue(batch)
                delay = self._schedule_flush_retry()
                logger.warning(
                    "event_flush_failed (batch requeued)",
                    extra={
                        "error": str(e),
                        "batch_size": len(batch),
                        "retry_in_seconds": round(delay, 2),
                    },
                )
            else:
                written = len(batch)
                self._retry_delays = None
                self._flush_retry_at = None
                EVENTS_FLUSHED_TOTAL.inc(written)
                logger.debug("events_flushed", extra={"count": written})
        await self._persist_session_heartbeat()
        return written

    def _requeue(self, batch: List[UserEvent]):
        self._queue[:0] = batch
        QUEUE_CURRENT_SIZE.set(len(self._queue))

    def _schedule_flush_retry(self) -> float:
        """Hold back size-triggered flushes until the next backoff step."""
        if self._retry_delays is None:
            self._retry_delays = self._flush_backoff.delays(self._rng)
        delay = next(self._retry_delays)
        self._flush_retry_at = self._clock() + delay
        return delay

    def _flush_due(self) -> bool:
        if len(self._queue) < self._config.batch_size:
            return False
        return self._flush_retry_at is None or self._clock() >= self._flush_retry_at

    async def force_flush(self) -> int:
        return await self.flush()

    async def drain_background(self):
        """Wait for fire-and-forget work scheduled by host signals.

        Host teardown never calls this; headless hosts that can afford to
        wait may.
        """
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _enqueue(self, draft: EventDraft, sampled: bool = True) -> bool:
        config = self._config
        if not config.enabled:
            return False
        if draft.event_type not in UserEventType.lifecycle() and (
            draft.event_type in config.exclude_events
            or config.is_page_excluded(draft.page)
        ):
            EVENTS_DROPPED_TOTAL.labels(reason="excluded").inc()
            return False
        if sampled and self._rng() >= config.sample_rate:
            EVENTS_DROPPED_TOTAL.labels(reason="sampled").inc()
            return False

        event = UserEvent(
            **draft.model_dump(),
            timestamp=_ms(self._clock()),
            user_agent=self._host.user_agent or None,
            device_type=self._device_type,
            browser_info=self._browser,
            performance=(
                self._performance_timings()
                if config.enable_performance_tracking
                else None
            ),
        )
        self._queue.append(event)
        EVENTS_ENQUEUED_TOTAL.labels(event_type=event.event_type.value).inc()
        QUEUE_CURRENT_SIZE.set(len(self._queue))

        if self._flush_due():
            await self.flush()
        return True

    async def _persist_session_heartbeat(self):
        session = self._session
        if session is None or not session.dirty:
            return
        async with self._session_write_lock:
            # The terminal write in end_session owns inactive sessions.
            if not session.is_active or not session.dirty:
                return
            version = session.version
            try:
                await self._store.save_session(session.snapshot())
            except Exception as e:
                logger.warning(
                    "session_heartbeat_failed",
                    extra={"session_id": session.id, "error": str(e)},
                )
                return
            session.mark_persisted(version)

    def _performance_timings(self) -> PerformanceTimings | None:
        timing = self._host.navigation_timing()
        if not timing:
            return None
        return PerformanceTimings(
            load_time=timing.get("load_time"),
            render_time=timing.get("render_time"),
            response_time=timing.get("response_time"),
        )

    # ------------------------------------------------------------------
    # Host signals and timers
    # ------------------------------------------------------------------
    def _is_active(self) -> bool:
        return (
            self._config.enabled
            and self._state is AgentState.ACTIVE
            and self._session is not None
        )

    def _touch(self):
        now = self._clock()
        self._last_activity = now
        self._session.touch(_ms(now))

    def _install_listeners(self):
        for name in ACTIVITY_EVENTS:
            self._add_listener(name, self.record_activity)
        self._add_listener(VISIBILITY_CHANGE, self._on_visibility_change)
        self._add_listener(BEFORE_UNLOAD, self._on_unload)

    def _add_listener(self, name: str, listener: Listener):
        self._host.add_listener(name, listener)
        self._listeners.append((name, listener))

    def _remove_listeners(self):
        for name, listener in self._listeners:
            self._host.remove_listener(name, listener)
        self._listeners.clear()

    def _on_visibility_change(self, hidden: bool = True):
        if hidden:
            self._spawn(self.flush(), "visibility_flush")

    def _on_unload(self, *_args: Any):
        # Best effort: the host is tearing down and will not wait for this.
        self._spawn(self.end_session("unload"), "unload_end_session")

    def _spawn(
        self, coro: Coroutine[Any, Any, Any], name: str
    ) -> asyncio.Task | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("host_signal_without_event_loop", extra={"task": name})
            return None
        task = loop.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task):
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "background_task_failed",
                extra={"task": task.get_name(), "error": str(exc)},
            )

    def _start_timers(self):
        self._restart_flush_timer()
        self._idle_timer = self._create_timer(
            self._idle_check_interval, self.check_idle, "idle_check"
        )

    def _restart_flush_timer(self):
        if self._flush_timer is not None:
            self._flush_timer.cancel()
        self._flush_timer = self._create_timer(
            self._config.flush_interval / 1000, self.flush, "flush"
        )

    def _create_timer(
        self, interval: float, action: Callable[[], Awaitable[Any]], name: str
    ) -> asyncio.Task | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("timer_not_started_without_event_loop", extra={"timer": name})
            return None
        return loop.create_task(self._run_periodic(interval, action, name), name=name)

    async def _run_periodic(
        self, interval: float, action: Callable[[], Awaitable[Any]], name: str
    ):
        while self._state is AgentState.ACTIVE:
            await asyncio.sleep(interval)
            if self._state is not AgentState.ACTIVE:
                break
            # Cancelling the timer while it waits here leaves the action
            # running; a flush in flight always finishes or re-queues.
            tick = self._spawn(action(), f"{name}_tick")
            await asyncio.wait({tick})

    def _stop_timers(self):
        for timer in (self._flush_timer, self._idle_timer):
            if timer is not None:
                timer.cancel()
        self._flush_timer = None
        self._idle_timer = None
