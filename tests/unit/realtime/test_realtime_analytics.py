import pytest

from realtime.aggregation import IntervalRefresh, ProbabilisticRefresh
from realtime.core.config import Settings
from realtime.services.realtime_analytics import ActivitySources, RealTimeAnalytics
from shared.models import (
    UserEvent,
    UserRole,
    UserSession,
    create_feature_click_event,
    create_page_view_event,
)
from tests.helpers.fakes import START_TIME, ManualSource

NOW_MS = int(START_TIME * 1000)


def _session(sid, role=UserRole.DOCTOR, user="u1", start=NOW_MS - 60_000):
    return UserSession(
        id=sid,
        user_id=user,
        user_role=role,
        start_time=start,
        last_activity=NOW_MS - 1000,
        entry_page="/",
    )


def _view(user, page, ts=NOW_MS - 1000):
    draft = create_page_view_event(user, UserRole.DOCTOR, "s1", page)
    return UserEvent(**draft.model_dump(), timestamp=ts)


def _click(user, feature, ts=NOW_MS - 1000):
    draft = create_feature_click_event(user, UserRole.NURSE, "s2", feature, "Panel", "/")
    return UserEvent(**draft.model_dump(), timestamp=ts)


@pytest.fixture
def sources():
    return ActivitySources(active_sessions=ManualSource(), recent_events=ManualSource())


@pytest.fixture
def make_service(store, clock, sources):
    def _make(refresh_policy=None, **overrides):
        return RealTimeAnalytics(
            store,
            Settings(**overrides),
            sources=sources,
            refresh_policy=refresh_policy or IntervalRefresh(60),
            clock=clock,
        )

    return _make


@pytest.mark.asyncio
async def test_no_snapshot_before_first_push(make_service):
    service = make_service()
    await service.start_monitoring()
    assert service.get_current_activity() is None
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_session_push_builds_snapshot(make_service, sources, store):
    await store.add_events([_view("u1", "/patients"), _view("u2", "/patients")])
    await store.add_events([_click("u3", "print")])
    service = make_service()
    await service.start_monitoring()

    await sources.active_sessions.push(
        [_session("a"), _session("b", UserRole.NURSE, "u2")]
    )
    snap = service.get_current_activity()
    assert snap.active_users == 2
    assert snap.users_by_role == {"doctor": 1, "nurse": 1}
    assert snap.average_session_duration == 60.0
    assert snap.last_updated == NOW_MS
    assert [p.page for p in snap.top_pages] == ["/patients"]
    assert snap.top_pages[0].views == 2
    assert [f.feature for f in snap.top_features] == ["print"]
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_event_push_keeps_session_fields(make_service, sources):
    service = make_service()
    await service.start_monitoring()
    await sources.active_sessions.push([_session("a")])
    snapshot = service.get_current_activity()

    events = [_view("u1", "/x")]
    await sources.recent_events.push(events)
    # the same live object is updated in place
    assert service.get_current_activity() is snapshot
    assert snapshot.active_users == 1
    assert snapshot.recent_events == events
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_top_activity_refresh_is_throttled(make_service, sources, store, clock):
    service = make_service()
    await service.start_monitoring()
    await sources.recent_events.push([])
    assert service.get_current_activity().top_pages == []

    await store.add_events([_view("u1", "/reports")])
    clock.advance(30)
    await sources.recent_events.push([])
    assert service.get_current_activity().top_pages == []

    clock.advance(31)
    await sources.recent_events.push([])
    assert [p.page for p in service.get_current_activity().top_pages] == ["/reports"]
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_top_activity_respects_limit(make_service, sources, store):
    await store.add_events([_view("u1", f"/p{i}") for i in range(5)])
    service = make_service(
        refresh_policy=ProbabilisticRefresh(1.0), top_activity_limit=2
    )
    await service.start_monitoring()
    await sources.recent_events.push([])
    assert len(service.get_current_activity().top_pages) == 2
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_late_subscriber_receives_current_snapshot(make_service, sources):
    service = make_service()
    await service.start_monitoring()
    await sources.active_sessions.push([_session("a")])

    received = []
    service.subscribe(received.append)
    assert received == [service.get_current_activity()]

    await sources.recent_events.push([])
    assert len(received) == 2
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_early_subscriber_waits_for_first_push(make_service, sources):
    service = make_service()
    received = []
    service.subscribe(received.append)
    await service.start_monitoring()
    assert received == []

    await sources.active_sessions.push([])
    assert len(received) == 1
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent(make_service, sources):
    service = make_service()
    received = []
    unsubscribe = service.subscribe(received.append)
    unsubscribe()
    unsubscribe()
    await service.start_monitoring()
    await sources.active_sessions.push([])
    assert received == []
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_failing_callback_does_not_affect_others(make_service, sources):
    service = make_service()

    def broken(_snapshot):
        raise RuntimeError("dashboard crashed")

    received = []
    service.subscribe(broken)
    service.subscribe(received.append)
    await service.start_monitoring()
    await sources.active_sessions.push([_session("a")])
    assert len(received) == 1
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_source_error_keeps_last_snapshot(make_service, sources):
    service = make_service()
    received = []
    service.subscribe(received.append)
    await service.start_monitoring()
    await sources.active_sessions.push([_session("a")])
    before = service.get_current_activity().model_copy(deep=True)

    sources.active_sessions.fail(RuntimeError("permission denied"))
    assert service.get_current_activity() == before
    assert len(received) == 1
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(make_service, sources):
    service = make_service()
    await service.start_monitoring()
    await service.start_monitoring()
    assert len(sources.active_sessions.subscriptions) == 1
    assert len(sources.recent_events.subscriptions) == 1
    assert service.monitoring

    await service.stop_monitoring()
    await service.stop_monitoring()
    assert not service.monitoring
    assert sources.active_sessions.subscriptions[0].cancel_calls == 1
    assert sources.recent_events.subscriptions[0].cancel_calls == 1


@pytest.mark.asyncio
async def test_monitoring_can_restart(make_service, sources):
    service = make_service()
    await service.start_monitoring()
    await service.stop_monitoring()
    await service.start_monitoring()
    assert len(sources.active_sessions.subscriptions) == 2
    await service.stop_monitoring()


@pytest.mark.asyncio
async def test_one_shot_queries(make_service, store, clock):
    await store.save_session(_session("a"))
    stale = _session("old")
    stale.last_activity = NOW_MS - 3_600_000
    await store.save_session(stale)
    await store.add_events(
        [
            _view("u1", "/patients"),
            _view("u1", "/patients", ts=NOW_MS - 2 * 3_600_000),
            _click("u1", "export"),
        ]
    )
    service = make_service()

    assert [s.id for s in await service.get_active_sessions()] == ["a"]
    assert len(await service.get_recent_events(minutes=30)) == 2
    assert len(await service.get_recent_events(minutes=180)) == 3
    pages = await service.get_page_activity(hours=1)
    assert [(p.page, p.views) for p in pages] == [("/patients", 1)]
    features = await service.get_feature_activity()
    assert [f.feature for f in features] == ["export"]

    metrics = await service.get_user_behavior_metrics("u1", days=30)
    assert metrics.total_page_views == 2
    assert metrics.total_interactions == 1
    assert metrics.total_sessions == 2
    assert await service.get_user_behavior_metrics("nobody") is None


@pytest.mark.asyncio
async def test_query_failures_return_empty_results(make_service, store):
    store.fail_queries = True
    service = make_service()
    assert await service.get_active_sessions() == []
    assert await service.get_recent_events() == []
    assert await service.get_page_activity() == []
    assert await service.get_feature_activity() == []
    assert await service.get_user_behavior_metrics("u1") is None
