from fastapi import APIRouter, Depends, HTTPException, Query

from realtime.api.dependencies import get_analytics
from realtime.services.realtime_analytics import RealTimeAnalytics

router = APIRouter(prefix="/activity")


def _dump(model):
    return model.model_dump(by_alias=True, mode="json")


@router.get("/current")
async def current(svc: RealTimeAnalytics = Depends(get_analytics)):
    snapshot = svc.get_current_activity()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="no snapshot yet")
    return _dump(snapshot)


@router.get("/sessions")
async def sessions(svc: RealTimeAnalytics = Depends(get_analytics)):
    return {"sessions": [_dump(s) for s in await svc.get_active_sessions()]}


@router.get("/events")
async def events(
    minutes: int = Query(30, ge=1, le=24 * 60),
    svc: RealTimeAnalytics = Depends(get_analytics),
):
    return {"events": [_dump(e) for e in await svc.get_recent_events(minutes)]}


@router.get("/pages")
async def pages(
    hours: float = Query(24, gt=0, le=24 * 30),
    svc: RealTimeAnalytics = Depends(get_analytics),
):
    return {"pages": [_dump(p) for p in await svc.get_page_activity(hours)]}


@router.get("/features")
async def features(
    hours: float = Query(24, gt=0, le=24 * 30),
    svc: RealTimeAnalytics = Depends(get_analytics),
):
    return {"features": [_dump(f) for f in await svc.get_feature_activity(hours)]}


@router.get("/users/{user_id}")
async def user_behavior(
    user_id: str,
    days: int = Query(30, ge=1, le=365),
    svc: RealTimeAnalytics = Depends(get_analytics),
):
    metrics = await svc.get_user_behavior_metrics(user_id, days)
    if metrics is None:
        raise HTTPException(status_code=404, detail="no activity for user")
    return _dump(metrics)
