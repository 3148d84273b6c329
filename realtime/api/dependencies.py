from fastapi import Request

from realtime.services.realtime_analytics import RealTimeAnalytics


def get_analytics(request: Request) -> RealTimeAnalytics:
    return request.app.state.analytics  # type: ignore[return-value]
