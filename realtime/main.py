import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from realtime.api.router import api_router
from realtime.core.config import settings
from realtime.core.logger import configure_logging, get_logger
from realtime.services.realtime_analytics import RealTimeAnalytics
from shared.store import RedisTelemetryStore, connect_redis

configure_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("realtime_service_starting")
    app.state.redis = await connect_redis(settings, logger)
    app.state.analytics = RealTimeAnalytics(RedisTelemetryStore(app.state.redis))
    app.state.ready_event = asyncio.Event()
    app.state.analytics.subscribe(lambda _snapshot: app.state.ready_event.set())
    await app.state.analytics.start_monitoring()
    try:
        yield
    finally:
        logger.info("realtime_service_stopping")
        await app.state.analytics.stop_monitoring()
        await app.state.redis.aclose()


app = FastAPI(title="Clinical Telemetry Realtime", version="0.1.0", lifespan=lifespan)
app.include_router(api_router)


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
