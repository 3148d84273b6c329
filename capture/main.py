"""Composition root for processes that embed the capture agent."""

from redis.asyncio import Redis

from capture.core.config import Settings, settings
from capture.core.logger import configure_logging, get_logger
from capture.infrastructure.auth import AuthProvider
from capture.infrastructure.host import Host
from capture.services.agent import TelemetryAgent
from shared.store import RedisTelemetryStore, TelemetryStore, connect_redis

logger = get_logger("main")


def build_agent(
    store: TelemetryStore,
    auth: AuthProvider,
    host: Host,
    config: Settings = settings,
) -> TelemetryAgent:
    return TelemetryAgent(
        store,
        auth,
        host,
        config.tracking_config(),
        idle_timeout_seconds=config.session_idle_timeout_seconds,
        idle_check_interval_seconds=config.session_idle_check_interval_seconds,
        page_dwell_threshold_ms=config.page_dwell_threshold_ms,
    )


async def start_agent(
    auth: AuthProvider,
    host: Host,
    config: Settings = settings,
    redis: Redis | None = None,
) -> TelemetryAgent:
    """Connect to the store, build the agent and open its first session."""
    configure_logging()
    if redis is None:
        redis = await connect_redis(config, logger)
    agent = build_agent(RedisTelemetryStore(redis), auth, host, config)
    started = await agent.start()
    logger.info("capture_agent_ready", extra={"active": started})
    return agent
