import json
import time
from typing import Any, AsyncIterator, Callable, Dict, List, Sequence

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from uuid6 import uuid7

from shared.constants import Collections, RedisKeys
from shared.logging.logger import get_logger
from shared.models import UserEvent, UserSession, to_document

logger = get_logger("store.redis")


class RedisChangeStream:
    """Change notifications for one collection, subscribed before use.

    Subscribing happens in ``open()`` so that callers can run their initial
    query afterwards without missing a write that lands in between.
    """

    def __init__(self, redis: Redis, collection: str):
        self.channel = RedisKeys.changes_channel(collection)
        self._pubsub: PubSub = redis.pubsub()
        self._closed = False

    async def open(self) -> "RedisChangeStream":
        await self._pubsub.subscribe(self.channel)
        return self

    async def __aiter__(self) -> AsyncIterator[Any]:
        async for message in self._pubsub.listen():
            if message.get("type") == "message":
                yield message.get("data")

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self.channel)
        finally:
            await self._pubsub.aclose()


class RedisTelemetryStore:
    """Telemetry collections kept as JSON documents in Redis.

    Events live at ``user_analytics:<id>`` and are indexed by timestamp,
    sessions live at ``user_sessions:<id>`` and are indexed by last activity.
    Every write is announced on the collection's change channel.
    """

    def __init__(self, redis: Redis, clock: Callable[[], float] = time.time):
        self.r = redis
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def add_events(self, events: Sequence[UserEvent]) -> List[str]:
        if not events:
            return []
        created_at = self._now_ms()
        ids: List[str] = []
        pipe = self.r.pipeline(transaction=False)
        for event in events:
            event_id = event.id or str(uuid7())
            doc = to_document(event)
            doc["id"] = event_id
            doc["createdAt"] = created_at
            pipe.set(
                RedisKeys.document_key(Collections.USER_ANALYTICS, event_id),
                json.dumps(doc),
            )
            pipe.zadd(RedisKeys.EVENT_TIMESTAMP_INDEX, {event_id: event.timestamp})
            ids.append(event_id)
        await pipe.execute()
        await self._publish_change(Collections.USER_ANALYTICS, len(ids))
        logger.debug("events_written", extra={"count": len(ids)})
        return ids

    async def save_session(self, session: UserSession) -> None:
        doc = to_document(session)
        doc["createdAt"] = self._now_ms()
        pipe = self.r.pipeline(transaction=False)
        pipe.set(
            RedisKeys.document_key(Collections.USER_SESSIONS, session.id),
            json.dumps(doc),
        )
        pipe.zadd(
            RedisKeys.SESSION_ACTIVITY_INDEX, {session.id: session.last_activity}
        )
        await pipe.execute()
        await self._publish_change(Collections.USER_SESSIONS, 1)

    async def query_events(
        self,
        *,
        since: int,
        event_type: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> List[UserEvent]:
        """Events with ``timestamp >= since``, newest first."""
        docs = await self._load_indexed(
            RedisKeys.EVENT_TIMESTAMP_INDEX, Collections.USER_ANALYTICS, since
        )
        results: List[UserEvent] = []
        for doc in docs:
            if event_type is not None and doc.get("eventType") != event_type:
                continue
            if user_id is not None and doc.get("userId") != user_id:
                continue
            results.append(UserEvent.model_validate(doc))
            if limit is not None and len(results) >= limit:
                break
        return results

    async def query_sessions(
        self,
        *,
        active_only: bool = False,
        active_since: int | None = None,
        started_since: int | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> List[UserSession]:
        """Sessions ordered by most recent activity first."""
        docs = await self._load_indexed(
            RedisKeys.SESSION_ACTIVITY_INDEX,
            Collections.USER_SESSIONS,
            active_since,
        )
        results: List[UserSession] = []
        for doc in docs:
            if active_only and not doc.get("isActive", False):
                continue
            if user_id is not None and doc.get("userId") != user_id:
                continue
            if started_since is not None and doc.get("startTime", 0) < started_since:
                continue
            results.append(UserSession.model_validate(doc))
            if limit is not None and len(results) >= limit:
                break
        return results

    async def watch(self, collection: str) -> RedisChangeStream:
        return await RedisChangeStream(self.r, collection).open()

    async def _publish_change(self, collection: str, count: int):
        await self.r.publish(
            RedisKeys.changes_channel(collection),
            json.dumps({"collection": collection, "count": count}),
        )

    async def _load_indexed(
        self, index_key: str, collection: str, min_score: int | None
    ) -> List[Dict[str, Any]]:
        ids = await self.r.zrevrangebyscore(
            index_key, "+inf", "-inf" if min_score is None else min_score
        )
        if not ids:
            return []
        raw = await self.r.mget(
            [RedisKeys.document_key(collection, doc_id) for doc_id in ids]
        )
        docs: List[Dict[str, Any]] = []
        for value in raw:
            if value is None:
                continue
            docs.append(json.loads(value))
        return docs
