from typing import Any, AsyncIterator, Protocol, Sequence

from shared.models import UserEvent, UserSession


class ChangeStream(Protocol):
    """Notifications that a collection changed; payloads carry no data."""

    def __aiter__(self) -> AsyncIterator[Any]: ...

    async def aclose(self) -> None: ...


class TelemetryStore(Protocol):
    """The document store both the capture agent and realtime service use."""

    async def add_events(self, events: Sequence[UserEvent]) -> list[str]: ...

    async def save_session(self, session: UserSession) -> None: ...

    async def query_events(
        self,
        *,
        since: int,
        event_type: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[UserEvent]: ...

    async def query_sessions(
        self,
        *,
        active_only: bool = False,
        active_since: int | None = None,
        started_since: int | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[UserSession]: ...

    async def watch(self, collection: str) -> ChangeStream: ...
