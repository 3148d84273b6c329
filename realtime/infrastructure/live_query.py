"""Push-based live queries over the telemetry store.

A live query delivers its *entire* current result set once on subscribe and
again after every change to the underlying collection. Consumers rebuild
whatever they derive from it; nothing is delivered as a diff.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Protocol,
    Sequence,
    TypeVar,
)

from realtime.core.logger import get_logger
from shared.store import ChangeStream

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

OnNext = Callable[[Sequence[T]], Awaitable[None] | None]
OnError = Callable[[BaseException], None]

logger = get_logger("live_query")


class Subscription(Protocol):
    @property
    def active(self) -> bool: ...

    async def cancel(self) -> None: ...


class ObservableSource(Protocol[T_co]):
    """Anything that pushes full result sets to a subscriber."""

    def subscribe(self, on_next: Any, on_error: OnError) -> Subscription: ...


class TaskSubscription:
    """Handle on a running live query; cancelling is idempotent."""

    def __init__(self, task: asyncio.Task):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def cancel(self) -> None:
        if self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class LiveQuery(Generic[T]):
    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[List[T]]],
        open_changes: Callable[[], Awaitable[ChangeStream]],
    ):
        self.name = name
        self._fetch = fetch
        self._open_changes = open_changes

    def subscribe(self, on_next: OnNext, on_error: OnError) -> TaskSubscription:
        task = asyncio.get_running_loop().create_task(
            self._run(on_next, on_error), name=f"live_query:{self.name}"
        )
        return TaskSubscription(task)

    async def _run(self, on_next: OnNext, on_error: OnError):
        try:
            changes = await self._open_changes()
        except Exception as e:  # noqa: BLE001
            on_error(e)
            return
        try:
            await self._deliver(on_next, on_error)
            async for _ in changes:
                await self._deliver(on_next, on_error)
        except asyncio.CancelledError:
            logger.debug("live_query_cancelled", extra={"query": self.name})
            raise
        except Exception as e:  # noqa: BLE001
            on_error(e)
        finally:
            await changes.aclose()

    async def _deliver(self, on_next: OnNext, on_error: OnError):
        # A failed re-query is reported and the feed keeps listening.
        try:
            results = await self._fetch()
        except Exception as e:  # noqa: BLE001
            on_error(e)
            return
        outcome = on_next(results)
        if inspect.isawaitable(outcome):
            await outcome
