"""Retry with capped exponential backoff for store connections."""

from __future__ import annotations

import asyncio
import inspect
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Iterator, TypeVar

from shared.logging.logger import get_logger

T = TypeVar("T")

OnRetry = Callable[[int, BaseException, float], Awaitable[None] | None]

logger = get_logger("retry")


@dataclass(frozen=True)
class Backoff:
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.2

    def delays(self, rng: Callable[[], float] = random.random) -> Iterator[float]:
        """Endless sequence of sleep times: doubling, capped, plus jitter."""
        delay = self.base_delay
        while True:
            capped = min(delay, self.max_delay)
            yield capped + capped * self.jitter * rng()
            delay = min(delay * 2, self.max_delay)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    retries: int = 5,
    backoff: Backoff = Backoff(),
    retry_on: Iterable[type[BaseException]] = (Exception,),
    on_retry: OnRetry | None = None,
) -> T:
    """Await ``func`` up to ``retries`` times; the last failure propagates."""
    if retries < 1:
        raise ValueError("retries must be >= 1")
    retry_on = tuple(retry_on)
    delays = backoff.delays()
    attempt = 1
    while True:
        try:
            return await func()
        except retry_on as exc:  # type: ignore[misc]
            if attempt >= retries:
                raise
            sleep_for = next(delays)
            if on_retry is not None:
                await _notify(on_retry, attempt, exc, sleep_for)
            await asyncio.sleep(sleep_for)
            attempt += 1


async def _notify(on_retry: OnRetry, attempt: int, exc: BaseException, sleep_for: float):
    # A broken callback must not abort the retry loop.
    try:
        result = on_retry(attempt, exc, sleep_for)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("retry_callback_failed", extra={"attempt": attempt})
