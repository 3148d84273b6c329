"""The environment the capture agent is embedded in.

A host reports where the user currently is and emits signals: raw input
activity, visibility changes and imminent teardown. Listeners are plain
synchronous callables, invoked on the event loop thread.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Protocol

ACTIVITY_EVENTS = ("mousedown", "mousemove", "keypress", "scroll", "touchstart")
VISIBILITY_CHANGE = "visibilitychange"
BEFORE_UNLOAD = "beforeunload"

Listener = Callable[..., None]


class Host(Protocol):
    @property
    def location(self) -> str: ...

    @property
    def referrer(self) -> str | None: ...

    @property
    def user_agent(self) -> str: ...

    def navigation_timing(self) -> Dict[str, float] | None: ...

    def add_listener(self, name: str, listener: Listener) -> None: ...

    def remove_listener(self, name: str, listener: Listener) -> None: ...


class InMemoryHost:
    """Host driven programmatically, for headless clients and tests."""

    def __init__(
        self,
        location: str = "/",
        referrer: str | None = None,
        user_agent: str = "",
        timing: Dict[str, float] | None = None,
    ):
        self.location = location
        self.referrer = referrer
        self.user_agent = user_agent
        self.timing = timing
        self.hidden = False
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def navigation_timing(self) -> Dict[str, float] | None:
        return dict(self.timing) if self.timing else None

    def add_listener(self, name: str, listener: Listener) -> None:
        self._listeners[name].append(listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        try:
            self._listeners[name].remove(listener)
        except ValueError:
            pass

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def dispatch(self, name: str, *args: Any) -> None:
        for listener in list(self._listeners.get(name, [])):
            listener(*args)

    def navigate(self, location: str) -> None:
        self.referrer, self.location = self.location, location

    def set_hidden(self, hidden: bool) -> None:
        self.hidden = hidden
        self.dispatch(VISIBILITY_CHANGE, hidden)

    def unload(self) -> None:
        self.dispatch(BEFORE_UNLOAD)
