from __future__ import annotations

from uuid6 import uuid7

from shared.models import BrowserInfo, DeviceType, UserRole, UserSession


class SessionState:
    """The agent's private, versioned handle on the current session.

    Every mutation bumps ``version``; the agent compares it against the last
    version it persisted to decide whether a heartbeat write is due. Callers
    outside the agent only ever see copies from ``snapshot()``.
    """

    def __init__(self, session: UserSession):
        self._session = session
        self.version = 0
        self.persisted_version = -1

    @classmethod
    def open(
        cls,
        user_id: str,
        user_role: UserRole,
        now_ms: int,
        entry_page: str,
        referrer: str | None,
        user_agent: str,
        device_type: DeviceType,
        browser: BrowserInfo,
    ) -> "SessionState":
        return cls(
            UserSession(
                id=str(uuid7()),
                user_id=user_id,
                user_role=user_role,
                start_time=now_ms,
                last_activity=now_ms,
                is_active=True,
                entry_page=entry_page,
                referrer=referrer or None,
                user_agent=user_agent,
                device_type=device_type,
                browser_info=browser,
            )
        )

    @property
    def id(self) -> str:
        return self._session.id

    @property
    def user_id(self) -> str:
        return self._session.user_id

    @property
    def user_role(self) -> UserRole:
        return self._session.user_role

    @property
    def start_time(self) -> int:
        return self._session.start_time

    @property
    def is_active(self) -> bool:
        return self._session.is_active

    @property
    def page_views(self) -> int:
        return self._session.page_views

    @property
    def interactions(self) -> int:
        return self._session.interactions

    @property
    def dirty(self) -> bool:
        return self.version != self.persisted_version

    def snapshot(self) -> UserSession:
        return self._session.model_copy(deep=True)

    def touch(self, now_ms: int):
        self._session.last_activity = now_ms
        self.version += 1

    def record_page_view(self, now_ms: int):
        self._session.page_views += 1
        self.touch(now_ms)

    def record_interaction(self, now_ms: int):
        self._session.interactions += 1
        self.touch(now_ms)

    def mark_persisted(self, version: int):
        self.persisted_version = max(self.persisted_version, version)

    def finalize(self, now_ms: int, exit_page: str | None) -> UserSession:
        """Close the session and return the terminal record to persist."""
        if not self._session.is_active:
            raise RuntimeError(f"Session {self.id} already finalized")
        self._session.end_time = now_ms
        self._session.duration = max(0, (now_ms - self._session.start_time) // 1000)
        self._session.is_active = False
        self._session.exit_page = exit_page
        self.version += 1
        return self.snapshot()
