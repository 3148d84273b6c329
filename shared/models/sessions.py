from pydantic import Field

from .base import BrowserInfo, DocumentModel
from .enums import DeviceType, UserRole


class UserSession(DocumentModel):
    """One continuous span of user presence.

    Timestamps are epoch-ms; ``duration`` is whole seconds and only set once
    the session has ended.
    """

    id: str
    user_id: str
    user_role: UserRole
    start_time: int
    end_time: int | None = None
    duration: int | None = None
    page_views: int = 0
    interactions: int = 0
    last_activity: int
    is_active: bool = True

    entry_page: str
    exit_page: str | None = None
    referrer: str | None = None

    user_agent: str = ""
    ip_address: str = "client"
    device_type: DeviceType = DeviceType.DESKTOP
    browser_info: BrowserInfo = Field(default_factory=BrowserInfo)
