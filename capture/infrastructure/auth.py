from typing import Protocol

from pydantic import BaseModel

from shared.models import UserRole


class CurrentUser(BaseModel):
    id: str
    role: UserRole


class AuthProvider(Protocol):
    """Identity source that gates agent initialization."""

    async def wait_for_initial_auth_state(self) -> None: ...

    def get_current_user(self) -> CurrentUser | None: ...


class StaticAuthProvider:
    """Auth provider for processes whose identity is known up front."""

    def __init__(self, user: CurrentUser | None = None):
        self._user = user

    async def wait_for_initial_auth_state(self) -> None:
        return None

    def get_current_user(self) -> CurrentUser | None:
        return self._user

    def sign_in(self, user: CurrentUser):
        self._user = user

    def sign_out(self):
        self._user = None
