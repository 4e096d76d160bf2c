"""Request dependencies and role gates.

A gate is a small predicate over a `GateContext` that returns a
`GateResult`: allowed, or denied with the error to report. `guard()`
composes gates left to right into a FastAPI dependency; the first
denial is raised and the handler body never runs. The three gates used
by the routes are:

- `require_authenticated`: an active session (401 otherwise)
- `require_teacher`: an active session (401) and the teacher role (403)
- `require_admin`: an active session (401) and the admin role (403)
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from fastapi import Depends, Request

from . import models
from .config import Settings
from .errors import AuthenticationError, AuthorizationError, QuizHubError
from .sessions import SessionStore
from .storage import MemoryStorage

_UNSET = object()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> MemoryStorage:
    """The store created by the application factory."""
    return request.app.state.storage


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings(request).SESSION_COOKIE_NAME)


def get_session_user_id(request: Request, sessions: SessionStore = Depends(get_sessions)) -> Optional[int]:
    return sessions.resolve(session_token(request))


@dataclass
class GateContext:
    """What a gate can inspect: the session's user id and the store."""
    user_id: Optional[int]
    storage: MemoryStorage
    _user: object = field(default=_UNSET, repr=False)

    @property
    def user(self) -> Optional[models.User]:
        # loaded once, on first use
        if self._user is _UNSET:
            self._user = self.storage.get_user(self.user_id) if self.user_id is not None else None
        return self._user


@dataclass(frozen=True)
class GateResult:
    error: Optional[QuizHubError] = None

    @property
    def allowed(self) -> bool:
        return self.error is None

    @classmethod
    def allow(cls) -> "GateResult":
        return cls()

    @classmethod
    def deny(cls, error: QuizHubError) -> "GateResult":
        return cls(error=error)


Gate = Callable[[GateContext], GateResult]


def authenticated(ctx: GateContext) -> GateResult:
    if ctx.user_id is None:
        return GateResult.deny(AuthenticationError("Unauthorized"))
    return GateResult.allow()


def has_role(role: models.Role) -> Gate:
    def gate(ctx: GateContext) -> GateResult:
        user = ctx.user
        if user is None or user.role != role:
            return GateResult.deny(AuthorizationError("Forbidden"))
        return GateResult.allow()

    gate.__name__ = f"has_role_{role.value}"
    return gate


def guard(*gates: Gate):
    """Build a dependency running `gates` in order and returning the context."""
    def dependency(
        user_id: Optional[int] = Depends(get_session_user_id),
        storage: MemoryStorage = Depends(get_storage),
    ) -> GateContext:
        ctx = GateContext(user_id=user_id, storage=storage)
        for gate in gates:
            result = gate(ctx)
            if not result.allowed:
                raise result.error
        return ctx

    return dependency


require_authenticated = guard(authenticated)
require_teacher = guard(authenticated, has_role(models.Role.TEACHER))
require_admin = guard(authenticated, has_role(models.Role.ADMIN))
