"""Authentication session handling.

A :class:`SessionManager` is the only place that holds the bearer token and
the logged-in user.  The REST client asks it for request headers and tells
it when the backend rejects the token; nothing else reads or writes the
session.

Lifecycle: :meth:`SessionManager.start` on login, :meth:`SessionManager.end`
on logout (or on a ``401`` response).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from smartbee.models import User

__all__ = ["Session", "SessionManager"]

logger = logging.getLogger("smartbee.session")


class Session(BaseModel):
    """An authenticated session.

    Attributes:
        token: Bearer token issued by the backend (may be empty when the
            backend authenticates without tokens).
        user: The logged-in user, when the backend returned one.
        started_at: When the session was created.
    """

    model_config = ConfigDict(frozen=True)

    token: str = ""
    user: User | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks.
        user = self.user.email if self.user is not None else None
        return f"Session(user={user!r}, started_at={self.started_at.isoformat()})"

    __str__ = __repr__


class SessionManager:
    """Owns the current :class:`Session`, if any."""

    def __init__(self) -> None:
        self._session: Session | None = None

    def start(self, token: str = "", user: User | None = None) -> Session:
        """Create a new session, replacing any existing one."""
        if self._session is not None:
            logger.info("Replacing existing session")
        self._session = Session(token=token, user=user)
        logger.info("Session started%s", f" for {user.email}" if user and user.email else "")
        return self._session

    def end(self, reason: str = "logout") -> None:
        """Destroy the current session (no-op when there is none)."""
        if self._session is None:
            return
        self._session = None
        logger.info("Session ended (%s)", reason)

    @property
    def current(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def auth_headers(self) -> dict[str, str]:
        """Headers to attach to an outgoing request."""
        if self._session is None or not self._session.token:
            return {}
        return {"Authorization": f"Bearer {self._session.token}"}
