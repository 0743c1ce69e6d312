"""Authentication setup phase for a suite run."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..models import AuthState, SessionSnapshot
from .cache import SessionCache

LOGGER = logging.getLogger(__name__)


class SetupError(RuntimeError):
    """Raised when the suite cannot authenticate against HQ Admin."""


class LoginFlow(Protocol):
    """Interactive login that returns a freshly captured snapshot."""

    def __call__(self) -> SessionSnapshot:
        """Log in and capture the browser storage state."""


class SessionManager:
    """Reuse the cached session or log in once, then stay authenticated."""

    def __init__(self, cache: SessionCache, login_flow: LoginFlow) -> None:
        self._cache = cache
        self._login_flow = login_flow
        self._state = AuthState.UNAUTHENTICATED
        self._snapshot: Optional[SessionSnapshot] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def cache(self) -> SessionCache:
        return self._cache

    def ensure_session(self, *, force: bool = False) -> SessionSnapshot:
        """Return an authenticated snapshot, logging in only when the cache is unusable.

        ``force`` ignores the cached file and any session already held by this
        manager. Login failures surface as :class:`SetupError`.
        """

        if self._state is AuthState.AUTHENTICATED and self._snapshot is not None and not force:
            return self._snapshot

        snapshot = None if force else self._cache.acquire()
        if snapshot is not None and self._cache.is_usable(snapshot):
            LOGGER.info("Reusing stored session from %s", self._cache.path)
        else:
            LOGGER.info("No usable session at %s; logging in", self._cache.path)
            snapshot = self._login_flow()
            self._cache.persist(snapshot)

        self._snapshot = snapshot
        self._state = AuthState.AUTHENTICATED
        return snapshot
