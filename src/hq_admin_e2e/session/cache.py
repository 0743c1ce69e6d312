"""On-disk cache of the authenticated HQ Admin browser session."""

from __future__ import annotations

import base64
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..config import AppEnv
from ..models import SessionSnapshot, SessionValidity

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=23)
TOKEN_KEY_MARKERS = ("token", "auth")


class SessionCache:
    """Read, judge and replace the snapshot stored at a single path."""

    def __init__(
        self,
        path: Path,
        *,
        check_expiry: bool = True,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self._check_expiry = check_expiry
        self._max_age = max_age
        self._clock = clock

    @classmethod
    def for_environment(
        cls,
        auth_dir: Path,
        app_env: AppEnv | str,
        **kwargs: Any,
    ) -> "SessionCache":
        """Return the cache whose file is keyed by ``app_env``."""

        name = app_env.value if isinstance(app_env, AppEnv) else str(app_env)
        if not name or "/" in name or "\\" in name:
            raise ValueError(f"Invalid environment name for session cache: {name!r}")
        return cls(Path(auth_dir) / f"hq-admin-{name}.json", **kwargs)

    def acquire(self) -> Optional[SessionSnapshot]:
        """Return the stored snapshot, or ``None`` when there is nothing usable on disk."""

        if not self.path.is_file():
            LOGGER.debug("No session snapshot at %s", self.path)
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
            modified = self.path.stat().st_mtime
            snapshot = SessionSnapshot.model_validate(json.loads(raw))
        except (OSError, ValueError, ValidationError) as exc:
            LOGGER.warning("Ignoring unreadable session snapshot %s: %s", self.path, exc)
            return None
        snapshot.modified_at = datetime.fromtimestamp(modified, tz=timezone.utc)
        return snapshot

    def is_usable(self, snapshot: Optional[SessionSnapshot]) -> bool:
        """Whether ``snapshot`` can be replayed instead of logging in again."""

        if snapshot is None or not snapshot.origins or not snapshot.has_entries:
            return False
        return not self.validity(snapshot).expired

    def validity(self, snapshot: SessionSnapshot) -> SessionValidity:
        if not self._check_expiry:
            return SessionValidity(expired=False, reason="expiry check disabled")

        now = self._clock()
        for origin in snapshot.origins:
            entry = next(
                (
                    item
                    for item in origin.local_storage
                    if any(marker in item.name for marker in TOKEN_KEY_MARKERS)
                ),
                None,
            )
            if entry is None:
                continue
            exp = token_expiry(entry.value)
            if exp is None:
                continue
            if exp < now:
                return SessionValidity(
                    expired=True,
                    reason=f"token {entry.name!r} for {origin.origin} expired",
                )
            return SessionValidity(
                expired=False,
                reason=f"token {entry.name!r} for {origin.origin} is valid",
            )

        if snapshot.modified_at is None:
            return SessionValidity(expired=True, reason="snapshot age is unknown")
        age = timedelta(seconds=now - snapshot.modified_at.timestamp())
        if age > self._max_age:
            return SessionValidity(expired=True, reason=f"snapshot is older than {self._max_age}")
        return SessionValidity(expired=False, reason=f"snapshot is {_format_age(age)} old")

    def persist(self, snapshot: SessionSnapshot) -> None:
        """Write ``snapshot`` to the cache path, replacing whatever is there."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(snapshot.to_json(), encoding="utf-8")
        LOGGER.info("Stored session snapshot at %s", self.path)


def token_expiry(value: str) -> Optional[float]:
    """Return the ``exp`` claim of a JWT-shaped ``value`` or ``None``."""

    parts = value.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1]
    try:
        payload = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        claims = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(claims, dict):
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


def _format_age(age: timedelta) -> str:
    minutes = int(age.total_seconds() // 60)
    hours, minutes = divmod(max(minutes, 0), 60)
    return f"{hours}h{minutes:02d}m"
