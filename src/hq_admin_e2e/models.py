"""Shared models used across the HQ Admin suite."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthState(str, enum.Enum):
    """Authentication state of the suite for the lifetime of one run."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class StorageEntry(BaseModel):
    """A single ``localStorage`` item."""

    name: str
    value: str


class OriginStorage(BaseModel):
    """Client-side storage persisted for one origin."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    origin: str
    local_storage: list[StorageEntry] = Field(default_factory=list, alias="localStorage")


class Cookie(BaseModel):
    """Cookie as serialised by Playwright's ``storage_state``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = -1
    http_only: bool = Field(default=False, alias="httpOnly")
    secure: bool = False
    same_site: str = Field(default="Lax", alias="sameSite")


class SessionSnapshot(BaseModel):
    """Captured browser authentication state.

    The JSON layout matches Playwright's storage state, so a persisted snapshot
    can be handed straight to ``browser.new_context(storage_state=...)``.
    ``modified_at`` comes from the backing file and is never written back.
    """

    model_config = ConfigDict(extra="allow")

    cookies: list[Cookie] = Field(default_factory=list)
    origins: list[OriginStorage] = Field(default_factory=list)
    modified_at: Optional[datetime] = Field(default=None, exclude=True)

    @property
    def has_entries(self) -> bool:
        return any(origin.local_storage for origin in self.origins)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass(frozen=True)
class SessionValidity:
    """Expiry judgement for a snapshot."""

    expired: bool
    reason: str
