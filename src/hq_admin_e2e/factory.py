"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Optional

from playwright.sync_api import Browser

from .config import SuiteConfig
from .session.cache import SessionCache
from .session.login import PlaywrightLoginFlow
from .session.manager import SessionManager


def build_session_cache(config: SuiteConfig) -> SessionCache:
    return SessionCache.for_environment(
        config.session.auth_dir,
        config.app_env,
        check_expiry=config.session.check_expiry,
        max_age=config.session.max_age,
    )


def build_login_flow(config: SuiteConfig, browser: Optional[Browser] = None) -> PlaywrightLoginFlow:
    return PlaywrightLoginFlow(config, browser=browser)


def build_session_manager(config: SuiteConfig, browser: Optional[Browser] = None) -> SessionManager:
    return SessionManager(build_session_cache(config), build_login_flow(config, browser))
