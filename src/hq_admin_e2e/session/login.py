"""Interactive HQ Admin login driven by Playwright."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.sync_api import Browser, BrowserContext, Error, sync_playwright

from ..config import SuiteConfig
from ..models import SessionSnapshot
from ..pages.login import LoginPage
from .manager import SetupError

LOGGER = logging.getLogger(__name__)


class PlaywrightLoginFlow:
    """Log in through the HQ Admin form and capture the resulting storage state.

    When ``browser`` is given (for example the pytest-playwright session
    browser) a throwaway context is opened on it; otherwise a browser is
    launched for the duration of the login.
    """

    def __init__(self, config: SuiteConfig, browser: Optional[Browser] = None) -> None:
        self._config = config
        self._browser = browser

    def __call__(self) -> SessionSnapshot:
        if self._browser is not None:
            return self._login(self._browser)

        LOGGER.debug("Launching %s for HQ Admin login", self._config.browser.name)
        try:
            with sync_playwright() as playwright:
                browser_type = getattr(playwright, self._config.browser.name)
                browser = browser_type.launch(
                    headless=self._config.browser.headless,
                    slow_mo=self._config.browser.slow_mo or None,
                )
                try:
                    return self._login(browser)
                finally:
                    browser.close()
        except Error as exc:
            raise SetupError(f"Could not start {self._config.browser.name}: {exc}") from exc

    def _login(self, browser: Browser) -> SessionSnapshot:
        config = self._config
        context: Optional[BrowserContext] = None
        try:
            context = browser.new_context(viewport=config.browser.viewport)
            context.set_default_timeout(config.timeouts.action * 1000)
            context.set_default_navigation_timeout(config.timeouts.navigation * 1000)
            page = context.new_page()
            login_page = LoginPage(page, config.base_url)
            LOGGER.info("Logging in to %s as %s", login_page.url, config.hq_admin_auth_email)
            login_page.navigate()
            login_page.login(
                config.hq_admin_auth_email,
                config.hq_admin_auth_password,
                timeout=config.timeouts.navigation,
            )
            login_page.set_feature_flags(config.session.feature_flags)
            state = context.storage_state()
        except Error as exc:
            raise SetupError(f"HQ Admin login failed at {config.base_url}: {exc}") from exc
        finally:
            if context is not None:
                context.close()
        return SessionSnapshot.model_validate(state)
