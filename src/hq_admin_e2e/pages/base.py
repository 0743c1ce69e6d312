"""Shared helpers for HQ Admin page objects."""

from __future__ import annotations

from typing import Optional

from playwright.sync_api import Error, Locator, Page


class BasePage:
    """A Playwright page bound to the HQ Admin base URL."""

    def __init__(self, page: Page, base_url: str) -> None:
        self.page = page
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def _is_visible(locator: Locator) -> bool:
        try:
            return locator.is_visible()
        except Error:
            return False


def to_timeout(timeout: Optional[float]) -> Optional[float]:
    """Convert seconds to the milliseconds Playwright expects."""

    if timeout is None:
        return None
    return timeout * 1000
