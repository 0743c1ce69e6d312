"""Page object for the HQ Admin login screen."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from .base import BasePage, to_timeout

LANDING_TEXT = "Stores / Branches"


class LoginPage(BasePage):
    """Fill and submit the login form."""

    @property
    def url(self) -> str:
        return f"{self.base_url}/login"

    def navigate(self) -> None:
        self.page.goto(self.url)

    def login(self, email: str, password: str, *, timeout: Optional[float] = None) -> None:
        """Submit credentials and wait until the landing page renders."""

        self.page.locator('input[name="email"]').fill(email)
        self.page.locator('input[name="password"]').fill(password)
        self.page.get_by_role("button", name="Login").click()
        self.page.get_by_text(LANDING_TEXT).first.wait_for(
            state="visible",
            timeout=to_timeout(timeout),
        )

    def set_feature_flags(self, flags: Mapping[str, str]) -> None:
        if not flags:
            return
        self.page.evaluate(
            """flags => {
                for (const [key, value] of Object.entries(flags)) {
                    localStorage.setItem(key, value)
                }
            }""",
            dict(flags),
        )
