"""Page object for a campaign's details screen."""

from __future__ import annotations

import re
from typing import Optional

from playwright.sync_api import Locator, Page

from .base import BasePage, to_timeout

GENERATE_STORYBOARD = re.compile(r"Generate Storyboard & Copy")
GENERATING_STORYBOARD = re.compile(r"Generating Storyboard & Copy")
STORYBOARD_TAB = re.compile(r"Storyboard & Copy")


class CampaignDetailsPage(BasePage):
    """Storyboard generation controls of ``/campaigns/details/<id>``."""

    def __init__(self, page: Page, base_url: str, campaign_id: str) -> None:
        super().__init__(page, base_url)
        self.campaign_id = campaign_id
        self._generate_button = page.get_by_role("button", name=GENERATE_STORYBOARD)
        self._generating_button = page.get_by_role("button", name=GENERATING_STORYBOARD)
        self._storyboard_tab = page.get_by_role("tab", name=STORYBOARD_TAB)

    @property
    def url(self) -> str:
        return f"{self.base_url}/campaigns/details/{self.campaign_id}/campaign-details"

    def navigate(self, *, timeout: Optional[float] = None) -> None:
        self.page.goto(self.url)
        self.page.wait_for_load_state("networkidle")
        self.page.wait_for_selector(".ant-tabs", timeout=to_timeout(timeout))

    def is_generate_storyboard_visible(self) -> bool:
        return self._is_visible(self._generate_button)

    def is_generate_storyboard_enabled(self) -> bool:
        return self._generate_button.is_enabled()

    def is_generate_storyboard_loading(self) -> bool:
        return self._is_visible(self._generating_button)

    def click_generate_storyboard(self) -> None:
        self._generate_button.click()

    def is_storyboard_tab_visible(self) -> bool:
        return self._is_visible(self._storyboard_tab)

    def wait_for_storyboard_tab(self, *, timeout: Optional[float] = None) -> Locator:
        self._storyboard_tab.wait_for(state="visible", timeout=to_timeout(timeout))
        return self._storyboard_tab
