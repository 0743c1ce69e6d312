from __future__ import annotations

from pathlib import Path

import pytest
from playwright.sync_api import expect

from hq_admin_e2e.config import SuiteConfig


@pytest.fixture(scope="session")
def browser_context_args(
    browser_context_args: dict,
    suite_config: SuiteConfig,
    hq_admin_storage_state: Path,
) -> dict:
    return {
        **browser_context_args,
        "storage_state": str(hq_admin_storage_state),
        "viewport": suite_config.browser.viewport,
    }


@pytest.fixture(scope="session", autouse=True)
def _expect_timeout(suite_config: SuiteConfig) -> None:
    expect.set_options(timeout=suite_config.timeouts.expect * 1000)
