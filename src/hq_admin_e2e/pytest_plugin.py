"""pytest fixtures gating HQ Admin scenarios behind the authentication setup phase."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import pytest
from playwright.sync_api import Browser, Page

from .config import ConfigError, SuiteConfig, load_config
from .factory import build_session_cache, build_session_manager
from .pages.campaign_details import CampaignDetailsPage
from .session.manager import SetupError

LOGGER = logging.getLogger(__name__)

BLOCKED_PREFIX = "blocked by HQ Admin setup failure"

_setup_failures: list[str] = []


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("hq-admin", "HQ Admin end-to-end suite")
    group.addoption(
        "--hq-admin-env-file",
        action="store",
        default=None,
        help="Path to an .env file with the suite variables.",
    )
    group.addoption(
        "--hq-admin-config",
        action="store",
        default=None,
        help="Path to a YAML configuration file.",
    )


def pytest_configure(config: pytest.Config) -> None:
    _setup_failures.clear()
    config.addinivalue_line(
        "markers", "e2e: drives the live HQ Admin application through a real browser"
    )


def is_xdist_worker(config: pytest.Config) -> bool:
    return hasattr(config, "workerinput")


def block(reason: str) -> NoReturn:
    """Skip the requesting scenario as blocked by a setup failure.

    The reason travels in the skip report, so the controlling process collects
    it in :func:`pytest_runtest_logreport` even when an xdist worker skipped.
    """

    pytest.skip(f"{BLOCKED_PREFIX}: {reason}")


@pytest.fixture(scope="session")
def suite_config(pytestconfig: pytest.Config) -> SuiteConfig:
    env_file = pytestconfig.getoption("hq_admin_env_file")
    config_path = pytestconfig.getoption("hq_admin_config")
    try:
        return load_config(
            Path(config_path) if config_path else None,
            env_file=Path(env_file) if env_file else None,
        )
    except ConfigError as exc:
        block(str(exc))


@pytest.fixture(scope="session")
def hq_admin_storage_state(
    pytestconfig: pytest.Config,
    suite_config: SuiteConfig,
    browser: Browser,
) -> Path:
    """Path of a usable session snapshot, logging in when needed.

    Only the controlling process may log in. xdist workers rely on the setup
    already performed by ``hq-admin-e2e run`` so the snapshot has one writer.
    """

    if is_xdist_worker(pytestconfig):
        cache = build_session_cache(suite_config)
        if not cache.is_usable(cache.acquire()):
            block(f"no usable session at {cache.path}; run `hq-admin-e2e setup` first")
        return cache.path

    manager = build_session_manager(suite_config, browser=browser)
    try:
        manager.ensure_session()
    except SetupError as exc:
        block(str(exc))
    return manager.cache.path


@pytest.fixture
def campaign_id(suite_config: SuiteConfig) -> str:
    if not suite_config.test_campaign_id:
        pytest.skip("TEST_CAMPAIGN_ID environment variable is required")
    return suite_config.test_campaign_id


@pytest.fixture
def campaign_details_page(page: Page, suite_config: SuiteConfig, campaign_id: str) -> CampaignDetailsPage:
    page.set_default_timeout(suite_config.timeouts.action * 1000)
    page.set_default_navigation_timeout(suite_config.timeouts.navigation * 1000)
    return CampaignDetailsPage(page, suite_config.base_url, campaign_id)


def pytest_runtest_logreport(report: pytest.TestReport) -> None:
    if not report.skipped:
        return
    reason = blocked_reason(report.longrepr)
    if reason is not None and reason not in _setup_failures:
        _setup_failures.append(reason)


def blocked_reason(longrepr: object) -> Optional[str]:
    """Return the setup failure behind a skip report, if it was a blocked skip."""

    # Skips are reported as (path, lineno, message); xdist may deliver a list.
    if not isinstance(longrepr, (tuple, list)) or len(longrepr) != 3:
        return None
    _, marker, reason = str(longrepr[2]).partition(f"{BLOCKED_PREFIX}: ")
    return reason if marker else None


def pytest_terminal_summary(terminalreporter, exitstatus: int, config: pytest.Config) -> None:
    if not _setup_failures:
        return
    terminalreporter.section("HQ Admin setup", sep="=", red=True, bold=True)
    terminalreporter.write_line(
        "Setup failed; dependent scenarios were skipped instead of run:"
    )
    for reason in _setup_failures:
        terminalreporter.write_line(f"  {reason}")
