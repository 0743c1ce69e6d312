"""Pass-through to pytest for running the browser scenarios."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import SuiteConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_TARGETS = ("tests/e2e",)
ARTIFACTS_DIR = Path("test-results")


@dataclass
class RunOptions:
    """Options of a single ``run`` invocation."""

    targets: Sequence[str] = ()
    keyword: Optional[str] = None
    headed: bool = False
    debug: bool = False
    workers: Optional[int] = None
    retries: Optional[int] = None
    env_file: Optional[Path] = None
    config_path: Optional[Path] = None
    extra_args: Sequence[str] = field(default_factory=tuple)


def resolve_retries(config: SuiteConfig, options: RunOptions) -> int:
    if options.retries is not None:
        return options.retries
    return 2 if config.ci else 0


def resolve_workers(config: SuiteConfig, options: RunOptions) -> Optional[str]:
    """Return the pytest-xdist ``-n`` value, or ``None`` to run in process."""

    if options.debug:
        return None
    if options.workers is not None:
        return None if options.workers <= 1 else str(options.workers)
    return None if config.ci else "auto"


def build_pytest_command(config: SuiteConfig, options: RunOptions) -> list[str]:
    command = [sys.executable, "-m", "pytest", *(options.targets or DEFAULT_TARGETS)]
    command += ["-m", "e2e"]
    if options.keyword:
        command += ["-k", options.keyword]
    command += ["--browser", config.browser.name]
    if options.headed or options.debug or not config.browser.headless:
        command.append("--headed")
    if config.browser.slow_mo:
        command += ["--slowmo", f"{config.browser.slow_mo:g}"]
    command += [
        "--screenshot",
        "only-on-failure",
        "--tracing",
        "retain-on-failure",
        "--output",
        str(ARTIFACTS_DIR),
    ]
    retries = resolve_retries(config, options)
    if retries:
        command += ["--reruns", str(retries)]
    workers = resolve_workers(config, options)
    if workers:
        command += ["-n", workers]
    if options.env_file is not None:
        command += ["--hq-admin-env-file", str(options.env_file)]
    if options.config_path is not None:
        command += ["--hq-admin-config", str(options.config_path)]
    command += list(options.extra_args)
    return command


def build_environment(options: RunOptions, base: Optional[dict[str, str]] = None) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    if options.debug:
        env["PWDEBUG"] = "1"
    return env


def run_pytest(config: SuiteConfig, options: RunOptions) -> int:
    """Run the scenarios in a pytest subprocess and return its exit code."""

    command = build_pytest_command(config, options)
    LOGGER.info("Running %s", " ".join(command))
    completed = subprocess.run(command, env=build_environment(options), check=False)
    return completed.returncode
