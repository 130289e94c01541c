"""Pytest configuration for test isolation.

Settings and the database client read ``FINANCE_TRACKER_*`` and
``DATABASE_URL`` from the environment (and from a ``.env`` in the working
directory). A developer's shell or ``.env`` must never point a test at a real
database, so every test starts with those variables removed and runs from its
own temporary directory.

CLI invocations configure the package logger, which is process-global; every
test starts unconfigured and gets the logger back as it found it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from finance_tracker import logging_setup

_ENV_VARS = (
    "FINANCE_TRACKER_DATABASE_URL",
    "FINANCE_TRACKER_NAMESPACE",
    "FINANCE_TRACKER_LOG_LEVEL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear tracker env vars and chdir into the test's temporary directory."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _isolate_package_logger(monkeypatch: pytest.MonkeyPatch):
    """Snapshot the ``finance_tracker`` logger and restore it after the test."""

    logger = logging.getLogger("finance_tracker")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
