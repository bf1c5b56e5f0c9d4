"""Shared pytest configuration for recurrence_lite tests."""

import logging
from typing import Any

import pytest

from recurrence_lite.lite_logging import LITE_MODULES, THIRD_PARTY_LEVELS


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")


@pytest.fixture(autouse=True)
def restore_logger_levels() -> Any:
    """Keep logging level changes made by a test from leaking into the next."""
    names = ["", *LITE_MODULES, *THIRD_PARTY_LEVELS]
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
