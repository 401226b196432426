"""
Shared pytest fixtures and configuration for trackway tests.

This module provides:
- Logging/settings isolation between tests
- A small context object standing in for the class that builds a chain
- A call recorder for asserting execution order
"""

import sys
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

# Ensure trackway package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trackway.core.logging import clear_context
from trackway.core.settings import get_settings


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def isolated_observability() -> Generator[None, None, None]:
    """Reset structlog config, bound context and cached settings around each test."""
    get_settings.cache_clear()
    yield
    structlog.reset_defaults()
    clear_context()
    get_settings.cache_clear()


class Account:
    """Plain object used as a chain context."""

    min_length = 6

    def __init__(self, username: str = "Ann", password: str = "secret1") -> None:
        self.username = username
        self.password = password

    def normalise(self, value: str) -> str:
        return value.strip().lower()


@pytest.fixture
def account() -> Account:
    return Account()


class CallLog:
    """Records labelled calls so tests can assert order and counts."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, label: str, value: Any = None) -> Any:
        self.calls.append(label)
        return value


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()
