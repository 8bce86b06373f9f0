"""Shared pytest fixtures."""

from typing import Any

import pytest

from tagstash import AsyncMemoryAdapter, Repository


class RecordingSink:
    """Event sink that keeps every fired event."""

    def __init__(self) -> None:
        self.fired: list[tuple[str, Any]] = []

    def fire(self, event: str, payload: Any) -> None:
        self.fired.append((event, payload))

    def names(self) -> list[str]:
        return [event for event, _ in self.fired]


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    """Create a fresh AsyncMemoryAdapter for each test."""
    return AsyncMemoryAdapter()


@pytest.fixture
def sink() -> RecordingSink:
    """Create an event sink that records fired events."""
    return RecordingSink()


@pytest.fixture
def cache(async_adapter: AsyncMemoryAdapter, sink: RecordingSink) -> Repository:
    """Create a repository over a memory adapter, wired to the recording sink."""
    return Repository(async_adapter, events=sink)
