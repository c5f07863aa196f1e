"""Shared fixtures for the visit index tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from revisit.visits.store import VisitStore


class FakeClock:
    """Manually advanced clock returning whole seconds."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "index.json"


@pytest.fixture
def store(store_path: Path, clock: FakeClock) -> VisitStore:
    return VisitStore(store_path, clock=clock)
