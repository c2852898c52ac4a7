"""Shared fixtures for docbudget tests."""

import os
import random
from datetime import datetime, timezone
from pathlib import Path

import pytest

from docbudget.core.library import CandidateFile, FileCategory
from docbudget.core.token_management import clear_token_cache


@pytest.fixture(autouse=True)
def _clear_token_cache():
    """Keep the module-level token cache from leaking between tests."""
    clear_token_cache()
    yield
    clear_token_cache()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write a file under tmp_path, optionally with a fixed modification time."""

    def _write(rel_path: str, content: str, mtime: float = None) -> Path:
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def make_candidate():
    """Build CandidateFile instances for loads that use an injected reader."""

    def _make(
        path: str,
        priority: float,
        *,
        category: FileCategory = FileCategory.DOCUMENTATION,
        modified: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
        size: int = 100,
    ) -> CandidateFile:
        return CandidateFile(
            path=path,
            category=category,
            priority=priority,
            last_modified=modified,
            size=size,
        )

    return _make


class RecordingSleep:
    """Async sleep stand-in that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
