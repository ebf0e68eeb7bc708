"""Shared fixtures for cronledger tests."""

import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator

import pytest

from cronledger.config import CronLedgerConfig, clear_config_cache
from cronledger.database.connection import dispose_engines
from cronledger.scheduler.clock import Clock
from cronledger.scheduler.job_scheduler import JobScheduler


class FakeClock(Clock):
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop CRONLEDGER_* variables and cached state around every test."""
    for key in list(os.environ):
        if key.startswith("CRONLEDGER_"):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()
    dispose_engines()


@pytest.fixture
def config(tmp_path: Path) -> CronLedgerConfig:
    """Configuration with its database in a temporary directory."""
    return CronLedgerConfig(
        config_dir=tmp_path / "config",
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at midnight on Monday 2026-01-05."""
    return FakeClock(datetime(2026, 1, 5, 0, 0, 0))


@pytest.fixture
def scheduler(config: CronLedgerConfig, clock: FakeClock) -> JobScheduler:
    """Scheduler on a fresh database driven by the fake clock."""
    return JobScheduler(config, clock=clock)
