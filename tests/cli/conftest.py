"""Fixtures for CLI tests."""

import logging
from pathlib import Path
from typing import Iterator

import pytest
from typer.testing import CliRunner

from cronledger.config import CronLedgerConfig

HOOK_MODULE = '''
def ping(metadata):
    print("pong")
    return True


def flaky(metadata):
    raise RuntimeError("always broken")


def register(scheduler):
    scheduler.register("ping", ping, "*/5 * * * *", description="Ping")
    scheduler.register("flaky", flaky, "0 * * * *")
    scheduler.register("broken", ping, "0 25 * * *")
    scheduler.register("paused", ping, "hourly", active=False)
'''


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo the root logger setup done by the CLI callback."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CronLedgerConfig:
    """Point the CLI at a temporary config and data directory."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    monkeypatch.setenv("CRONLEDGER_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("CRONLEDGER_DATA_DIR", str(data_dir))
    monkeypatch.setenv("COLUMNS", "200")
    return CronLedgerConfig(config_dir=config_dir, data_dir=data_dir)


@pytest.fixture
def hook(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, cli_config: CronLedgerConfig) -> str:
    """Job registration hook importable by the CLI."""
    (tmp_path / "cli_hook_jobs.py").write_text(HOOK_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_hook_jobs:register"
