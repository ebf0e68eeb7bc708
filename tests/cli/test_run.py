"""Tests for the tick and run commands."""

import json
import signal
from datetime import datetime
from typing import Any

import pytest
from typer.testing import CliRunner

from cronledger.cli.exit_codes import ExitCode
from cronledger.config import CronLedgerConfig
from cronledger.database.connection import create_tables, get_db_session
from cronledger.database.models import ExecutionStatus
from cronledger.database.repositories import JobExecutionRepository
from cronledger.main import app

LONG_AGO = datetime(2020, 1, 1, 0, 0)


def make_due(config: CronLedgerConfig, *names: str) -> None:
    """Give jobs a pending execution that is already due."""
    create_tables(config)
    with get_db_session(config) as session:
        repo = JobExecutionRepository(session)
        for name in names:
            repo.create(name, ExecutionStatus.PENDING, LONG_AGO)


def latest_status(config: CronLedgerConfig, name: str, offset: int = 0) -> str:
    with get_db_session(config) as session:
        return JobExecutionRepository(session).get_history(name, limit=1, offset=offset)[0].status


class TestTick:
    """Tests for 'tick'."""

    def test_nothing_due(self, runner: CliRunner, hook: str) -> None:
        """Test a tick with no due executions."""
        result = runner.invoke(app, ["tick", "--jobs", hook])

        assert result.exit_code == 0, result.output
        assert "No jobs due." in result.output

    def test_runs_due_jobs(self, runner: CliRunner, hook: str, cli_config: CronLedgerConfig) -> None:
        """Test that due executions are run and recorded."""
        make_due(cli_config, "ping")

        result = runner.invoke(app, ["tick", "--jobs", hook])

        assert result.exit_code == 0, result.output
        assert "ping: completed" in result.output
        assert latest_status(cli_config, "ping") == "pending"
        assert latest_status(cli_config, "ping", offset=1) == "completed"

    def test_failed_job_sets_exit_code(self, runner: CliRunner, hook: str, cli_config: CronLedgerConfig) -> None:
        """Test that a failing job makes the tick fail."""
        make_due(cli_config, "ping", "flaky")

        result = runner.invoke(app, ["-q", "tick", "--jobs", hook, "--json"])

        assert result.exit_code == ExitCode.JOB_FAILED
        assert json.loads(result.stdout) == {"ping": True, "flaky": False}

    def test_limit(self, runner: CliRunner, hook: str, cli_config: CronLedgerConfig) -> None:
        """Test the batch limit."""
        make_due(cli_config, "ping", "flaky")

        result = runner.invoke(app, ["-q", "tick", "--jobs", hook, "--limit", "1", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"ping": True}


class TestRunDaemon:
    """Tests for the foreground 'run' command."""

    def test_ticks_until_stopped(
        self,
        runner: CliRunner,
        hook: str,
        cli_config: CronLedgerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that the daemon ticks and shuts down cleanly."""
        from apscheduler.schedulers.blocking import BlockingScheduler

        ticks = []

        def fake_start(self: BlockingScheduler, *args: Any, **kwargs: Any) -> None:
            for job in self.get_jobs():
                ticks.append(job.trigger.interval.total_seconds())
                job.func()
            raise KeyboardInterrupt()

        monkeypatch.setattr(BlockingScheduler, "start", fake_start)
        monkeypatch.setattr(signal, "signal", lambda *args: None)
        make_due(cli_config, "ping")

        result = runner.invoke(app, ["run", "--jobs", hook, "--interval", "30"])

        assert result.exit_code == 0, result.output
        assert "Scheduler running" in result.output
        assert "tick every 30s" in result.output
        assert "Scheduler stopped" in result.output
        assert ticks == [30.0]
        assert latest_status(cli_config, "ping", offset=1) == "completed"
