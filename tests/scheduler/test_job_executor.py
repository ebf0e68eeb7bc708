"""Tests for the job executor."""

from pathlib import Path
from typing import Any, Dict, List

import pytest

from cronledger.scheduler.job_executor import (
    STALE_CALLBACK_ERROR,
    CallbackResult,
    JobExecutor,
    resolve_import_path,
)

CALLBACKS_MODULE = '''
class Tasks:
    @staticmethod
    def nested(metadata):
        return "nested"


def greet(metadata):
    print("hi", metadata["name"])
    return True


value = "not callable"
'''


@pytest.fixture
def executor() -> JobExecutor:
    return JobExecutor()


@pytest.fixture
def callbacks_module(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Importable module with callbacks."""
    (tmp_path / "executor_callbacks.py").write_text(CALLBACKS_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "executor_callbacks"


class TestExecute:
    """Tests for JobExecutor.execute."""

    def test_success(self, executor: JobExecutor) -> None:
        """Test a callback returning True."""
        received: List[Dict[str, Any]] = []

        def callback(metadata):
            received.append(metadata)
            return True

        result = executor.execute(callback, {"a": 1})

        assert result == CallbackResult(success=True, output="", error=None, return_value=True)
        assert received == [{"a": 1}]

    @pytest.mark.parametrize("value,success", [
        (False, False),
        (None, False),
        (0, False),
        ("", False),
        ("done", True),
        (1, True),
        ({"rows": 3}, True),
    ])
    def test_success_is_truthiness(self, executor: JobExecutor, value: Any, success: bool) -> None:
        """Test that success follows the truthiness of the return value."""
        result = executor.execute(lambda metadata: value, {})

        assert result.success is success
        assert result.error is None
        assert result.return_value == value

    def test_output_captured(self, executor: JobExecutor) -> None:
        """Test that stdout is captured."""
        def callback(metadata):
            print("line one")
            print("line two")
            return True

        assert executor.execute(callback).output == "line one\nline two\n"

    def test_exception(self, executor: JobExecutor) -> None:
        """Test that exceptions become failures."""
        def callback(metadata):
            print("before")
            raise ValueError("disk full")

        result = executor.execute(callback, {})

        assert result.success is False
        assert result.error == "Exception during execution: disk full"
        assert result.output == "before\n"

    def test_zero_argument_callback(self, executor: JobExecutor) -> None:
        """Test callbacks that take no metadata."""
        assert executor.execute(lambda: True, {"ignored": True}).success is True

    def test_keyword_only_callback(self, executor: JobExecutor) -> None:
        """Test that keyword-only parameters do not receive the metadata."""
        def callback(*, retries=3):
            return retries == 3

        assert executor.execute(callback, {}).success is True

    def test_coroutine_function(self, executor: JobExecutor) -> None:
        """Test that coroutine callbacks are run to completion."""
        async def callback(metadata):
            print("async")
            return metadata["ok"]

        result = executor.execute(callback, {"ok": True})
        assert result.success is True
        assert result.output == "async\n"

    def test_coroutine_exception(self, executor: JobExecutor) -> None:
        """Test exceptions raised inside coroutines."""
        async def callback(metadata):
            raise RuntimeError("timeout")

        result = executor.execute(callback, {})
        assert result.success is False
        assert result.error == "Exception during execution: timeout"

    def test_builtin_callable(self, executor: JobExecutor) -> None:
        """Test a builtin whose signature may not be introspectable."""
        assert executor.execute(bool, {"x": 1}).success is True

    def test_unresolvable(self, executor: JobExecutor) -> None:
        """Test a callback that cannot be resolved."""
        result = executor.execute("no_such_module_anywhere:run", {})
        assert result.success is False
        assert result.error == STALE_CALLBACK_ERROR

    def test_import_path(self, executor: JobExecutor, callbacks_module: str) -> None:
        """Test executing a callback given as an import path."""
        result = executor.execute(f"{callbacks_module}:greet", {"name": "ops"})
        assert result.success is True
        assert result.output == "hi ops\n"


class TestResolve:
    """Tests for callback resolution."""

    def test_callable(self, executor: JobExecutor) -> None:
        """Test that callables resolve to themselves."""
        assert executor.resolve(print) is print
        assert executor.is_invocable(print)

    @pytest.mark.parametrize("callback", [None, 42, "plain text", "no_such_module_anywhere:run"])
    def test_not_invocable(self, executor: JobExecutor, callback: Any) -> None:
        """Test values that do not resolve to a callable."""
        assert executor.resolve(callback) is None
        assert not executor.is_invocable(callback)

    def test_non_callable_attribute(self, executor: JobExecutor, callbacks_module: str) -> None:
        """Test an import path naming a non-callable attribute."""
        assert not executor.is_invocable(f"{callbacks_module}:value")


class TestResolveImportPath:
    """Tests for resolve_import_path."""

    def test_function(self) -> None:
        """Test importing a function from the standard library."""
        import os.path

        assert resolve_import_path("os.path:join") is os.path.join

    def test_dotted_attribute(self, callbacks_module: str) -> None:
        """Test a dotted attribute path."""
        func = resolve_import_path(f"{callbacks_module}:Tasks.nested")
        assert func({}) == "nested"

    @pytest.mark.parametrize("path", ["os.path", ":join", "os.path:"])
    def test_malformed(self, path: str) -> None:
        """Test paths without both parts."""
        with pytest.raises(ValueError):
            resolve_import_path(path)

    def test_missing_module(self) -> None:
        """Test a module that does not exist."""
        with pytest.raises(ImportError):
            resolve_import_path("no_such_module_anywhere:run")

    def test_missing_attribute(self) -> None:
        """Test an attribute that does not exist."""
        with pytest.raises(AttributeError):
            resolve_import_path("os.path:no_such_function")
