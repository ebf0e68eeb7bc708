"""Job executor for invoking job callbacks.

The JobExecutor resolves a job's callback, invokes it with the job
metadata and turns whatever happens (return value, printed output,
raised exception) into a :class:`CallbackResult` the scheduler can
record in the ledger.
"""

import asyncio
import contextlib
import importlib
import inspect
import io
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cronledger.scheduler.job import JobCallback

logger = logging.getLogger(__name__)

STALE_CALLBACK_ERROR = "Job callback is no longer callable"


@dataclass
class CallbackResult:
    """Outcome of invoking a job callback.

    Attributes:
        success: Truthiness of the callback's return value; False if it raised
        output: Text the callback printed to stdout
        error: Error message when the callback raised
        return_value: The value the callback returned
    """

    success: bool
    output: str = ""
    error: Optional[str] = None
    return_value: Any = None


def resolve_import_path(path: str) -> Any:
    """Import the object named by a ``"package.module:attribute"`` path.

    Args:
        path: Module path and attribute, separated by a colon. The
            attribute may be dotted (``"pkg.mod:Class.method"``).

    Returns:
        The imported object

    Raises:
        ValueError: If the path has no colon
        ImportError: If the module cannot be imported
        AttributeError: If the attribute does not exist
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'package.module:attribute', got '{path}'")

    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target


def _accepts_argument(func: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    for parameter in signature.parameters.values():
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


async def _await(awaitable: Any) -> Any:
    return await awaitable


class JobExecutor:
    """Invokes job callbacks and captures their outcome.

    Callbacks receive the job metadata as their only argument; callbacks
    that take no positional parameters are called without it. Coroutine
    functions are run to completion on a fresh event loop.

    Example:
        executor = JobExecutor()
        result = executor.execute(send_report, {"to": "ops@example.com"})
        if not result.success:
            print(result.error)
    """

    def resolve(self, callback: JobCallback) -> Optional[Callable[..., Any]]:
        """Resolve a callback to something invocable.

        Args:
            callback: A callable or a ``"module:attribute"`` import path

        Returns:
            The callable, or None if it cannot be resolved
        """
        if isinstance(callback, str):
            try:
                callback = resolve_import_path(callback)
            except (ValueError, ImportError, AttributeError) as e:
                logger.debug(f"Cannot resolve callback '{callback}': {e}")
                return None
        return callback if callable(callback) else None

    def is_invocable(self, callback: JobCallback) -> bool:
        """Check whether a callback currently resolves to a callable."""
        return self.resolve(callback) is not None

    def execute(self, callback: JobCallback, metadata: Any = None) -> CallbackResult:
        """Invoke a callback and capture its outcome.

        Exceptions raised by the callback are recorded, not propagated.

        Args:
            callback: A callable or a ``"module:attribute"`` import path
            metadata: Value passed to the callback

        Returns:
            Callback result
        """
        func = self.resolve(callback)
        if func is None:
            return CallbackResult(success=False, error=STALE_CALLBACK_ERROR)

        buffer = io.StringIO()
        try:
            with contextlib.redirect_stdout(buffer):
                value = func(metadata) if _accepts_argument(func) else func()
                if inspect.isawaitable(value):
                    value = asyncio.run(_await(value))
        except Exception as e:
            logger.warning(f"Job callback raised {type(e).__name__}: {e}")
            return CallbackResult(
                success=False,
                output=buffer.getvalue(),
                error=f"Exception during execution: {e}",
            )

        return CallbackResult(
            success=bool(value),
            output=buffer.getvalue(),
            return_value=value,
        )
