"""
Execution contexts — separate WHAT (pure logic) from HOW (side effects).

  - Pure functions describe WHAT should happen → return Result[T]
  - ExecutionContext describes HOW it happens → logging, timing
  - They are never mixed

Usage:
    ctx = LoggingExecutionContext(operation="Scan")
    result = ctx.execute(lambda: run_pipeline(source, reader, deriver, settings))
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, TypeVar, runtime_checkable

from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result

T = TypeVar("T")
logger = logging.getLogger("railway.execution")


@runtime_checkable
class ExecutionContext(Protocol):
    """
    Protocol for execution contexts.

    Any class implementing execute(computation) satisfies this protocol
    via structural typing — no explicit inheritance needed.
    """

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        """Execute a Result-returning computation within this context."""
        ...


class NoOpExecutionContext:
    """
    Passthrough execution context — runs computation without any wrapper.

    Use for unit tests and for callers that do their own logging.
    """

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Execution context that logs entry, exit, duration and result state.

    Wraps another context (decorator pattern). An exception escaping the
    computation is turned into a TECHNICAL_ERROR failure.

        ctx = LoggingExecutionContext(operation="Scan", log_level=logging.DEBUG)
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
        log_level: int = logging.INFO,
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation
        self._log_level = log_level

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        logger.log(self._log_level, "[%s] Starting execution", self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(
                "[%s] Execution failed after %.3fs: %s",
                self._operation,
                elapsed,
                e,
            )
            return Failure(
                FailureDescription(
                    ErrorCode.TECHNICAL_ERROR,
                    f"Execution failed: {e}",
                    exception=e,
                )
            )

        logger.log(
            self._log_level,
            "[%s] Completed in %.3fs — %s",
            self._operation,
            time.monotonic() - start,
            _describe(result),
        )
        return result


def _describe(result: Result[T]) -> str:
    """SUCCESS, or FAILURE with the error code and the path it is attributed to."""
    if result.is_success():
        return "SUCCESS"
    error = result.error()
    where = f" at {error.source}" if error.source else ""
    return f"FAILURE ({error.code.value}{where})"
