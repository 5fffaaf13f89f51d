"""
Railway-Oriented Programming (ROP) support for sslchains.

Explicit, composable, functional error handling — stages return Result
instead of raising, and every failure carries the path it came from.

    from railway import Result, ErrorCode

    def check_size(path: str, size: int, limit: int) -> Result[int]:
        if size > limit:
            return Result.failure(ErrorCode.FILE_TOO_LARGE, "too big", source=path)
        return Result.success(size)

    records, failures = Result.partition(deriver.derive(obj) for obj in document)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.result_failures import ResultFailures
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultFailures",
    "ResultAssertions",
]

__version__ = "1.1.0"
