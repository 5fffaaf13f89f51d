"""
Convenience factory methods for common Result failures.

Eliminates boilerplate for the failure kinds a scan produces:

    # Instead of:
    Result.failure(ErrorCode.MISSING_PUBLIC_KEY, "Encrypted key", source=path)

    # Write:
    ResultFailures.missing_public_key(path, "Encrypted key")
"""

from __future__ import annotations

from railway.failure import ErrorCode
from railway.result import Result


class ResultFailures:
    """Factory methods for the failures adapters raise most often."""

    @staticmethod
    def file_too_large(path: str, size: int, limit: int) -> Result:
        """The file is larger than the configured limit."""
        return Result.failure(
            ErrorCode.FILE_TOO_LARGE,
            f"File is {size} bytes, larger than the maximum allowed ({limit} bytes)",
            source=path,
        )

    @staticmethod
    def unparsable_object(path: str, message: str, exception: BaseException | None = None) -> Result:
        """A PEM block cannot be decoded as its declared kind."""
        return Result.failure(ErrorCode.UNPARSABLE_OBJECT, message, exception, source=path)

    @staticmethod
    def missing_public_key(path: str, message: str, exception: BaseException | None = None) -> Result:
        """An object decoded but yields no public-key bytes."""
        return Result.failure(ErrorCode.MISSING_PUBLIC_KEY, message, exception, source=path)

    @staticmethod
    def traversal_error(path: str, message: str, exception: BaseException | None = None) -> Result:
        """A traversal root is missing or cannot be listed."""
        return Result.failure(ErrorCode.TRAVERSAL_ERROR, message, exception, source=path)

    @staticmethod
    def file_limit_exceeded(count: int, limit: int) -> Result:
        """Traversal found more files than allowed."""
        return Result.failure(
            ErrorCode.FILE_LIMIT_EXCEEDED,
            f"Found more than {limit} files ({count} so far); raise the limit or allow unlimited files",
        )

    @staticmethod
    def technical_error(message: str, exception: BaseException | None = None) -> Result:
        """Unexpected failure while running a stage."""
        return Result.failure(ErrorCode.TECHNICAL_ERROR, message, exception)


    @staticmethod
    def configuration_error(message: str, exception: BaseException | None = None) -> Result:
        """Settings or command-line options failed validation."""
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, f"Configuration error: {message}", exception)
