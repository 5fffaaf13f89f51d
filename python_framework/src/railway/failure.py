"""
Failure description — structured error information for the failure track.

Every failure carries an ErrorCode, a human-readable message, the source
path it belongs to (when there is one) and the underlying exception.

Enum + frozen dataclass gives us __eq__, __hash__ and __repr__ for free,
and Enum members are singleton-comparable with `is`.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """
    Structured error codes for the failure track.

    Split by who owns the failure:
    - Scan errors: recovered locally, reported as warnings, never fatal
    - Collaborator errors: traversal / configuration problems that end a run
    """

    # --- Scan errors (per file / per object, recoverable) ---
    UNREADABLE_FILE = "UNREADABLE_FILE"
    """The file could not be opened or read."""

    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    """The file exceeds the configured size limit and was not read."""

    UNPARSABLE_OBJECT = "UNPARSABLE_OBJECT"
    """A PEM block could not be decoded as its declared kind."""

    MISSING_PUBLIC_KEY = "MISSING_PUBLIC_KEY"
    """A key, CSR or certificate yields no recoverable public-key bytes."""

    CONFLICTING_BINDING = "CONFLICTING_BINDING"
    """More than one key (or CSR) maps to the same public key."""

    DUPLICATE_CERTIFICATE = "DUPLICATE_CERTIFICATE"
    """The same certificate content was supplied more than once."""

    AMBIGUOUS_ISSUER = "AMBIGUOUS_ISSUER"
    """Several candidate issuer certificates share the issuer name."""

    CYCLIC_CHAIN = "CYCLIC_CHAIN"
    """The issuer graph loops back onto a certificate already in the chain."""

    # --- Collaborator errors (fatal for the run) ---
    TRAVERSAL_ERROR = "TRAVERSAL_ERROR"
    """A traversal root does not exist or cannot be listed."""

    FILE_LIMIT_EXCEEDED = "FILE_LIMIT_EXCEEDED"
    """Traversal produced more paths than the configured maximum."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid settings or command line options."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected failure while running a stage."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, source path,
    optional exception and timestamp.

    >>> desc = FailureDescription(ErrorCode.UNPARSABLE_OBJECT, "bad block", source="a.pem")
    >>> desc.code
    <ErrorCode.UNPARSABLE_OBJECT: 'UNPARSABLE_OBJECT'>
    >>> desc.source
    'a.pem'
    """

    code: ErrorCode
    message: str
    source: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def create(
        code: ErrorCode,
        message: str,
        source: Optional[str] = None,
        exception: Optional[BaseException] = None,
    ) -> FailureDescription:
        """Factory method mirroring the Result.failure() signature."""
        return FailureDescription(code=code, message=message, source=source, exception=exception)

    def with_source(self, source: str) -> FailureDescription:
        """Return a copy attributed to `source` (keeps code, message and exception)."""
        return FailureDescription(
            code=self.code,
            message=self.message,
            source=source,
            exception=self.exception,
            timestamp=self.timestamp,
        )

    def full_stack_trace(self) -> str:
        """Full stack trace string including the message and exception chain."""
        if self.exception is None:
            return self.message
        tb = "".join(traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__))
        return f"{self.message}\n{tb}"
