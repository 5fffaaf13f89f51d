"""
Ports — Protocol-based interfaces for the engine's collaborators.

These define WHAT the engine needs (contracts) without specifying
HOW it's done (implementation). Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the methods — no inheritance.

Scan flow:
  1. FileSource       → ordered candidate paths (traversal)
  2. ContentReader    → raw bytes per path
  3. IdentityDeriver  → fingerprinted records per PEM object
  4. SignatureVerifier (optional) → cryptographic issuer check
  5. Renderer         → text for the finished ScanResult
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from railway.result import Result

from sslchains.domain.models import (
    CertificateRecord,
    IdentityRecord,
    InputFile,
    PemObject,
    ScanResult,
)


@runtime_checkable
class FileSource(Protocol):
    """
    Port: produce the ordered list of candidate files.

    Order matters end-to-end: every "first wins" tie-break in the engine
    refers to this order. A failure here is fatal for the run.
    """

    def collect(self) -> Result[list[InputFile]]: ...


@runtime_checkable
class ContentReader(Protocol):
    """
    Port: read one candidate file.

    A failure is reported against the path and the scan moves on.
    """

    def read(self, path: str) -> Result[bytes]: ...


@runtime_checkable
class IdentityDeriver(Protocol):
    """
    Port: reduce a PEM object to its identity record.

    Keys → KeyRecord, CSRs → RequestRecord, certificates → CertificateRecord.
    Objects without recoverable public-key bytes are failures.
    """

    def derive(self, obj: PemObject) -> Result[IdentityRecord]: ...


@runtime_checkable
class SignatureVerifier(Protocol):
    """
    Port: check that `issuer`'s public key validates `certificate`'s signature.

    Optional — without a verifier, issuer resolution is name matching only.
    """

    def is_issued_by(self, certificate: CertificateRecord, issuer: CertificateRecord) -> bool: ...


@runtime_checkable
class Renderer(Protocol):
    """Port: turn a finished scan into printable text."""

    def render(self, result: ScanResult) -> str: ...
