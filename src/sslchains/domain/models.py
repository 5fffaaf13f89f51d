"""
Domain models — immutable data structures for PEM objects, identities,
certificate chains and the final scan result.

These are pure value objects with no behavior beyond small derived
properties. Everything a renderer needs is reachable from ScanResult
without touching cryptographic objects.

All models are frozen dataclasses (immutable). The only mutable structure,
the per-entity draft used while grouping, lives in domain.grouping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import NewType

from railway import ErrorCode, FailureDescription

Fingerprint = NewType("Fingerprint", str)
"""Hex SHA-256 of a DER SubjectPublicKeyInfo — equal fingerprints mean the same key pair."""

InputOrder = tuple[int, int]
"""(file_index, block_index) — position of an object in the caller's input order."""


@unique
class PemKind(Enum):
    """The three kinds of PEM object the engine understands."""

    KEY = "key"
    CERTIFICATE_REQUEST = "certificate_request"
    CERTIFICATE = "certificate"


@unique
class StandaloneCertificates(Enum):
    """Which certificates without a matching key/CSR become entities of their own."""

    ALL = "all"
    EXPLICIT = "explicit"
    NONE = "none"


@unique
class ChainStatus(Enum):
    """How the walk up the issuer links ended."""

    SELF_SIGNED = "self-signed"
    INCOMPLETE = "incomplete"
    CYCLIC = "cyclic"


@dataclass(frozen=True, slots=True)
class InputFile:
    """
    One candidate path handed over by traversal.

    `explicit` is True when the caller named the path directly rather than
    traversal discovering it inside a directory.
    """

    index: int
    path: str
    explicit: bool = True


@dataclass(frozen=True, slots=True)
class PemObject:
    """
    A typed PEM block extracted from a file.

    `raw_block` is the armored text exactly as found, `der` its decoded body.
    Consumed by the identity deriver, then discarded.
    """

    kind: PemKind
    source_path: str
    raw_block: bytes = field(repr=False)
    der: bytes = field(repr=False)
    label: str = ""
    headers: dict[str, str] = field(default_factory=dict, compare=False)
    order: InputOrder = (0, 0)
    explicit: bool = True

    @property
    def is_legacy_encrypted(self) -> bool:
        """True for traditional OpenSSL encrypted keys (Proc-Type: 4,ENCRYPTED)."""
        return "ENCRYPTED" in self.headers.get("Proc-Type", "")


@dataclass(frozen=True, slots=True)
class DistinguishedName:
    """
    An X.509 name.

    `text` is the verbatim RFC 4514 rendering kept for display; equality and
    hashing use only `match_key`, the RFC 5280 normalised comparison form.
    """

    text: str = field(compare=False)
    match_key: str = field(repr=False)
    common_name: str | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class KeyRecord:
    """A private key reduced to its public-key identity."""

    fingerprint: Fingerprint
    source_path: str
    order: InputOrder = (0, 0)


@dataclass(frozen=True, slots=True)
class RequestRecord:
    """A CSR reduced to its public-key identity plus its stated subject."""

    fingerprint: Fingerprint
    subject: DistinguishedName
    source_path: str
    order: InputOrder = (0, 0)


@dataclass(frozen=True, slots=True)
class CertificateRecord:
    """
    A certificate's two identity axes.

    `fingerprint` ties it to a key/CSR; `subject`/`issuer` tie it to other
    certificates. `certificate_id` is the SHA-256 of the certificate DER.
    `certificate` keeps the parsed object for optional signature checks and
    takes no part in equality.
    """

    fingerprint: Fingerprint
    subject: DistinguishedName
    issuer: DistinguishedName
    self_signed: bool
    source_path: str
    certificate_id: str
    order: InputOrder = (0, 0)
    explicit: bool = True
    dns_names: tuple[str, ...] = ()
    certificate: object | None = field(default=None, repr=False, compare=False)


IdentityRecord = KeyRecord | RequestRecord | CertificateRecord


@dataclass(frozen=True, slots=True)
class ChainLink:
    """Renderer-facing view of one chain position."""

    source_path: str
    self_signed: bool


@dataclass(frozen=True, slots=True)
class CertificateChain:
    """
    Index 0 is the leaf; increasing index walks up through the issuers.

    The last record is either self-signed, an issuer-less dead end
    (INCOMPLETE) or the point where a loop was detected (CYCLIC).
    """

    records: tuple[CertificateRecord, ...]
    status: ChainStatus

    @property
    def leaf(self) -> CertificateRecord:
        return self.records[0]

    @property
    def links(self) -> tuple[ChainLink, ...]:
        return tuple(ChainLink(r.source_path, r.self_signed) for r in self.records)

    @property
    def is_complete(self) -> bool:
        return self.status is ChainStatus.SELF_SIGNED

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True, slots=True)
class Entity:
    """
    One real-world key pair and everything found for it.

    `key_path` and `csr_path` hold at most one value each; `chains` are in
    input-encounter order of their leaf certificates.
    """

    display_name: str
    fingerprint: Fingerprint
    key_path: str | None = None
    csr_path: str | None = None
    chains: tuple[CertificateChain, ...] = ()

    @property
    def is_standalone(self) -> bool:
        """True for certificate-only entities (no key and no CSR among the inputs)."""
        return self.key_path is None and self.csr_path is None


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A non-fatal warning attributed to the path(s) that caused it."""

    code: ErrorCode
    message: str
    paths: tuple[str, ...] = ()

    @staticmethod
    def from_failure(error: FailureDescription) -> Diagnostic:
        paths = (error.source,) if error.source else ()
        return Diagnostic(code=error.code, message=error.message, paths=paths)


@dataclass(frozen=True, slots=True)
class ScanResult:
    """
    The complete outcome of one scan — the hand-off to rendering.

    Ordering is deterministic: the same inputs in the same order always
    produce an equal ScanResult.
    """

    entities: tuple[Entity, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def total_chains(self) -> int:
        return sum(len(entity.chains) for entity in self.entities)

    def diagnostics_for(self, code: ErrorCode) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.code is code)
