"""
Grouping engine — cluster identity records into entities.

Domain layer — pure logic over already-derived records; no I/O, no crypto.

Two independent identity axes are indexed here:
  1. Public-key fingerprint: keys, CSRs and certificates sharing one
     fingerprint belong to the same entity (one real-world key pair).
  2. Subject name: every certificate is indexed by its subject so the chain
     assembler can resolve issuer links. This is plain name matching
     (trust-naive); cryptographic checks are optional and happen later.

All "first wins" decisions use the records' input order, which is sorted
explicitly rather than relying on the order records arrive in.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from railway import ErrorCode

from sslchains.domain.models import (
    CertificateRecord,
    Diagnostic,
    Fingerprint,
    IdentityRecord,
    InputOrder,
    KeyRecord,
    RequestRecord,
    StandaloneCertificates,
)


@dataclass(slots=True)
class EntityDraft:
    """
    Mutable, in-progress entity — only exists while a scan is grouping/assembling.

    `first_seen` is the earliest input position of any member and decides
    where the finished entity appears in the output.
    """

    fingerprint: Fingerprint
    first_seen: InputOrder
    key: KeyRecord | None = None
    request: RequestRecord | None = None
    leaves: list[CertificateRecord] = field(default_factory=list)

    @property
    def anchored(self) -> bool:
        """True when a key or CSR backs this entity."""
        return self.key is not None or self.request is not None

    def touch(self, order: InputOrder) -> None:
        if order < self.first_seen:
            self.first_seen = order


@dataclass(slots=True)
class GroupingState:
    """
    Everything grouping learned, owned by a single scan.

    Passed by reference into chain assembly; never shared between scans.
    """

    entities: dict[Fingerprint, EntityDraft] = field(default_factory=dict)
    pool: list[CertificateRecord] = field(default_factory=list)
    issuers_by_subject: dict[str, list[CertificateRecord]] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def candidate_issuers(self, certificate: CertificateRecord) -> list[CertificateRecord]:
        """Pool certificates whose subject equals `certificate`'s issuer, in input order."""
        return list(self.issuers_by_subject.get(certificate.issuer.match_key, ()))

    def ordered_entities(self) -> list[EntityDraft]:
        return sorted(self.entities.values(), key=lambda draft: draft.first_seen)


def _record_order(record: IdentityRecord) -> InputOrder:
    return record.order


def group_records(
    records: Iterable[IdentityRecord],
    standalone: StandaloneCertificates = StandaloneCertificates.ALL,
) -> GroupingState:
    """
    Build entity drafts and the certificate pool from derived records.

    Keys and CSRs are bound first so that certificates, wherever they sit in
    the input, attach to the entity of their key pair. A certificate with no
    key/CSR becomes (or joins) a standalone entity according to `standalone`.
    """
    ordered = sorted(records, key=_record_order)
    state = GroupingState()

    for record in ordered:
        match record:
            case KeyRecord():
                _bind_key(state, record)
            case RequestRecord():
                _bind_request(state, record)

    seen: dict[str, CertificateRecord] = {}
    for record in ordered:
        if not isinstance(record, CertificateRecord):
            continue
        first = seen.get(record.certificate_id)
        if first is not None:
            state.diagnostics.append(
                Diagnostic(
                    code=ErrorCode.DUPLICATE_CERTIFICATE,
                    message=f"Same certificate as {first.source_path}; only the first copy is used",
                    paths=(record.source_path, first.source_path),
                )
            )
            continue
        seen[record.certificate_id] = record
        _add_certificate(state, record, standalone)

    return state


def _draft_for(state: GroupingState, fingerprint: Fingerprint, order: InputOrder) -> EntityDraft:
    draft = state.entities.get(fingerprint)
    if draft is None:
        draft = EntityDraft(fingerprint=fingerprint, first_seen=order)
        state.entities[fingerprint] = draft
    else:
        draft.touch(order)
    return draft


def _bind_key(state: GroupingState, record: KeyRecord) -> None:
    draft = _draft_for(state, record.fingerprint, record.order)
    if draft.key is None:
        draft.key = record
        return
    state.diagnostics.append(
        Diagnostic(
            code=ErrorCode.CONFLICTING_BINDING,
            message=f"Private key duplicates the key pair already bound from {draft.key.source_path}; keeping the first",
            paths=(record.source_path, draft.key.source_path),
        )
    )


def _bind_request(state: GroupingState, record: RequestRecord) -> None:
    draft = _draft_for(state, record.fingerprint, record.order)
    if draft.request is None:
        draft.request = record
        return
    state.diagnostics.append(
        Diagnostic(
            code=ErrorCode.CONFLICTING_BINDING,
            message=f"Certificate request duplicates the key pair already bound from {draft.request.source_path}; keeping the first",
            paths=(record.source_path, draft.request.source_path),
        )
    )


def _add_certificate(
    state: GroupingState,
    record: CertificateRecord,
    standalone: StandaloneCertificates,
) -> None:
    state.pool.append(record)
    state.issuers_by_subject.setdefault(record.subject.match_key, []).append(record)

    draft = state.entities.get(record.fingerprint)
    if draft is None and _creates_standalone(record, standalone):
        draft = _draft_for(state, record.fingerprint, record.order)
    if draft is not None:
        draft.touch(record.order)
        draft.leaves.append(record)


def _creates_standalone(record: CertificateRecord, standalone: StandaloneCertificates) -> bool:
    match standalone:
        case StandaloneCertificates.ALL:
            return True
        case StandaloneCertificates.EXPLICIT:
            return record.explicit
        case StandaloneCertificates.NONE:
            return False
    return False
