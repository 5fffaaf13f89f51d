"""
Chain assembler — walk issuer links and finalise entities.

Domain layer — consumes a GroupingState and produces the immutable ScanResult.

For every entity (earliest member first) and every leaf (input order):

  leaf → issuer → issuer's issuer → ...

The walk ends at a self-signed certificate (SELF_SIGNED), at an issuer that
is not among the inputs (INCOMPLETE — a normal outcome, not a warning), or
when a certificate already in the chain comes round again (CYCLIC).

Issuer lookup is name matching on the subject index. When a SignatureVerifier
is supplied, candidates whose key does not validate the signature are dropped
before the first-in-input-order tie-break.
"""

from __future__ import annotations

from railway import ErrorCode

from sslchains.domain.grouping import EntityDraft, GroupingState
from sslchains.domain.models import (
    CertificateChain,
    CertificateRecord,
    ChainStatus,
    Diagnostic,
    Entity,
    ScanResult,
)
from sslchains.domain.ports import SignatureVerifier

DEFAULT_PLACEHOLDER = "(unknown)"


class _DiagnosticLog:
    """
    Ordered diagnostics. Grouping's are kept as given; chain-walk warnings are
    suppressed on repeat, since a shared intermediate is walked once per leaf.
    """

    def __init__(self, initial: list[Diagnostic]) -> None:
        self._items: list[Diagnostic] = list(initial)
        self._seen: set[Diagnostic] = set()

    def add(self, diagnostic: Diagnostic) -> None:
        if diagnostic in self._seen:
            return
        self._seen.add(diagnostic)
        self._items.append(diagnostic)

    def freeze(self) -> tuple[Diagnostic, ...]:
        return tuple(self._items)


def assemble(
    state: GroupingState,
    placeholder: str = DEFAULT_PLACEHOLDER,
    verifier: SignatureVerifier | None = None,
    prefer_subject_alt_name: bool = False,
) -> ScanResult:
    """Build every entity's chains, resolve display names and freeze the result."""
    diagnostics = _DiagnosticLog(state.diagnostics)
    entities: list[Entity] = []

    for draft in state.ordered_entities():
        leaves = sorted(draft.leaves, key=lambda record: record.order)
        chains = tuple(build_chain(leaf, state, diagnostics, verifier) for leaf in leaves)
        entities.append(
            Entity(
                display_name=resolve_display_name(draft, chains, placeholder, prefer_subject_alt_name),
                fingerprint=draft.fingerprint,
                key_path=draft.key.source_path if draft.key else None,
                csr_path=draft.request.source_path if draft.request else None,
                chains=chains,
            )
        )

    return ScanResult(entities=tuple(entities), diagnostics=diagnostics.freeze())


def build_chain(
    leaf: CertificateRecord,
    state: GroupingState,
    diagnostics: _DiagnosticLog,
    verifier: SignatureVerifier | None = None,
) -> CertificateChain:
    """Walk from `leaf` up through the pool until a terminal condition is reached."""
    records = [leaf]
    visited = {leaf.certificate_id}
    current = leaf

    while True:
        if current.self_signed:
            return CertificateChain(records=tuple(records), status=ChainStatus.SELF_SIGNED)

        candidates = _issuer_candidates(current, state, verifier)
        if not candidates:
            return CertificateChain(records=tuple(records), status=ChainStatus.INCOMPLETE)

        issuer = candidates[0]
        if len(candidates) > 1:
            diagnostics.add(
                Diagnostic(
                    code=ErrorCode.AMBIGUOUS_ISSUER,
                    message=(
                        f"{len(candidates)} certificates match issuer '{current.issuer.text}'; "
                        f"using {issuer.source_path}"
                    ),
                    paths=(current.source_path, *(c.source_path for c in candidates)),
                )
            )

        if issuer.certificate_id in visited:
            diagnostics.add(
                Diagnostic(
                    code=ErrorCode.CYCLIC_CHAIN,
                    message=f"Issuer chain loops back to {issuer.source_path}; chain truncated",
                    paths=tuple(r.source_path for r in records),
                )
            )
            return CertificateChain(records=tuple(records), status=ChainStatus.CYCLIC)

        records.append(issuer)
        visited.add(issuer.certificate_id)
        current = issuer


def _issuer_candidates(
    certificate: CertificateRecord,
    state: GroupingState,
    verifier: SignatureVerifier | None,
) -> list[CertificateRecord]:
    candidates = state.candidate_issuers(certificate)
    if verifier is None:
        return candidates
    return [c for c in candidates if verifier.is_issued_by(certificate, c)]


# ─────────────────────── Display Names ───────────────────────


def preferred_dns_name(dns_names: tuple[str, ...]) -> str | None:
    """First SAN DNS name not starting with 'www.', else the first one."""
    for name in dns_names:
        if not name.lower().startswith("www."):
            return name
    return dns_names[0] if dns_names else None


def resolve_display_name(
    draft: EntityDraft,
    chains: tuple[CertificateChain, ...],
    placeholder: str = DEFAULT_PLACEHOLDER,
    prefer_subject_alt_name: bool = False,
) -> str:
    """
    Pick a human-readable name for an entity.

    Order of preference:
      1. (optional) a SAN DNS name of the first chain's leaf
      2. the leaf subject's common name
      3. the full leaf subject text
      4. the CSR subject's common name (entities without certificates)
      5. the placeholder
    """
    if chains:
        leaf = chains[0].leaf
        if prefer_subject_alt_name:
            dns_name = preferred_dns_name(leaf.dns_names)
            if dns_name:
                return dns_name
        if leaf.subject.common_name:
            return leaf.subject.common_name
        if leaf.subject.text:
            return leaf.subject.text
    if draft.request is not None and draft.request.subject.common_name:
        return draft.request.subject.common_name
    return placeholder
