"""
Rendering adapter — turn a ScanResult into text for stdout.

Adapter layer — implements the Renderer port three ways:

  TreeRenderer       one block per entity, chains drawn as an indented ladder
  OneLineRenderer    one row per entity, chains as '|'-joined paths
  JsonRenderer       pydantic TypeAdapter dump of entities + diagnostics

Renderers only read ChainLink views (path + self-signed flag) and chain
status; no cryptographic object is touched here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import TypeAdapter

from sslchains.domain.models import CertificateChain, ChainStatus, Entity, ScanResult

NOT_AVAILABLE = "n/a"
MISSING = "-"
ONELINE_HEADER = "name key request certificate_chain"

_STATUS_MARKERS = {
    ChainStatus.SELF_SIGNED: " (self-signed)",
    ChainStatus.INCOMPLETE: " (incomplete)",
    ChainStatus.CYCLIC: " (cyclic)",
}


def _join_lines(lines: list[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


class TreeRenderer:
    """
    Default human-readable output.

        example.com
          * Key: site.key
          * CSR: site.csr
          * Certificates:
            - site.crt
              > intermediate.crt
                > root.crt (self-signed)
    """

    def render(self, result: ScanResult) -> str:
        lines: list[str] = []
        for entity in result.entities:
            lines.extend(self._entity_lines(entity))
        return _join_lines(lines)

    def _entity_lines(self, entity: Entity) -> list[str]:
        lines = [
            entity.display_name,
            f"  * Key: {entity.key_path or NOT_AVAILABLE}",
            f"  * CSR: {entity.csr_path or NOT_AVAILABLE}",
        ]
        if not entity.chains:
            lines.append(f"  * Certificates: {NOT_AVAILABLE}")
            return lines

        lines.append("  * Certificates:")
        for chain in entity.chains:
            lines.extend(self._chain_lines(chain))
        return lines

    def _chain_lines(self, chain: CertificateChain) -> list[str]:
        lines = []
        last = len(chain) - 1
        for position, link in enumerate(chain.links):
            indent = " " * (4 + 2 * position)
            marker = "-" if position == 0 else ">"
            suffix = _STATUS_MARKERS[chain.status] if position == last else ""
            lines.append(f"{indent}{marker} {link.source_path}{suffix}")
        return lines


class OneLineRenderer:
    """
    Script-friendly output: one space-separated row per entity.

        name key request certificate_chain
        example.com site.key site.csr site.crt|intermediate.crt|root.crt|(self-signed)
    """

    def __init__(self, header: bool = True) -> None:
        self._header = header

    def render(self, result: ScanResult) -> str:
        lines = [ONELINE_HEADER] if self._header else []
        lines.extend(self._row(entity) for entity in result.entities)
        return _join_lines(lines)

    def _row(self, entity: Entity) -> str:
        fields = [
            entity.display_name,
            entity.key_path or MISSING,
            entity.csr_path or MISSING,
        ]
        if entity.chains:
            fields.extend(self._chain_field(chain) for chain in entity.chains)
        else:
            fields.append(MISSING)
        return " ".join(fields)

    def _chain_field(self, chain: CertificateChain) -> str:
        parts = [link.source_path for link in chain.links]
        if chain.status is ChainStatus.SELF_SIGNED:
            parts.append("(self-signed)")
        return "|".join(parts)


# ─────────────────────── JSON views ───────────────────────


@dataclass(frozen=True, slots=True)
class LinkView:
    path: str
    self_signed: bool


@dataclass(frozen=True, slots=True)
class ChainView:
    status: str
    links: list[LinkView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class EntityView:
    name: str
    fingerprint: str
    key: str | None = None
    csr: str | None = None
    chains: list[ChainView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DiagnosticView:
    code: str
    message: str
    paths: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ScanView:
    entities: list[EntityView] = field(default_factory=list)
    diagnostics: list[DiagnosticView] = field(default_factory=list)

    @staticmethod
    def from_result(result: ScanResult) -> ScanView:
        return ScanView(
            entities=[
                EntityView(
                    name=entity.display_name,
                    fingerprint=entity.fingerprint,
                    key=entity.key_path,
                    csr=entity.csr_path,
                    chains=[
                        ChainView(
                            status=chain.status.value,
                            links=[LinkView(link.source_path, link.self_signed) for link in chain.links],
                        )
                        for chain in entity.chains
                    ],
                )
                for entity in result.entities
            ],
            diagnostics=[
                DiagnosticView(code=d.code.value, message=d.message, paths=list(d.paths))
                for d in result.diagnostics
            ],
        )


_SCAN_VIEW_ADAPTER = TypeAdapter(ScanView)


class JsonRenderer:
    """Machine-readable output, including the diagnostics the text formats leave to stderr."""

    def __init__(self, indent: int | None = 2) -> None:
        self._indent = indent

    def render(self, result: ScanResult) -> str:
        payload = _SCAN_VIEW_ADAPTER.dump_json(ScanView.from_result(result), indent=self._indent)
        return payload.decode("utf-8") + "\n"
