"""
PEM reader adapter — file reading + PEM block extraction.

Adapter layer — implements the ContentReader port and the PEM Object
Extractor using:
  - pathlib: size-checked file reads
  - re: locating BEGIN/END delimited blocks (labels must match)
  - asn1crypto.pem: decoding each block body and its RFC 1421 headers

Pipeline:
  raw file bytes
    → regex: one match per BEGIN/END block, in file order
    → label → PemKind (unrelated labels are skipped)
    → asn1crypto: pem.unarmor(block) → (label, headers, der)
    → PemObject (domain model)

Each block is decoded on its own, so a corrupt block never hides the
blocks after it. A file can hold a key followed by its certificate(s);
every object keeps the path of the file it came from.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

import structlog
from asn1crypto import pem
from railway import ErrorCode, ResultFailures
from railway.result import Result

from sslchains.domain.models import PemKind, PemObject

log = structlog.get_logger()

# 10 MiB. PEM bundles are text; anything bigger is almost certainly not one.
MAX_FILE_SIZE = 10 * 1024 * 1024

# A block body never contains another BEGIN marker, so a truncated block
# cannot swallow the one after it.
_PEM_BLOCK = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----(?:(?!-----BEGIN ).)*?-----END \1-----", re.DOTALL)
_BEGIN_MARKER = re.compile(rb"-----BEGIN [A-Z0-9 ]+-----")

_KINDS_BY_LABEL: dict[str, PemKind] = {
    "PRIVATE KEY": PemKind.KEY,
    "RSA PRIVATE KEY": PemKind.KEY,
    "EC PRIVATE KEY": PemKind.KEY,
    "DSA PRIVATE KEY": PemKind.KEY,
    "ENCRYPTED PRIVATE KEY": PemKind.KEY,
    "CERTIFICATE REQUEST": PemKind.CERTIFICATE_REQUEST,
    "NEW CERTIFICATE REQUEST": PemKind.CERTIFICATE_REQUEST,
    "CERTIFICATE": PemKind.CERTIFICATE,
    "X509 CERTIFICATE": PemKind.CERTIFICATE,
}


# ─────────────────────── File Reading ───────────────────────


class FileSystemReader:
    """
    Read candidate files from disk.

    Implements the ContentReader port. Files over `max_file_size` bytes
    are refused without being read.
    """

    def __init__(self, max_file_size: int = MAX_FILE_SIZE) -> None:
        self._max_file_size = max_file_size

    def read(self, path: str) -> Result[bytes]:
        """Return the file's bytes, or UNREADABLE_FILE / FILE_TOO_LARGE."""
        file_path = Path(path)
        return (
            Result.from_computation(
                lambda: file_path.stat().st_size,
                ErrorCode.UNREADABLE_FILE,
                "Cannot read file",
                source=path,
            )
            .flat_map(lambda size: self._check_size(path, size))
            .flat_map(
                lambda _: Result.from_computation(
                    file_path.read_bytes,
                    ErrorCode.UNREADABLE_FILE,
                    "Cannot read file",
                    source=path,
                )
            )
        )

    def _check_size(self, path: str, size: int) -> Result[int]:
        if size > self._max_file_size:
            return ResultFailures.file_too_large(path, size, self._max_file_size)
        return Result.success(size)


# ─────────────────────── Block Extraction ───────────────────────


def kind_for_label(label: str) -> PemKind | None:
    """Map a PEM label to the object kind it carries, or None for unrelated blocks."""
    return _KINDS_BY_LABEL.get(label.strip())


class PemDocument:
    """
    The PEM objects held by one file's content.

    A lazy, finite, restartable sequence: every iteration re-scans the
    content and yields one Result[PemObject] per key/CSR/certificate block,
    in file order. Unrelated blocks (public keys, CRLs, parameters) are
    skipped silently; undecodable blocks become UNPARSABLE_OBJECT failures.
    """

    def __init__(
        self,
        path: str,
        content: bytes,
        file_index: int = 0,
        explicit: bool = True,
    ) -> None:
        self.path = path
        self._content = content
        self._file_index = file_index
        self._explicit = explicit

    def __iter__(self) -> Iterator[Result[PemObject]]:
        matched = 0
        for block_index, match in enumerate(_PEM_BLOCK.finditer(self._content)):
            matched += 1
            label = match.group(1).decode("ascii")
            kind = kind_for_label(label)
            if kind is None:
                log.debug("pem.block_skipped", path=self.path, label=label)
                continue
            yield self._decode(kind, match.group(0), block_index)

        dangling = len(_BEGIN_MARKER.findall(self._content)) - matched
        if dangling > 0:
            yield ResultFailures.unparsable_object(
                self.path,
                f"Malformed PEM data: {dangling} BEGIN marker(s) without a matching END",
            )
        elif matched == 0:
            log.debug("pem.no_blocks", path=self.path)

    def _decode(self, kind: PemKind, block: bytes, block_index: int) -> Result[PemObject]:
        """Decode one armored block with asn1crypto; any decoding error fails this block only."""
        return Result.from_computation(
            lambda: pem.unarmor(block),
            ErrorCode.UNPARSABLE_OBJECT,
            f"Cannot decode PEM block #{block_index + 1} ({kind.value})",
            source=self.path,
        ).map(
            lambda unarmored: PemObject(
                kind=kind,
                source_path=self.path,
                raw_block=block,
                der=unarmored[2],
                label=unarmored[0],
                headers=dict(unarmored[1]),
                order=(self._file_index, block_index),
                explicit=self._explicit,
            )
        )
