"""
Pipeline — orchestrates one scan from candidate files to ScanResult.

All I/O is injected via ports (Protocol interfaces); this module only
decides the order things happen in.

Two phases with a barrier between them:

  Phase 1 (parallel, one task per file, no shared state):
    reader.read(path)
      → PemDocument(path, content)      one Result[PemObject] per block
        → deriver.derive(obj)           one Result[IdentityRecord] per object
          → FileScan(records, diagnostics)

  Phase 2 (single-threaded, after every file is done):
    group_records(all records)          entities + subject index
      → assemble(state)                 chains, names, ScanResult

Per-file and per-object failures become Diagnostics and never stop the
scan. The only failure run_pipeline returns is the FileSource's own
(traversal limits, missing roots), which ends the run.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog
from railway.failure import FailureDescription
from railway.result import Result

from sslchains.adapters.pem_reader import PemDocument
from sslchains.domain.assembly import DEFAULT_PLACEHOLDER, assemble
from sslchains.domain.grouping import group_records
from sslchains.domain.models import (
    Diagnostic,
    IdentityRecord,
    InputFile,
    ScanResult,
    StandaloneCertificates,
)
from sslchains.domain.ports import (
    ContentReader,
    FileSource,
    IdentityDeriver,
    SignatureVerifier,
)

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class FileScan:
    """Everything phase 1 learned from one file."""

    path: str
    records: tuple[IdentityRecord, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()


def scan_file(
    input_file: InputFile,
    reader: ContentReader,
    deriver: IdentityDeriver,
) -> FileScan:
    """Read, extract and derive one file; failures end up in FileScan.diagnostics."""
    return reader.read(input_file.path).either(
        on_success=lambda content: _scan_content(input_file, content, deriver),
        on_failure=lambda err: FileScan(
            path=input_file.path,
            diagnostics=(Diagnostic.from_failure(err.with_source(input_file.path)),),
        ),
    )


def _scan_content(input_file: InputFile, content: bytes, deriver: IdentityDeriver) -> FileScan:
    document = PemDocument(
        input_file.path,
        content,
        file_index=input_file.index,
        explicit=input_file.explicit,
    )
    records, failures = Result.partition(obj.flat_map(deriver.derive) for obj in document)
    return FileScan(
        path=input_file.path,
        records=tuple(records),
        diagnostics=tuple(_attributed(err, input_file.path) for err in failures),
    )


def _attributed(error: FailureDescription, path: str) -> Diagnostic:
    if error.source is None:
        error = error.with_source(path)
    return Diagnostic.from_failure(error)


def scan_files(
    files: Iterable[InputFile],
    reader: ContentReader,
    deriver: IdentityDeriver,
    max_workers: int = 1,
) -> list[FileScan]:
    """
    Phase 1 over every file, in input order.

    With max_workers > 1 files are processed on a thread pool; Executor.map
    hands results back in submission order, so the output is the same either way.
    """
    files = list(files)
    if max_workers <= 1 or len(files) <= 1:
        return [scan_file(f, reader, deriver) for f in files]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sslchains-scan") as executor:
        return list(executor.map(lambda f: scan_file(f, reader, deriver), files))


def build_result(
    scans: Iterable[FileScan],
    standalone: StandaloneCertificates = StandaloneCertificates.ALL,
    placeholder: str = DEFAULT_PLACEHOLDER,
    verifier: SignatureVerifier | None = None,
    prefer_subject_alt_name: bool = False,
) -> ScanResult:
    """Phase 2: group every record, assemble chains, prepend per-file diagnostics."""
    scans = list(scans)
    records = [record for scan in scans for record in scan.records]
    file_diagnostics = [diagnostic for scan in scans for diagnostic in scan.diagnostics]

    state = group_records(records, standalone)
    state.diagnostics[:0] = file_diagnostics
    return assemble(
        state,
        placeholder=placeholder,
        verifier=verifier,
        prefer_subject_alt_name=prefer_subject_alt_name,
    )


def _log_outcome(result: ScanResult) -> None:
    for diagnostic in result.diagnostics:
        log.warning(
            f"scan.{diagnostic.code.value.lower()}",
            message=diagnostic.message,
            paths=list(diagnostic.paths),
        )
    log.info(
        "scan.complete",
        entities=len(result.entities),
        chains=result.total_chains,
        diagnostics=len(result.diagnostics),
    )


def run_pipeline(
    source: FileSource,
    reader: ContentReader,
    deriver: IdentityDeriver,
    *,
    verifier: SignatureVerifier | None = None,
    standalone: StandaloneCertificates = StandaloneCertificates.ALL,
    placeholder: str = DEFAULT_PLACEHOLDER,
    prefer_subject_alt_name: bool = False,
    max_workers: int = 1,
) -> Result[ScanResult]:
    """
    Execute a full scan.

    Flow:
      1. Collect candidate files from the FileSource (fatal on failure)
      2. Phase 1 — per-file extraction and identity derivation
      3. Phase 2 — grouping and chain assembly

    Returns Result[ScanResult]; a Failure only ever comes from step 1.
    """
    return (
        source.collect()
        .peek(lambda files: log.info("scan.files_collected", count=len(files)))
        .map(lambda files: scan_files(files, reader, deriver, max_workers))
        .map(
            lambda scans: build_result(
                scans,
                standalone=standalone,
                placeholder=placeholder,
                verifier=verifier,
                prefer_subject_alt_name=prefer_subject_alt_name,
            )
        )
        .peek(_log_outcome)
    )
