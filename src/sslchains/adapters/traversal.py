"""
Traversal adapter — turn command-line roots into an ordered file list.

Adapter layer — implements the FileSource port using os.scandir.

Rules:
  - no roots           → the current directory
  - a file root        → that file, marked explicit (even when hidden)
  - a directory root   → its regular files sorted by name, recursively with
                         `recursive`; discovered files are not explicit
  - hidden entries     → skipped unless `include_hidden`
  - symlinks           → skipped inside directories unless `follow_symlinks`
  - other filesystems  → not entered unless `cross_filesystems`
  - the same file reached twice (by resolved path) is listed once

Failures here end the run: a missing root is TRAVERSAL_ERROR, and more than
`max_files` paths (unless `unlimited`) is FILE_LIMIT_EXCEEDED.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence

import structlog
from railway import ErrorCode, ResultFailures
from railway.result import Result

from sslchains.config import TraversalSettings
from sslchains.domain.models import InputFile

log = structlog.get_logger()

_CURRENT_DIRECTORY = "."

_Candidate = tuple[str, bool]


class DirectoryTraversal:
    """
    Collect candidate files from paths given on the command line.

    Implements the FileSource port.
    """

    def __init__(
        self,
        roots: Sequence[str],
        settings: TraversalSettings | None = None,
    ) -> None:
        self._roots = list(roots) or [_CURRENT_DIRECTORY]
        self._settings = settings or TraversalSettings()

    def collect(self) -> Result[list[InputFile]]:
        """Expand every root, in order, into InputFiles numbered by position."""
        candidates: list[_Candidate] = []
        seen: set[str] = set()

        for root in self._roots:
            expanded = self._expand_root(root)
            if expanded.is_failure():
                return Result.failure_from(expanded.error())
            for path, explicit in expanded.value():
                resolved = os.path.realpath(path)
                if resolved in seen:
                    log.debug("traversal.duplicate_path", path=path)
                    continue
                seen.add(resolved)
                candidates.append((path, explicit))
                if not self._settings.unlimited and len(candidates) > self._settings.max_files:
                    return ResultFailures.file_limit_exceeded(len(candidates), self._settings.max_files)

        log.debug("traversal.collected", roots=len(self._roots), files=len(candidates))
        return Result.success(
            [InputFile(index=i, path=path, explicit=explicit) for i, (path, explicit) in enumerate(candidates)]
        )

    def _expand_root(self, root: str) -> Result[list[_Candidate]]:
        if os.path.isdir(root):
            return Result.from_computation(
                lambda: list(self._walk(root, os.stat(root).st_dev, set(), top=True)),
                ErrorCode.TRAVERSAL_ERROR,
                "Cannot list directory",
                source=root,
            )
        if os.path.isfile(root):
            return Result.success([(root, True)])
        if not os.path.exists(root):
            return ResultFailures.traversal_error(root, f"No such file or directory: {root}")
        log.debug("traversal.not_regular_file", path=root)
        return Result.success([])

    def _walk(
        self,
        directory: str,
        device: int,
        visited: set[str],
        top: bool = False,
    ) -> Iterator[_Candidate]:
        """Yield regular files below `directory`, sorted by name at every level."""
        visited.add(os.path.realpath(directory))
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            if top:
                raise
            log.warning("traversal.unreadable_directory", path=directory, error=str(e))
            return

        settings = self._settings
        for entry in entries:
            if entry.name.startswith(".") and not settings.include_hidden:
                continue
            if entry.is_symlink() and not settings.follow_symlinks:
                log.debug("traversal.symlink_skipped", path=entry.path)
                continue
            if entry.is_file():
                yield entry.path, False
            elif entry.is_dir() and settings.recursive:
                if not settings.cross_filesystems and entry.stat().st_dev != device:
                    log.debug("traversal.other_filesystem", path=entry.path)
                    continue
                if os.path.realpath(entry.path) in visited:
                    log.debug("traversal.directory_loop", path=entry.path)
                    continue
                yield from self._walk(entry.path, device, visited)
