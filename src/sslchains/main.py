"""
Application entry point — parses the command line and runs one scan.

Composition root: creates concrete adapters, injects them into the
pipeline, and hands the result to a renderer.

This is the ONLY place where concrete classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Load and validate settings from environment / .env
  2. Apply command-line flags on top of them
  3. Configure structlog (stderr, so stdout carries only the rendered output)
  4. Create the adapters and run the pipeline
  5. Print the result and choose the exit status

Exit status: 0 when the scan ran (warnings do not count), 1 when settings
are invalid or traversal fails, 2 for command-line usage errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

import structlog
from railway import FailureDescription, LoggingExecutionContext, Result, ResultFailures

import sslchains
from sslchains.adapters.identity import CryptographyIdentityDeriver, CryptographySignatureVerifier
from sslchains.adapters.pem_reader import FileSystemReader
from sslchains.adapters.rendering import JsonRenderer, OneLineRenderer, TreeRenderer
from sslchains.adapters.traversal import DirectoryTraversal
from sslchains.config import AppSettings, EngineSettings, OutputFormat, OutputSettings, TraversalSettings
from sslchains.domain.models import ScanResult, StandaloneCertificates
from sslchains.domain.ports import Renderer
from sslchains.pipeline import run_pipeline

EXIT_OK = 0
EXIT_FATAL = 1


def configure_structlog(log_level: str = "WARNING") -> None:
    """
    Configure structlog for human-readable logging on stderr.

    Standard library logging (used by railway's execution context) goes to
    stderr at the same level.
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(name)s: %(message)s", force=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    """Command line: single-letter flags for traversal and output, long options for the rest."""
    parser = argparse.ArgumentParser(
        prog="sslchains",
        description="Identify related SSL keys, CSRs and certificates, and the chains they form.",
    )
    parser.add_argument("paths", nargs="*", metavar="path", help="Files or directories (default: current directory)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {sslchains.__version__}")

    traversal = parser.add_argument_group("traversal")
    traversal.add_argument("-H", dest="include_hidden", action="store_true", help="Process hidden files and directories.")
    traversal.add_argument("-r", dest="recursive", action="store_true", help="Process arguments recursively.")
    traversal.add_argument("-S", dest="follow_symlinks", action="store_true", help="Follow symbolic links.")
    traversal.add_argument("-U", dest="unlimited", action="store_true", help="Process an unlimited number of file paths.")
    traversal.add_argument("-X", dest="cross_filesystems", action="store_true", help="Cross filesystem boundaries.")

    output = parser.add_argument_group("output")
    formats = output.add_mutually_exclusive_group()
    formats.add_argument("-l", dest="oneline", action="store_true", help="Output each entity as a row of values.")
    formats.add_argument(
        "-L", dest="oneline_no_header", action="store_true", help="Output each entity as a row of values (header excluded)."
    )
    formats.add_argument("--json", dest="json", action="store_true", help="Output JSON, including diagnostics.")
    output.add_argument("--placeholder", metavar="NAME", help="Name shown for entities without a certificate.")
    output.add_argument("--san", dest="prefer_san", action="store_true", help="Name entities after a SAN DNS name.")

    engine = parser.add_argument_group("engine")
    engine.add_argument(
        "--verify-signatures", action="store_true", help="Require issuer signatures to validate, not just names."
    )
    engine.add_argument("--workers", type=int, metavar="N", help="Threads used to read and parse files.")
    engine.add_argument(
        "--standalone",
        choices=[policy.value for policy in StandaloneCertificates],
        help="Which certificates without a key or CSR are listed as entities.",
    )

    logs = parser.add_argument_group("logging")
    levels = logs.add_mutually_exclusive_group()
    levels.add_argument("-v", "--verbose", action="store_true", help="Log progress (INFO) to stderr.")
    levels.add_argument("--debug", action="store_true", help="Log everything (DEBUG) to stderr.")
    return parser


def apply_arguments(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """
    Return a copy of `settings` with every flag given on the command line applied.

    Each sub-model is rebuilt through validation, so a flag is held to the
    same bounds as its environment variable. Raises pydantic.ValidationError.
    """
    traversal = {
        name: True
        for name in ("include_hidden", "recursive", "follow_symlinks", "unlimited", "cross_filesystems")
        if getattr(args, name)
    }

    output: dict[str, object] = {}
    if args.oneline or args.oneline_no_header:
        output["format"] = OutputFormat.ONELINE
        output["header"] = not args.oneline_no_header
    elif args.json:
        output["format"] = OutputFormat.JSON

    engine: dict[str, object] = {}
    if args.verify_signatures:
        engine["verify_signatures"] = True
    if args.workers is not None:
        engine["max_workers"] = args.workers
    if args.placeholder is not None:
        engine["placeholder_name"] = args.placeholder
    if args.prefer_san:
        engine["prefer_subject_alt_name"] = True
    if args.standalone is not None:
        engine["standalone_certificates"] = StandaloneCertificates(args.standalone)

    updates: dict[str, object] = {
        "traversal": TraversalSettings.model_validate({**settings.traversal.model_dump(), **traversal}),
        "output": OutputSettings.model_validate({**settings.output.model_dump(), **output}),
        "engine": EngineSettings.model_validate({**settings.engine.model_dump(), **engine}),
    }
    if args.debug:
        updates["log_level"] = "DEBUG"
    elif args.verbose:
        updates["log_level"] = "INFO"
    return settings.model_copy(update=updates)


def load_settings(args: argparse.Namespace) -> Result[AppSettings]:
    """Settings from environment / .env with the command line on top, or CONFIGURATION_ERROR."""
    try:
        return Result.success(apply_arguments(AppSettings(), args))
    except ValueError as e:
        return ResultFailures.configuration_error(str(e), e)


def create_renderer(output: OutputSettings) -> Renderer:
    match output.format:
        case OutputFormat.ONELINE:
            return OneLineRenderer(header=output.header)
        case OutputFormat.JSON:
            return JsonRenderer()
    return TreeRenderer()


def scan(settings: AppSettings, paths: Sequence[str]) -> Result[ScanResult]:
    """Wire the adapters for `settings` and run one scan inside a logging context."""
    engine = settings.engine
    source = DirectoryTraversal(paths, settings.traversal)
    reader = FileSystemReader(max_file_size=engine.max_file_size)
    deriver = CryptographyIdentityDeriver(
        verify_signatures=engine.verify_signatures,
        key_passphrase=engine.passphrase_bytes(),
    )
    verifier = CryptographySignatureVerifier() if engine.verify_signatures else None

    context = LoggingExecutionContext(operation="Scan", log_level=logging.DEBUG)
    return context.execute(
        lambda: run_pipeline(
            source,
            reader,
            deriver,
            verifier=verifier,
            standalone=engine.standalone_certificates,
            placeholder=engine.placeholder_name,
            prefer_subject_alt_name=engine.prefer_subject_alt_name,
            max_workers=engine.max_workers,
        )
    )


def run(argv: Sequence[str] | None = None) -> int:
    """Parse `argv`, scan, print; returns the process exit status."""
    args = build_parser().parse_args(argv)

    loaded = load_settings(args)
    if loaded.is_failure():
        return _report_fatal(loaded.error())
    settings = loaded.value()

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.info(
        "app.starting",
        version=sslchains.__version__,
        paths=list(args.paths) or ["."],
        output=settings.output.format.value,
        verify_signatures=settings.engine.verify_signatures,
    )

    renderer = create_renderer(settings.output)
    return (
        scan(settings, args.paths)
        .peek_failure(
            lambda err: log.error("app.fatal_error", code=err.code.value, source=err.source, error=err.message)
        )
        .either(
            on_success=lambda result: _print_result(renderer, result),
            on_failure=_report_fatal,
        )
    )


def _print_result(renderer: Renderer, result: ScanResult) -> int:
    print(renderer.render(result), end="")  # noqa: T201
    return EXIT_OK


def _report_fatal(error: FailureDescription) -> int:
    location = f"{error.source}: " if error.source else ""
    print(f"sslchains: {location}{error.message}", file=sys.stderr)  # noqa: T201
    return EXIT_FATAL


def main() -> None:
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
