"""Command line interface for running the batch snapshot extractor."""
from __future__ import annotations

import argparse
import logging
import sys

from .config import ConfigurationError, resolve_settings
from .factory import build_orchestrator
from .ingestion import (
    UnsupportedFileTypeError,
    default_output_path,
    export_records,
    load_identifiers,
    validate_output_path,
)
from .orchestrator import MODE_URLS, MODES

LOGGER = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Fetch SAFER carrier snapshots for a list of MC numbers and extract contact fields",
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="mc_list.txt",
        help="Identifier list: text file with one MC number per line, or a CSV/XLSX spreadsheet",
    )
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output table (CSV, TSV or XLSX). Defaults to output/fmcsa_batch_<timestamp>.csv",
    )
    parser.add_argument("--config", default=None, help="Optional configuration file (YAML or JSON)")
    parser.add_argument("--column", default=None, help="Spreadsheet column holding the MC numbers")
    parser.add_argument(
        "--mode",
        choices=list(MODES),
        default=None,
        help="'both' fetches and extracts; 'urls' only derives the lookup URLs",
    )
    parser.add_argument("--concurrency", type=int, default=None, help="Maximum requests in flight per wave")
    parser.add_argument("--delay-ms", type=int, default=None, help="Pause between waves in milliseconds")
    parser.add_argument("--batch-size", type=int, default=None, help="Identifiers processed per batch")
    parser.add_argument("--wait-seconds", type=int, default=None, help="Pause after the run completes")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = resolve_settings(
            args.config,
            overrides={
                "mode": args.mode,
                "concurrency": args.concurrency,
                "inter_wave_delay_ms": args.delay_ms,
                "batch_size": args.batch_size,
                "post_run_wait_seconds": args.wait_seconds,
            },
        )
        output_path = validate_output_path(args.output) if args.output else default_output_path()
        identifiers = load_identifiers(args.input, column=args.column)
    except (ConfigurationError, FileNotFoundError, UnsupportedFileTypeError, KeyError) as exc:
        LOGGER.error("%s", exc)
        return 1

    if not identifiers:
        LOGGER.warning("No identifiers found in %s - nothing to do", args.input)

    LOGGER.info(
        "Processing %s identifiers (mode=%s, concurrency=%s, delay=%sms, batch size=%s)",
        len(identifiers),
        settings.mode,
        settings.concurrency,
        settings.inter_wave_delay_ms,
        settings.batch_size,
    )
    orchestrator = build_orchestrator(settings)
    result = orchestrator.run_batches(identifiers, settings.batch_size)

    export_records(result.records, output_path, urls_only=settings.mode == MODE_URLS)
    LOGGER.info(
        "Processed %s identifiers: %s ok, %s partial, %s failed",
        result.total,
        result.ok,
        result.partial,
        result.failed,
    )
    LOGGER.info("Results written to %s", output_path.resolve())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
