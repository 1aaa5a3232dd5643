"""Command line entry point for the statistical test suite runner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .app import StsApp
from .config import load_config
from .errors import FatalPreconditionError, StsError
from .logging import configure_logging

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1

logger = logging.getLogger("stsrun")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stsrun",
        description="Run statistical randomness tests over bitstreams read from a file.",
    )
    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        required=True,
        help="Path to a file of ASCII 0/1 characters or packed binary bits.",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to the INI configuration file describing the run.",
    )
    parser.add_argument(
        "--report",
        "-r",
        type=Path,
        help="Optional path where a markdown report will be written.",
    )
    parser.add_argument(
        "--threads",
        "-t",
        type=int,
        help="Number of worker threads, overriding the configuration file.",
    )
    parser.add_argument(
        "--legacy",
        action="store_true",
        default=None,
        help="Write result files in the traditional report layout.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print per-test details and enable debug logging.",
    )
    return parser


def _log_level(config_path: Path, verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    try:
        return load_config(config_path).output.log_level
    except StsError:
        # The run itself reports the configuration problem.
        return logging.WARNING


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(_log_level(args.config, args.verbose))
    app = StsApp()
    try:
        result = app.run(
            input_path=args.input,
            config_path=args.config,
            report_path=args.report,
            verbose=args.verbose,
            threads=args.threads,
            legacy_output=args.legacy,
        )
    except FatalPreconditionError as exc:
        logger.critical("fatal: %s", exc)
        print(f"Fatal error in {exc.site}: {exc.invariant}", file=sys.stderr)
        return exc.exit_code
    except StsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - last resort for the CLI
        logger.exception("unexpected error")
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR
    logger.debug("run finished with %d successful tests", result.successful_tests)
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
