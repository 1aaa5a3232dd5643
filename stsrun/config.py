"""Configuration parsing utilities for the statistical test suite runner."""

from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Tuple

from .errors import InvalidConfigurationError, MissingFileError

DEFAULT_ALPHA = 0.01
DEFAULT_UNIFORMITY_BINS = 10
DEFAULT_UNIFORMITY_LEVEL = 0.0001
DEFAULT_BITSTREAM_LENGTH = 1_048_576

INPUT_FORMATS = ("ascii", "binary")
LOG_FORMATS = ("jsonl", "csv")


@dataclass(frozen=True)
class RunSection:
    """Numeric parameters shared by every test in the run."""

    bitstream_length: int = DEFAULT_BITSTREAM_LENGTH
    iterations: int = 1
    threads: int = 1
    alpha: float = DEFAULT_ALPHA
    uniformity_bins: int = DEFAULT_UNIFORMITY_BINS
    uniformity_level: float = DEFAULT_UNIFORMITY_LEVEL
    legacy_output: bool = False
    write_results: bool = True


@dataclass(frozen=True)
class TestsSection:
    """Configuration data describing which tests are enabled."""

    enabled_tests: Tuple[str, ...]


@dataclass(frozen=True)
class InputSection:
    """How the bit source should interpret the input file."""

    format: str = "ascii"


@dataclass(frozen=True)
class OutputSection:
    """Options controlling where results are written."""

    directory: Path
    report_path: Path | None
    log_results: bool
    run_log_path: Path
    run_log_format: str
    run_log_retention: int | None
    log_level: int = logging.WARNING


@dataclass(frozen=True)
class StsConfig:
    """Aggregate configuration container returned by :func:`load_config`."""

    run: RunSection
    tests: TestsSection
    input: InputSection
    output: OutputSection
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def with_overrides(
        self, *, threads: int | None = None, legacy_output: bool | None = None
    ) -> "StsConfig":
        """Return a copy with command line overrides applied."""

        run = self.run
        if threads is not None:
            if threads < 1:
                raise InvalidConfigurationError("Thread count must be at least 1.")
            run = replace(run, threads=threads)
        if legacy_output is not None:
            run = replace(run, legacy_output=legacy_output)
        return replace(self, run=run)


def load_config(path: Path) -> StsConfig:
    """Load and validate an INI configuration file."""

    parser = configparser.ConfigParser(inline_comment_prefixes=(";", "#"))
    try:
        with path.open("r", encoding="utf-8") as config_file:
            parser.read_file(config_file)
    except FileNotFoundError as exc:
        raise MissingFileError(f"Configuration file not found: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem guard
        raise MissingFileError(f"Could not read configuration file: {path}") from exc
    except configparser.Error as exc:
        raise InvalidConfigurationError(f"Configuration is not valid INI: {exc}") from exc

    warnings: list[str] = []
    run_section = _parse_run(parser, warnings)
    tests_section = _parse_tests(parser)
    input_section = _parse_input(parser)
    output_section = _parse_output(parser, path)

    return StsConfig(
        run=run_section,
        tests=tests_section,
        input=input_section,
        output=output_section,
        warnings=tuple(warnings),
    )


def _get_int(section: configparser.SectionProxy, key: str, default: int, *, minimum: int) -> int:
    if key not in section:
        return default
    try:
        value = section.getint(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be an integer value."
        ) from exc
    if value < minimum:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be at least {minimum}."
        )
    return value


def _get_float(section: configparser.SectionProxy, key: str, default: float) -> float:
    if key not in section:
        return default
    try:
        return section.getfloat(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be numeric."
        ) from exc


def _get_bool(section: configparser.SectionProxy, key: str, default: bool) -> bool:
    if key not in section:
        return default
    try:
        return section.getboolean(key)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Option '{key}' in [{section.name}] must be a boolean value."
        ) from exc


def _parse_run(parser: configparser.ConfigParser, warnings: list[str]) -> RunSection:
    if not parser.has_section("run"):
        warnings.append("Configuration has no [run] section; using defaults.")
        return RunSection()

    section = parser["run"]
    alpha = _get_float(section, "alpha", DEFAULT_ALPHA)
    if not 0.0 < alpha < 1.0:
        raise InvalidConfigurationError("Option 'alpha' in [run] must be between 0 and 1.")
    uniformity_level = _get_float(section, "uniformity_level", DEFAULT_UNIFORMITY_LEVEL)
    if not 0.0 <= uniformity_level <= 1.0:
        raise InvalidConfigurationError(
            "Option 'uniformity_level' in [run] must be between 0 and 1."
        )

    return RunSection(
        bitstream_length=_get_int(section, "bitstream_length", DEFAULT_BITSTREAM_LENGTH, minimum=1),
        iterations=_get_int(section, "iterations", 1, minimum=1),
        threads=_get_int(section, "threads", 1, minimum=1),
        alpha=alpha,
        uniformity_bins=_get_int(section, "uniformity_bins", DEFAULT_UNIFORMITY_BINS, minimum=2),
        uniformity_level=uniformity_level,
        legacy_output=_get_bool(section, "legacy_output", False),
        write_results=_get_bool(section, "write_results", True),
    )


def _parse_tests(parser: configparser.ConfigParser) -> TestsSection:
    if not parser.has_section("tests"):
        raise InvalidConfigurationError("Configuration missing required [tests] section.")

    enabled: list[str] = []
    for name, _ in parser.items("tests"):
        try:
            is_enabled = parser.getboolean("tests", name)
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"Test '{name}' in [tests] must be a boolean value."
            ) from exc
        if is_enabled:
            enabled.append(name)

    if not enabled:
        raise InvalidConfigurationError("At least one test must be enabled in [tests] section.")

    return TestsSection(enabled_tests=tuple(enabled))


def _parse_input(parser: configparser.ConfigParser) -> InputSection:
    if not parser.has_section("input"):
        return InputSection()
    raw_format = parser["input"].get("format", "ascii").strip().lower()
    if raw_format not in INPUT_FORMATS:
        raise InvalidConfigurationError(
            "Option 'format' in [input] must be either 'ascii' or 'binary'."
        )
    return InputSection(format=raw_format)


def _resolve_path(raw: str, base_dir: Path) -> Path:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return candidate.resolve()


def _parse_output(parser: configparser.ConfigParser, config_path: Path) -> OutputSection:
    base_dir = config_path.resolve().parent
    directory = (base_dir / "experiments").resolve()
    report_path: Path | None = None
    log_results = False
    log_path = (base_dir / "logs" / "run_log.jsonl").resolve()
    log_format = "jsonl"
    log_retention: int | None = 100
    log_level = logging.WARNING

    if parser.has_section("output"):
        section = parser["output"]
        raw_directory = section.get("directory", "").strip()
        if raw_directory:
            directory = _resolve_path(raw_directory, base_dir)
        raw_report = section.get("report_path", "").strip()
        if raw_report:
            report_path = _resolve_path(raw_report, base_dir)

    if parser.has_section("logging"):
        section = parser["logging"]
        log_results = _get_bool(section, "enabled", log_results)
        raw_path = section.get("path", "").strip()
        if raw_path:
            log_path = _resolve_path(raw_path, base_dir)
        if "format" in section:
            raw_format = section["format"].strip().lower()
            if raw_format not in LOG_FORMATS:
                raise InvalidConfigurationError(
                    "Option 'format' in [logging] must be either 'jsonl' or 'csv'."
                )
            log_format = raw_format
        if "retention" in section:
            raw_retention = section["retention"].strip()
            if raw_retention:
                try:
                    parsed = int(raw_retention)
                except ValueError as exc:
                    raise InvalidConfigurationError(
                        "Option 'retention' in [logging] must be an integer value."
                    ) from exc
                log_retention = parsed if parsed > 0 else None
        if "level" in section:
            raw_level = section["level"].strip().upper()
            level = logging.getLevelName(raw_level)
            if not isinstance(level, int):
                raise InvalidConfigurationError(
                    f"Option 'level' in [logging] is not a known logging level: {raw_level}."
                )
            log_level = level

    return OutputSection(
        directory=directory,
        report_path=report_path,
        log_results=log_results,
        run_log_path=log_path,
        run_log_format=log_format,
        run_log_retention=log_retention,
        log_level=log_level,
    )


__all__ = [
    "DEFAULT_ALPHA",
    "DEFAULT_UNIFORMITY_BINS",
    "DEFAULT_UNIFORMITY_LEVEL",
    "InputSection",
    "OutputSection",
    "RunSection",
    "StsConfig",
    "TestsSection",
    "load_config",
]
