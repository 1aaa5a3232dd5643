"""Diagnostic logging setup and the structured run-history log.

Two unrelated streams live here.  ``configure_logging`` wires the package's
``logging`` hierarchy to a console handler.  ``log_run_result`` appends one
line per application run to a JSONL or CSV history file, keeping at most
``retention`` entries.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict, dataclass, fields
from datetime import timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, TextIO

if TYPE_CHECKING:  # pragma: no cover - import cycle safe typing
    from .app import RunResult


DEFAULT_LOG_PATH = Path("logs") / "run_log.jsonl"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.WARNING, *, stream: TextIO | None = None) -> logging.Logger:
    """Attach a stream handler to the ``stsrun`` logger at ``level``.

    Calling it again replaces the handler installed by the previous call.
    """

    root = logging.getLogger("stsrun")
    for existing in [h for h in root.handlers if getattr(h, "_stsrun_handler", False)]:
        root.removeHandler(existing)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._stsrun_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
    return root


@dataclass(frozen=True)
class RunLogRecord:
    """One line of the run history."""

    timestamp: str
    input_file: str
    result: str
    successful_tests: int
    partitions: int
    iterations: int
    bitstream_length: int
    duration_seconds: float
    report_path: str

    @classmethod
    def from_run_result(cls, result: "RunResult", report_path: Path) -> "RunLogRecord":
        return cls(
            timestamp=result.started_at.astimezone(timezone.utc).isoformat(),
            input_file=str(result.input_path),
            result="PASSED" if result.passed else "FAILED",
            successful_tests=result.successful_tests,
            partitions=result.partitions_evaluated,
            iterations=result.iterations,
            bitstream_length=result.bitstream_length,
            duration_seconds=round(result.duration.total_seconds(), 6),
            report_path=str(report_path),
        )


LOG_FIELDNAMES = tuple(item.name for item in fields(RunLogRecord))


def _append_jsonl(path: Path, record: RunLogRecord) -> None:
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(asdict(record), ensure_ascii=False) + "\n")


def _append_csv(path: Path, record: RunLogRecord) -> None:
    write_header = not path.exists() or path.stat().st_size == 0
    with path.open("a", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=LOG_FIELDNAMES)
        if write_header:
            writer.writeheader()
        writer.writerow(asdict(record))


_APPENDERS: Dict[str, Callable[[Path, RunLogRecord], None]] = {
    "jsonl": _append_jsonl,
    "csv": _append_csv,
}
# Lines at the top of the file that are not records.
_HEADER_LINES = {"jsonl": 0, "csv": 1}


def log_run_result(
    result: "RunResult",
    report_path: Path,
    *,
    log_path: Path | None = None,
    fmt: str = "jsonl",
    retention: int | None = 100,
) -> Path:
    """Append ``result`` to the run history and enforce ``retention``."""

    kind = fmt.lower()
    appender = _APPENDERS.get(kind)
    if appender is None:
        raise ValueError(f"Unsupported log format: {fmt}")
    target = Path(log_path).expanduser() if log_path is not None else DEFAULT_LOG_PATH
    target = target.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    appender(target, RunLogRecord.from_run_result(result, report_path))
    if retention:
        trim_log(target, retention, fmt=kind)
    return target


def trim_log(path: Path, max_entries: int, *, fmt: str = "jsonl") -> None:
    """Keep only the newest ``max_entries`` records of ``path``."""

    if fmt not in _HEADER_LINES:
        raise ValueError(f"Unsupported log format: {fmt}")
    if max_entries <= 0 or not path.exists():
        return
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    header_size = _HEADER_LINES[fmt]
    header, records = lines[:header_size], lines[header_size:]
    if len(records) <= max_entries:
        return
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.writelines(header + records[-max_entries:])


__all__ = ["LOG_FIELDNAMES", "RunLogRecord", "configure_logging", "log_run_result", "trim_log"]
