"""Reporting utilities for result files, console and markdown output."""

from __future__ import annotations

import logging
import re
import sys
import textwrap
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from string import Template
from typing import TYPE_CHECKING, Iterator, Sequence, TextIO

from .errors import ReportWriteError
from .metrics import PartitionMetrics
from .tests.base import format_p_value

if TYPE_CHECKING:
    from datetime import timedelta

    from .app import RunResult, TestSummary
    from .state import RunState
    from .tests.base import StatisticalTest

logger = logging.getLogger(__name__)

FINAL_REPORT_NAME = "finalAnalysisReport.txt"
RULE = "-" * 78


@dataclass(frozen=True)
class ReportTemplate:
    """Container for the markdown report template."""

    template: Template = Template(
        textwrap.dedent(
            """
            # Statistical Test Suite Report

            ## Summary
            ${summary}

            ## Run Parameters
            ${run_parameters}

            ## Test Results
            ${test_table}
            ${test_notes}
            _Generated on ${timestamp} (duration: ${duration})._
            """
        ).strip()
    )


DEFAULT_TEMPLATE = ReportTemplate()


@contextmanager
def _open_report(path: Path) -> Iterator[TextIO]:
    """Open ``path`` for writing, turning I/O failures into :class:`ReportWriteError`."""

    logger.debug("about to open/truncate: %s", path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            yield handle
    except OSError as exc:
        raise ReportWriteError(f"error in writing to {path}: {exc}", path) from exc


# ---------------------------------------------------------------------------
# Per-test result files
# ---------------------------------------------------------------------------

def write_test_results(test: "StatisticalTest", state: "RunState", directory: Path) -> Path:
    """Write ``stats.txt``, ``results.txt`` and partition data files for ``test``."""

    logs = test.require_logs("print_results")
    p_values = list(logs.p_values)
    stats = list(logs.stats) if logs.stats is not None else []

    with _open_report(directory / "stats.txt") as stats_file:
        for index, stat in enumerate(stats):
            stats_file.write(test.format_stat(stat, p_values[index], state))
    with _open_report(directory / "results.txt") as results_file:
        for p_value in p_values:
            results_file.write(format_p_value(p_value) + "\n")

    if test.partition_count > 1:
        for partition in range(test.partition_count):
            filename = test.datatxt_format.format(partition + 1)
            with _open_report(directory / filename) as data_file:
                for p_value in p_values[partition::test.partition_count]:
                    data_file.write(format_p_value(p_value) + "\n")
    return directory


# ---------------------------------------------------------------------------
# Final analysis report
# ---------------------------------------------------------------------------

def format_legacy_header(bins: int) -> str:
    columns = "".join(f"{'C' + str(index + 1):>3} " for index in range(bins))
    return "\n".join(
        [
            RULE,
            "RESULTS FOR THE UNIFORMITY OF P-VALUES AND THE PROPORTION OF PASSING SEQUENCES",
            RULE,
            f"{columns} P-VALUE  PROPORTION  STATISTICAL TEST",
            RULE,
        ]
    ) + "\n"


def format_legacy_metric_line(name: str, metrics: PartitionMetrics, uniformity_level: float) -> str:
    """Format one partition the way the traditional final analysis report does."""

    line = "".join(f"{count:3d} " for count in metrics.bins)
    if metrics.expected_count <= 0.0:
        line += "    ----    "
    elif metrics.uniformity < uniformity_level:
        line += f" {metrics.uniformity:8.6f} * "
    else:
        line += f" {metrics.uniformity:8.6f}   "

    if metrics.sample_count == 0:
        line += f" ------     {name}"
    elif not metrics.proportion_passed:
        line += f"{metrics.pass_count:4d}/{metrics.sample_count:<4d} *\t {name}"
    else:
        line += f"{metrics.pass_count:4d}/{metrics.sample_count:<4d}\t {name}"
    return line + "\n"


def format_metric_line(name: str, metrics: PartitionMetrics) -> str:
    return (
        f"{name}[{metrics.partition + 1}]: {metrics.result.value} "
        f"(proportion {metrics.pass_count}/{metrics.sample_count}, "
        f"uniformity {metrics.uniformity:.6f})\n"
    )


def write_final_analysis_report(result: "RunResult", directory: Path) -> Path:
    """Write ``finalAnalysisReport.txt`` summarising every enabled test."""

    target = directory / FINAL_REPORT_NAME
    with _open_report(target) as report:
        if result.legacy_output:
            report.write(format_legacy_header(result.uniformity_bins))
        for summary in result.test_results:
            if not summary.enabled:
                report.write(f"{summary.name}: disabled ({summary.details})\n")
                continue
            for metrics in summary.metrics:
                if result.legacy_output:
                    report.write(format_legacy_metric_line(summary.name, metrics, result.uniformity_level))
                else:
                    report.write(format_metric_line(summary.name, metrics))
        report.write(
            f"\nSuccessful tests: {result.successful_tests} of {result.partitions_evaluated} evaluated\n"
        )
    return target


# ---------------------------------------------------------------------------
# Console and markdown summaries
# ---------------------------------------------------------------------------

def print_console_summary(result: "RunResult", *, verbose: bool = False, stream: TextIO | None = None) -> None:
    """Print a short summary of the run to ``stream``."""

    output = stream if stream is not None else sys.stdout
    status = "PASSED" if result.passed else "FAILED"
    print(
        f"Result: {status} | Successful tests: {result.successful_tests}/{result.partitions_evaluated}",
        file=output,
    )
    if not verbose:
        return

    for summary in result.test_results:
        if not summary.enabled:
            print(f" - {summary.name}: disabled", file=output)
            print(f"   {summary.details}", file=output)
            continue
        counters = summary.counters
        print(
            f" - {summary.name}: {counters.success} successes, {counters.failure} failures "
            f"over {counters.count} iterations",
            file=output,
        )
        print(f"   {summary.details}", file=output)
        for metrics in summary.metrics:
            print(f"   partition {metrics.partition + 1}: {metrics.result.value}", file=output)
    print(f"Alpha: {result.alpha}", file=output)


def build_markdown_report(result: "RunResult", *, template: Template | None = None) -> str:
    """Generate a markdown report for ``result`` using ``template``."""

    template = template or DEFAULT_TEMPLATE.template
    return template.substitute(
        summary=_format_summary_section(result),
        run_parameters=_format_run_parameters(result),
        test_table=_format_test_table(result.test_results),
        test_notes=_format_test_notes(result.test_results),
        timestamp=result.started_at.astimezone(timezone.utc).isoformat(),
        duration=_format_duration(result.duration),
    )


def write_markdown_report(
    result: "RunResult",
    path: Path | None = None,
    *,
    template: Template | None = None,
) -> Path:
    """Render and persist a markdown report for ``result``."""

    target = _resolve_report_path(result, path)
    content = build_markdown_report(result, template=template)
    with _open_report(target) as handle:
        handle.write(content)
    return target


def _format_summary_section(result: "RunResult") -> str:
    verdict = "PASSED" if result.passed else "FAILED"
    return textwrap.dedent(
        f"""
        - **Result:** {verdict}
        - **Successful tests:** {result.successful_tests} of {result.partitions_evaluated}
        - **Significance level:** {result.alpha}
        """
    ).strip()


def _format_run_parameters(result: "RunResult") -> str:
    lines = [
        f"- **Input file:** {result.input_path}",
        f"- **Configuration:** {result.config_path}",
        f"- **Bitstream length:** {result.bitstream_length}",
        f"- **Bitstreams:** {result.iterations}",
        f"- **Threads:** {result.threads}",
        f"- **Uniformity bins:** {result.uniformity_bins}",
    ]
    return "\n".join(lines)


def _format_test_table(tests: Sequence["TestSummary"]) -> str:
    header = "| Test | Partition | Proportion | Uniformity | Outcome |"
    separator = "| --- | --- | --- | --- | --- |"
    rows = []
    for test in tests:
        if not test.enabled:
            rows.append(f"| {test.name} | - | - | - | DISABLED |")
            continue
        for metrics in test.metrics:
            rows.append(
                "| {} | {} | {}/{} | {:.6f} | {} |".format(
                    test.name,
                    metrics.partition + 1,
                    metrics.pass_count,
                    metrics.sample_count,
                    metrics.uniformity,
                    metrics.result.value.upper(),
                )
            )
    if not rows:
        rows.append("| _(no tests executed)_ | - | - | - | - |")
    return "\n".join([header, separator, *rows])


def _format_test_notes(tests: Sequence["TestSummary"]) -> str:
    sections = [f"### {test.name}\n> {test.details}" for test in tests if test.details.strip()]
    if not sections:
        return "\n"
    return "\n\n" + "\n\n".join(sections) + "\n\n"


def _format_duration(duration: "timedelta") -> str:
    total_seconds = duration.total_seconds()
    if total_seconds < 1:
        return f"{total_seconds * 1000:.0f} ms"
    return f"{total_seconds:.2f} s"


def _resolve_report_path(result: "RunResult", path: Path | None) -> Path:
    if path is not None:
        return Path(path).expanduser().resolve()
    stem = result.input_path.stem or result.input_path.name or "analysis"
    safe_stem = re.sub(r"[^A-Za-z0-9_.-]+", "-", stem).strip("-") or "analysis"
    timestamp = result.started_at.astimezone(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return (result.output_dir / f"{safe_stem}-{timestamp}.md").resolve()


__all__ = [
    "FINAL_REPORT_NAME",
    "ReportTemplate",
    "build_markdown_report",
    "format_legacy_metric_line",
    "print_console_summary",
    "write_final_analysis_report",
    "write_markdown_report",
    "write_test_results",
]
