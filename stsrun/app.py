"""Application orchestration for the statistical test suite CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from time import perf_counter
from typing import Mapping, Sequence, Tuple

from .config import StsConfig, load_config
from .driver import IterationCoordinator
from .errors import InsufficientBitsError
from .io import BitSource, open_bit_source
from .logging import log_run_result
from .metrics import PartitionMetrics
from .reporting import print_console_summary, write_final_analysis_report, write_markdown_report
from .state import RunState, TestCounters
from .tests.base import StatisticalTest
from .tests.factory import TestFactory, build_test_suite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestSummary:
    """Outcome of one test after the metrics phase."""

    name: str
    enabled: bool
    details: str
    counters: TestCounters = field(default_factory=TestCounters)
    metrics: Tuple[PartitionMetrics, ...] = ()

    @property
    def passed(self) -> bool:
        return self.enabled and bool(self.metrics) and all(m.result.passed for m in self.metrics)


@dataclass(frozen=True)
class RunResult:
    """Summary of a full application run."""

    input_path: Path
    config_path: Path
    output_dir: Path
    bitstream_length: int
    iterations: int
    threads: int
    alpha: float
    uniformity_bins: int
    uniformity_level: float
    legacy_output: bool
    test_results: Sequence[TestSummary]
    successful_tests: int
    started_at: datetime
    duration: timedelta

    @property
    def partitions_evaluated(self) -> int:
        return sum(len(summary.metrics) for summary in self.test_results)

    @property
    def passed(self) -> bool:
        enabled = [summary for summary in self.test_results if summary.enabled]
        return bool(enabled) and all(summary.passed for summary in enabled)


class StsApp:
    """High level service wiring configuration, execution, and rendering."""

    def __init__(self, registry: Mapping[str, TestFactory] | None = None) -> None:
        self._registry = registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self,
        input_path: Path,
        config_path: Path,
        report_path: Path | None = None,
        verbose: bool = False,
        *,
        threads: int | None = None,
        legacy_output: bool | None = None,
    ) -> RunResult:
        """Execute the test suite workflow."""

        started_at = datetime.now(timezone.utc)
        timer_start = perf_counter()
        config = load_config(config_path).with_overrides(threads=threads, legacy_output=legacy_output)
        for warning in config.warnings:
            logger.warning(warning)
        bit_source = open_bit_source(input_path, config.run.bitstream_length, config.input.format)
        result = self.execute(config, bit_source, input_path=input_path, config_path=config_path)
        result = replace(
            result,
            started_at=started_at,
            duration=timedelta(seconds=perf_counter() - timer_start),
        )

        print_console_summary(result, verbose=verbose)
        target_report = report_path or config.output.report_path
        if target_report is not None or config.output.log_results:
            written = write_markdown_report(result, target_report)
            logger.info("markdown report written to %s", written)
            if config.output.log_results:
                log_run_result(
                    result,
                    written,
                    log_path=config.output.run_log_path,
                    fmt=config.output.run_log_format,
                    retention=config.output.run_log_retention,
                )
        return result

    def execute(
        self,
        config: StsConfig,
        bit_source: BitSource,
        *,
        input_path: Path | None = None,
        config_path: Path | None = None,
    ) -> RunResult:
        """Drive every enabled test through its lifecycle over ``bit_source``."""

        started_at = datetime.now(timezone.utc)
        timer_start = perf_counter()
        run = config.run
        available = bit_source.available_bitstreams()
        if available < run.iterations:
            raise InsufficientBitsError(
                f"Input supplies {available} bitstreams of {run.bitstream_length} bits, "
                f"{run.iterations} requested."
            )

        state = RunState(run)
        tests = build_test_suite(config, registry=self._registry)
        output_dir = config.output.directory
        try:
            for test in tests:
                test.init(state)
            IterationCoordinator(state, bit_source).run(tests)
            for test in tests:
                test.print_results(state, output_dir)
            for test in tests:
                test.metrics(state)
            summaries = tuple(self._summarise(test, state) for test in tests)
        finally:
            for test in tests:
                test.destroy(state)

        result = RunResult(
            input_path=Path(input_path) if input_path is not None else Path("<memory>"),
            config_path=Path(config_path) if config_path is not None else Path("<memory>"),
            output_dir=output_dir,
            bitstream_length=run.bitstream_length,
            iterations=run.iterations,
            threads=run.threads,
            alpha=run.alpha,
            uniformity_bins=run.uniformity_bins,
            uniformity_level=run.uniformity_level,
            legacy_output=run.legacy_output,
            test_results=summaries,
            successful_tests=state.successful_tests,
            started_at=started_at,
            duration=timedelta(seconds=perf_counter() - timer_start),
        )
        if run.write_results:
            write_final_analysis_report(result, output_dir)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _summarise(self, test: StatisticalTest, state: RunState) -> TestSummary:
        if not test.enabled:
            return TestSummary(name=test.name, enabled=False, details=test.disabled_reason)
        counters = state.counters[test.name]
        return TestSummary(
            name=test.name,
            enabled=True,
            details=test.describe(),
            counters=replace(counters),
            metrics=test.metric_results,
        )


__all__ = ["RunResult", "StsApp", "TestSummary"]
