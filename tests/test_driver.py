"""Tests for :mod:`stsrun.driver`."""

from __future__ import annotations

import numpy as np
import pytest

from stsrun.config import RunSection
from stsrun.driver import IterationCoordinator
from stsrun.errors import TestExecutionError as ExecutionError
from stsrun.io import SequenceBitSource
from stsrun.state import RunState
from stsrun.tests.universal import MIN_BITSTREAM_LENGTH, UniversalTest


def _run(bits: np.ndarray, *, threads: int, iterations: int) -> tuple[RunState, int]:
    state = RunState(
        RunSection(bitstream_length=MIN_BITSTREAM_LENGTH, iterations=iterations, threads=threads)
    )
    test = UniversalTest()
    test.init(state)
    dispatched = IterationCoordinator(state, SequenceBitSource(bits, MIN_BITSTREAM_LENGTH)).run([test])
    return state, dispatched


def test_results_do_not_depend_on_thread_count() -> None:
    bits = np.random.default_rng(99).integers(0, 2, size=4 * MIN_BITSTREAM_LENGTH, dtype=np.uint8)

    single, single_done = _run(bits, threads=1, iterations=4)
    pooled, pooled_done = _run(bits, threads=3, iterations=4)

    assert single_done == pooled_done == 4
    assert single.counters["universal"] == pooled.counters["universal"]
    assert sorted(single.logs["universal"].p_values) == sorted(pooled.logs["universal"].p_values)
    assert sorted(stat.sum for stat in single.logs["universal"].stats) == sorted(
        stat.sum for stat in pooled.logs["universal"].stats
    )


def test_threads_are_capped_by_iterations() -> None:
    bits = np.random.default_rng(5).integers(0, 2, size=MIN_BITSTREAM_LENGTH, dtype=np.uint8)

    state, dispatched = _run(bits, threads=8, iterations=1)

    assert dispatched == 1
    assert state.counters["universal"].count == 1


def test_disabled_tests_are_skipped() -> None:
    state = RunState(RunSection(bitstream_length=100, iterations=2))
    test = UniversalTest()
    test.init(state)

    dispatched = IterationCoordinator(state, SequenceBitSource([0, 1] * 100, 100)).run([test])

    assert dispatched == 0
    assert state.counters == {}


class _BrokenTest(UniversalTest):
    def run_iteration(self, worker) -> None:
        raise RuntimeError("boom")


def test_unexpected_worker_errors_become_test_execution_errors() -> None:
    state = RunState(RunSection(bitstream_length=MIN_BITSTREAM_LENGTH, iterations=2, threads=2))
    test = _BrokenTest()
    test.init(state)
    bits = np.zeros(2 * MIN_BITSTREAM_LENGTH, dtype=np.uint8)

    with pytest.raises(ExecutionError) as excinfo:
        IterationCoordinator(state, SequenceBitSource(bits, MIN_BITSTREAM_LENGTH)).run([test])

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.exit_code == 4
