"""Unit tests for :mod:`stsrun.state`."""

from __future__ import annotations

import threading

import pytest

from stsrun.config import RunSection
from stsrun.state import NON_P_VALUE, OrderedLog, RunState


def test_ordered_log_preserves_insertion_order() -> None:
    log: OrderedLog[str] = OrderedLog()

    assert log.append("a") == 0
    assert log.append("b") == 1

    assert log.count() == 2
    assert len(log) == 2
    assert log.get(1) == "b"
    assert list(log) == ["a", "b"]


def test_ordered_log_rejects_out_of_range_index() -> None:
    log: OrderedLog[int] = OrderedLog()
    log.append(1)

    with pytest.raises(IndexError):
        log.get(1)
    with pytest.raises(IndexError):
        log.get(-1)


def test_register_allocates_fresh_counters_and_logs() -> None:
    state = RunState(RunSection())

    logs = state.register("universal", keep_stats=True)

    assert state.logs["universal"] is logs
    assert logs.stats is not None
    assert state.counters["universal"].count == 0
    assert state.register("other", keep_stats=False).stats is None


def test_record_updates_counters_by_outcome() -> None:
    state = RunState(RunSection())
    state.register("universal", keep_stats=True)

    state.record("universal", [0.5], stat="ok", failure=False)
    state.record("universal", [0.001], stat="low", failure=True)
    state.record("universal", [NON_P_VALUE], stat="bogus", failure=True, bogus=True)

    counters = state.counters["universal"]
    assert counters.count == 3
    assert counters.valid == 3
    assert counters.success == 1
    assert counters.failure == 2
    assert counters.valid_p_value == 2
    assert list(state.logs["universal"].p_values) == [0.5, 0.001, NON_P_VALUE]
    assert list(state.logs["universal"].stats) == ["ok", "low", "bogus"]


def test_release_drops_logs_but_keeps_counters() -> None:
    state = RunState(RunSection())
    state.register("universal", keep_stats=False)

    state.release("universal")
    state.release("universal")

    assert "universal" not in state.logs
    assert "universal" in state.counters


def test_concurrent_records_keep_logs_in_step() -> None:
    state = RunState(RunSection(threads=4, iterations=400))
    state.register("universal", keep_stats=True)

    def worker(thread_id: int) -> None:
        for iteration in range(thread_id, 400, 4):
            state.record("universal", [iteration / 400], stat=iteration, failure=iteration % 2 == 1)

    threads = [threading.Thread(target=worker, args=(thread_id,)) for thread_id in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    logs = state.logs["universal"]
    counters = state.counters["universal"]
    assert counters.count == 400
    assert counters.success == counters.failure == 200
    assert logs.p_values.count() == logs.stats.count() == 400
    for stat, p_value in zip(logs.stats, logs.p_values):
        assert p_value == stat / 400
