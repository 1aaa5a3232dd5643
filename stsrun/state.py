"""Run-wide shared state: ordered logs, counters and the coordination lock."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Generic, Iterator, List, TypeVar

from .config import RunSection

T = TypeVar("T")

NON_P_VALUE: float = -999.0
"""Sentinel stored in a p-value log when a p-value could not be computed."""


class OrderedLog(Generic[T]):
    """Append-only store preserving insertion order.

    Appends are expected to happen under the run lock; reads happen after all
    iterations completed.
    """

    def __init__(self) -> None:
        self._items: List[T] = []

    def append(self, record: T) -> int:
        """Append ``record`` and return its index."""

        self._items.append(record)
        return len(self._items) - 1

    def get(self, index: int) -> T:
        if index < 0 or index >= len(self._items):
            raise IndexError(f"OrderedLog index out of range: {index}")
        return self._items[index]

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(tuple(self._items))


@dataclass
class TestCounters:
    """Per-test tallies updated once per iteration under the run lock."""

    count: int = 0
    valid: int = 0
    failure: int = 0
    valid_p_value: int = 0
    success: int = 0


@dataclass
class TestLogs:
    """Logs accumulated by one test during the iterate phase."""

    p_values: OrderedLog[float] = field(default_factory=OrderedLog)
    stats: OrderedLog[object] | None = None


class RunState:
    """Explicit context object passed to every lifecycle phase.

    ``lock`` serialises the only critical section of the run: the counter
    updates and log appends recorded at the end of each iteration.
    """

    def __init__(self, run: RunSection, *, lock: threading.Lock | None = None) -> None:
        self.run = run
        self.lock = lock if lock is not None else threading.Lock()
        self.counters: Dict[str, TestCounters] = {}
        self.logs: Dict[str, TestLogs] = {}
        self.successful_tests = 0
        self.max_general_sample_size = 0
        self.max_excursion_sample_size = 0

    @property
    def threads(self) -> int:
        return self.run.threads

    @property
    def iterations(self) -> int:
        return self.run.iterations

    def register(self, name: str, *, keep_stats: bool) -> TestLogs:
        """Allocate the counters and logs used by test ``name``."""

        logs = TestLogs(stats=OrderedLog() if keep_stats else None)
        with self.lock:
            self.counters[name] = TestCounters()
            self.logs[name] = logs
        return logs

    def release(self, name: str) -> None:
        with self.lock:
            self.logs.pop(name, None)

    def record(
        self,
        name: str,
        p_values: List[float],
        *,
        stat: object | None = None,
        failure: bool,
        bogus: bool = False,
    ) -> None:
        """Record the outcome of one iteration atomically.

        The counters and both log appends happen inside a single critical
        section so readers never observe one without the other.
        """

        with self.lock:
            counters = self.counters[name]
            logs = self.logs[name]
            counters.count += 1
            counters.valid += 1
            if failure:
                counters.failure += 1
            else:
                counters.success += 1
            if not bogus:
                counters.valid_p_value += 1
            if logs.stats is not None and stat is not None:
                logs.stats.append(stat)
            for p_value in p_values:
                logs.p_values.append(p_value)


__all__ = [
    "NON_P_VALUE",
    "OrderedLog",
    "RunState",
    "TestCounters",
    "TestLogs",
]
