"""Timing and profiling helpers for the iterate and metrics phases."""

from __future__ import annotations

import cProfile
import io
import pstats
import statistics
import timeit
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Mapping, Sequence

import numpy as np

from .app import StsApp
from .metrics import analyse_p_values
from .tests.universal import ScratchTable, derive_parameters, run_universal


def _summarise_runs(target: Callable[[], object], repeat: int) -> Mapping[str, float]:
    runs = timeit.repeat(target, repeat=repeat, number=1)
    return {"min": min(runs), "max": max(runs), "mean": statistics.fmean(runs)}


def benchmark_universal(epsilon: np.ndarray, *, repeat: int = 5) -> Mapping[str, float]:
    """Time one Universal iteration over ``epsilon``, reusing a single table."""

    params = derive_parameters(int(epsilon.size))
    table = ScratchTable(params.L)
    return _summarise_runs(lambda: run_universal(epsilon, params, table), repeat)


def benchmark_metrics(
    p_values: Sequence[float],
    *,
    partition_count: int = 1,
    bins: int = 10,
    repeat: int = 5,
) -> Mapping[str, float]:
    """Time the proportion and uniformity analysis of ``p_values``."""

    values = list(p_values)
    return _summarise_runs(
        lambda: analyse_p_values(
            values, partition_count=partition_count, alpha=0.01, bins=bins, uniformity_level=0.0001
        ),
        repeat,
    )


def profile_application(input_path: Path, config_path: Path, *, repeat: int = 1, limit: int = 25) -> str:
    """Run the whole application under :mod:`cProfile` and return the report."""

    app = StsApp()
    profiler = cProfile.Profile()
    for _ in range(repeat):
        profiler.runcall(app.run, input_path, config_path)
    return _render(profiler, limit)


@contextmanager
def capture_profile(app: StsApp | None = None) -> Iterator[tuple[StsApp, Callable[[int], str]]]:
    """Profile everything run inside the ``with`` block.

    Yields the application to drive and a function rendering the top
    ``limit`` entries; rendering stops the profiler.
    """

    profiler = cProfile.Profile()
    profiler.enable()
    try:
        yield app or StsApp(), lambda limit=25: _render(profiler, limit)
    finally:
        profiler.disable()


def _render(profiler: cProfile.Profile, limit: int) -> str:
    profiler.disable()
    buffer = io.StringIO()
    pstats.Stats(profiler, stream=buffer).strip_dirs().sort_stats("cumulative").print_stats(limit)
    return buffer.getvalue()


__all__ = [
    "benchmark_metrics",
    "benchmark_universal",
    "capture_profile",
    "profile_application",
]
