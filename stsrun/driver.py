"""Concurrent execution of the iterate phase.

A fixed pool of worker threads shares the iterations of a run.  Worker
``t`` of ``T`` handles iterations ``t, t + T, t + 2T, ...``, so every
iteration runs to completion on exactly one worker, and a worker only ever
touches the scratch state a test allocated for its ``thread_id``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from .errors import StsError, TestExecutionError
from .io import BitSource
from .state import RunState
from .tests.base import StatisticalTest, WorkerContext

logger = logging.getLogger(__name__)


class IterationCoordinator:
    """Dispatch one call of every enabled test per bitstream across workers."""

    def __init__(self, state: RunState, bit_source: BitSource) -> None:
        self.state = state
        self.bit_source = bit_source

    def run(self, tests: Sequence[StatisticalTest]) -> int:
        """Run all iterations and return how many were dispatched.

        Exceptions raised inside a worker are re-raised here once every
        worker stopped.
        """

        active = [test for test in tests if test.enabled]
        if not active:
            logger.info("no enabled tests; skipping the iterate phase")
            return 0

        threads = min(self.state.threads, self.state.iterations)
        logger.debug(
            "running %d iterations of %s on %d worker threads",
            self.state.iterations,
            ", ".join(test.name for test in active),
            threads,
        )
        if threads == 1:
            return self._work(0, 1, active)

        with ThreadPoolExecutor(max_workers=threads, thread_name_prefix="sts-worker") as executor:
            futures = [executor.submit(self._work, thread_id, threads, active) for thread_id in range(threads)]
            return sum(future.result() for future in futures)

    def _work(self, thread_id: int, stride: int, tests: Sequence[StatisticalTest]) -> int:
        done = 0
        for iteration in range(thread_id, self.state.iterations, stride):
            epsilon = self.bit_source.bitstream(iteration)
            worker = WorkerContext(
                state=self.state,
                thread_id=thread_id,
                iteration=iteration,
                epsilon=epsilon,
            )
            for test in tests:
                try:
                    test.iterate(worker)
                except StsError:
                    raise
                except Exception as exc:
                    raise TestExecutionError(
                        f"Test '{test.name}' failed on iteration {iteration + 1}."
                    ) from exc
            done += 1
        return done


__all__ = ["IterationCoordinator"]
