"""Statistical tests sharing the init/iterate/print/metrics/destroy lifecycle."""

from .base import StatisticalTest, WorkerContext, classify_p_value
from .factory import DEFAULT_TESTS, build_test_suite
from .universal import (
    ScratchTable,
    UniversalParameters,
    UniversalTest,
    derive_parameters,
    run_universal,
)

__all__ = [
    "DEFAULT_TESTS",
    "ScratchTable",
    "StatisticalTest",
    "UniversalParameters",
    "UniversalTest",
    "WorkerContext",
    "build_test_suite",
    "classify_p_value",
    "derive_parameters",
    "run_universal",
]
