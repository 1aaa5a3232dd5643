"""Statistical test suite runner for random bit generators."""

from .app import RunResult, StsApp, TestSummary
from .metrics import MetricResult, PartitionMetrics
from .state import NON_P_VALUE, OrderedLog, RunState

__all__ = [
    "MetricResult",
    "NON_P_VALUE",
    "OrderedLog",
    "PartitionMetrics",
    "RunResult",
    "RunState",
    "StsApp",
    "TestSummary",
]
