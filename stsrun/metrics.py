"""Proportion and uniformity analysis of the p-values collected for a test.

After every iteration finished, the p-value log of each test is split into
partitions (every ``partition_count``-th value, which keeps independent
sub-streams of multi-valued tests apart) and each partition is examined
twice:

``proportion``
    The number of p-values at or above ``alpha`` must fall inside the
    three-sigma band around the expected pass rate ``1 - alpha``.

``uniformity``
    The p-values are binned into ``uniformity_bins`` equal-width buckets and
    a chi-square goodness-of-fit statistic is turned into a p-value through
    the regularised upper incomplete gamma function.  The partition fails
    when that p-value drops below ``uniformity_level``.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np
from scipy.special import gammaincc

from .state import NON_P_VALUE

logger = logging.getLogger(__name__)


class MetricResult(enum.Enum):
    """Classification of a partition after the metrics phase."""

    PASSED_BOTH = "passed both"
    FAILED_PROPORTION = "failed proportion"
    FAILED_UNIFORMITY = "failed uniformity"
    FAILED_BOTH = "failed both"

    @property
    def passed(self) -> bool:
        return self is MetricResult.PASSED_BOTH


@dataclass(frozen=True)
class PartitionTally:
    """Raw counts gathered from one partition of the p-value log."""

    sample_count: int
    too_low: int
    bins: Tuple[int, ...]


@dataclass(frozen=True)
class PartitionMetrics:
    """Proportion and uniformity verdict for one partition."""

    partition: int
    sample_count: int
    too_low: int
    pass_count: int
    bins: Tuple[int, ...]
    proportion_min: float
    proportion_max: float
    expected_count: float
    chi2: float
    uniformity: float
    proportion_passed: bool
    uniformity_passed: bool

    @property
    def result(self) -> MetricResult:
        if not self.proportion_passed and not self.uniformity_passed:
            return MetricResult.FAILED_BOTH
        if not self.proportion_passed:
            return MetricResult.FAILED_PROPORTION
        if not self.uniformity_passed:
            return MetricResult.FAILED_UNIFORMITY
        return MetricResult.PASSED_BOTH


def partition_values(p_values: Sequence[float], partition: int, partition_count: int) -> Sequence[float]:
    """Return every ``partition_count``-th value starting at ``partition``."""

    return p_values[partition::partition_count]


def tally_partition(
    p_values: Iterable[float],
    *,
    alpha: float,
    bins: int,
    exclude_zero: bool = False,
) -> PartitionTally:
    """Count samples, too-low values and the uniformity histogram.

    ``NON_P_VALUE`` entries are skipped.  When ``exclude_zero`` is set,
    non-positive values are skipped as well; tests whose statistic is
    undefined for degenerate inputs report ``0.0`` for them.
    """

    values = np.fromiter((float(value) for value in p_values), dtype=float)
    values = values[values != NON_P_VALUE]
    if exclude_zero:
        values = values[values > 0.0]

    too_low = int(np.count_nonzero(values < alpha))
    indices = np.floor(np.clip(values, 0.0, None) * bins).astype(np.int64)
    indices = np.clip(indices, 0, bins - 1)
    histogram = np.bincount(indices, minlength=bins)
    return PartitionTally(
        sample_count=int(values.size),
        too_low=too_low,
        bins=tuple(int(count) for count in histogram),
    )


def proportion_bounds(sample_count: int, alpha: float) -> Tuple[float, float]:
    """Return the three-sigma acceptance band for the number of passes."""

    if sample_count <= 0:
        return 0.0, 0.0
    p_hat = 1.0 - alpha
    spread = 3.0 * math.sqrt((p_hat * alpha) / sample_count)
    return (p_hat - spread) * sample_count, (p_hat + spread) * sample_count


def uniformity_p_value(bins: Sequence[int], sample_count: int) -> Tuple[float, float, float]:
    """Return ``(expected_count, chi2, uniformity)`` for a histogram."""

    bin_count = len(bins)
    expected = sample_count / bin_count
    if expected <= 0.0:
        return expected, 0.0, 0.0
    observed = np.asarray(bins, dtype=float)
    chi2 = float(np.sum((observed - expected) ** 2 / expected))
    uniformity = float(gammaincc((bin_count - 1.0) / 2.0, chi2 / 2.0))
    return expected, chi2, uniformity


def evaluate_partition(
    tally: PartitionTally,
    *,
    alpha: float,
    uniformity_level: float,
    partition: int = 0,
) -> PartitionMetrics:
    """Apply the proportion and uniformity checks to ``tally``."""

    sample_count = tally.sample_count
    if sample_count <= 0 or sample_count < tally.too_low:
        pass_count = 0
    else:
        pass_count = sample_count - tally.too_low

    proportion_min, proportion_max = proportion_bounds(sample_count, alpha)
    expected, chi2, uniformity = uniformity_p_value(tally.bins, sample_count)

    proportion_passed = sample_count > 0 and proportion_min <= pass_count <= proportion_max
    uniformity_passed = expected > 0.0 and uniformity >= uniformity_level
    if not proportion_passed:
        logger.debug("partition %d failed the proportion check: %d/%d", partition, pass_count, sample_count)
    if not uniformity_passed:
        logger.debug("partition %d failed the uniformity check: %f", partition, uniformity)

    return PartitionMetrics(
        partition=partition,
        sample_count=sample_count,
        too_low=tally.too_low,
        pass_count=pass_count,
        bins=tally.bins,
        proportion_min=proportion_min,
        proportion_max=proportion_max,
        expected_count=expected,
        chi2=chi2,
        uniformity=uniformity,
        proportion_passed=proportion_passed,
        uniformity_passed=uniformity_passed,
    )


def analyse_p_values(
    p_values: Sequence[float],
    *,
    partition_count: int,
    alpha: float,
    bins: int,
    uniformity_level: float,
    exclude_zero: bool = False,
) -> Tuple[PartitionMetrics, ...]:
    """Tally and evaluate every partition of ``p_values``."""

    if partition_count < 1:
        raise ValueError(f"partition_count must be at least 1, got {partition_count}")
    values = list(p_values)
    results = []
    for partition in range(partition_count):
        tally = tally_partition(
            partition_values(values, partition, partition_count),
            alpha=alpha,
            bins=bins,
            exclude_zero=exclude_zero,
        )
        results.append(
            evaluate_partition(
                tally,
                alpha=alpha,
                uniformity_level=uniformity_level,
                partition=partition,
            )
        )
    return tuple(results)


__all__ = [
    "MetricResult",
    "PartitionMetrics",
    "PartitionTally",
    "analyse_p_values",
    "evaluate_partition",
    "partition_values",
    "proportion_bounds",
    "tally_partition",
    "uniformity_p_value",
]
