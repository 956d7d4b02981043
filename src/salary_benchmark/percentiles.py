"""Percentile computation over salary samples.

Percentiles use linear interpolation between adjacent order statistics at the
1-based fractional rank L = (P / 100) * (n + 1). Ranks below the first element
or at/above the last element clamp to the nearest order statistic instead of
extrapolating.
"""

import math
from typing import Iterable, Sequence

from salary_benchmark.models import SalaryStats

BENCHMARK_PERCENTILES = (25, 50, 75)


def percentile_at(sorted_sample: Sequence[float], percentile: float) -> float:
    """
    Compute a percentile from an ascending sample.

    Args:
        sorted_sample: Sample sorted in ascending order
        percentile: Target percentile (e.g. 25, 50, 75)

    Returns:
        float: Interpolated value, or 0 for an empty sample
    """
    n = len(sorted_sample)
    if n == 0:
        return 0
    if n == 1:
        return sorted_sample[0]

    rank = (percentile / 100) * (n + 1)
    k = math.floor(rank)
    d = rank - k
    idx = k - 1

    if idx < 0:
        return sorted_sample[0]
    if idx >= n - 1:
        return sorted_sample[n - 1]

    lower = sorted_sample[idx]
    upper = sorted_sample[idx + 1]
    return lower + (upper - lower) * d


def compute_stats(sample: Iterable[float]) -> SalaryStats:
    """
    Summarize a numeric sample as min / P25 / P50 / P75 / max and size.

    Args:
        sample: Salary values in any order

    Returns:
        SalaryStats: All-zero stats when the sample is empty
    """
    ordered = sorted(sample)
    n = len(ordered)

    if n == 0:
        return SalaryStats()

    p25, p50, p75 = (percentile_at(ordered, p) for p in BENCHMARK_PERCENTILES)
    return SalaryStats(
        min=ordered[0],
        p25=p25,
        p50=p50,
        p75=p75,
        max=ordered[n - 1],
        sample_size=n,
    )
