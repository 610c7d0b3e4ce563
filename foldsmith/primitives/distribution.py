"""Empirical distribution comparisons.

Two-sample Kolmogorov-Smirnov distance and histogram overlap, used to match
nearest-neighbour distance distributions and to compare train/test covariates.
"""

import numpy as np


def ecdf(sample: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Empirical CDF of ``sample`` evaluated at ``x``."""
    ordered = np.sort(np.asarray(sample, dtype=np.float64))
    if len(ordered) == 0:
        raise ValueError("ECDF of an empty sample is undefined")
    return np.searchsorted(ordered, x, side="right") / len(ordered)


def ks_statistic(
    reference: np.ndarray, sample: np.ndarray, assume_sorted: bool = False
) -> float:
    """Two-sample Kolmogorov-Smirnov distance sup|F_ref - F_sample|.

    Gives the same value as ``scipy.stats.ks_2samp(reference, sample).statistic``
    but skips the p-value, which matters inside search loops.

    Args:
        reference: First sample.
        sample: Second sample. May contain ``inf``.
        assume_sorted: Both inputs are already sorted ascending.

    Returns:
        KS distance in [0, 1].
    """
    if assume_sorted:
        ref, smp = np.asarray(reference), np.asarray(sample)
    else:
        ref, smp = np.sort(reference), np.sort(sample)
    if len(ref) == 0 or len(smp) == 0:
        raise ValueError("KS distance needs two non-empty samples")
    support = np.concatenate([ref, smp])
    cdf_ref = np.searchsorted(ref, support, side="right") / len(ref)
    cdf_smp = np.searchsorted(smp, support, side="right") / len(smp)
    return float(np.max(np.abs(cdf_ref - cdf_smp)))


def overlap_coefficient(first: np.ndarray, second: np.ndarray, n_bins: int = 20) -> float:
    """Shared probability mass of two histograms on common bins.

    Args:
        first: First sample.
        second: Second sample.
        n_bins: Number of equal-width bins over the pooled range.

    Returns:
        Overlap in [0, 1]; 1 means identical binned distributions. NaN when a
        sample is empty.
    """
    first = np.asarray(first, dtype=np.float64)
    second = np.asarray(second, dtype=np.float64)
    first, second = first[np.isfinite(first)], second[np.isfinite(second)]
    if len(first) == 0 or len(second) == 0:
        return float("nan")
    low = min(first.min(), second.min())
    high = max(first.max(), second.max())
    if high == low:
        return 1.0
    hist_a, _ = np.histogram(first, bins=n_bins, range=(low, high))
    hist_b, _ = np.histogram(second, bins=n_bins, range=(low, high))
    return float(np.minimum(hist_a / len(first), hist_b / len(second)).sum())
