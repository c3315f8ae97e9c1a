"""Provide the Pearson correlation used to build GPS-error/parameter matrices.

This module supports:
- sum-of-products Pearson coefficients that never return NaN or Infinity, and
- an optional Student-t significance test for each coefficient.
"""

from __future__ import annotations

import importlib.util
import math
from typing import Sequence

import numpy as np

HAVE_SCIPY = importlib.util.find_spec("scipy") is not None
if HAVE_SCIPY:
    from scipy.stats import t as student_t


def _variance_term(values: np.ndarray) -> float:
    if np.ptp(values) == 0:
        return 0.0
    n = len(values)
    total = float(np.sum(values))
    term = n * float(np.sum(values * values)) - total * total
    # Cancellation can push a tiny spread to zero or below.
    return max(term, 0.0)


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Compute the Pearson correlation coefficient of two equal-length series.

    Args:
        x (Sequence[float]): Independent-variable values.
        y (Sequence[float]): Dependent-variable values paired with ``x``.

    Returns:
        float: Coefficient in [-1, 1]. ``0.0`` when the series are empty,
        differ in length, have no finite pairs, or either has zero variance.

    Note:
        Uses the sum-of-products form
        ``r = (nΣxy − ΣxΣy) / sqrt((nΣx² − (Σx)²)(nΣy² − (Σy)²))``
        over the pairs where both values are finite.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if len(x_arr) != len(y_arr) or len(x_arr) == 0:
        return 0.0

    mask = np.isfinite(x_arr) & np.isfinite(y_arr)
    x_arr = x_arr[mask]
    y_arr = y_arr[mask]
    if len(x_arr) == 0:
        return 0.0

    n = len(x_arr)
    sxx = _variance_term(x_arr)
    syy = _variance_term(y_arr)
    denominator = math.sqrt(sxx * syy)
    if denominator == 0:
        return 0.0

    numerator = n * float(np.sum(x_arr * y_arr)) - float(np.sum(x_arr)) * float(
        np.sum(y_arr)
    )
    r = numerator / denominator
    if not np.isfinite(r):
        return 0.0
    return float(min(1.0, max(-1.0, r)))


def correlation_p_value(r: float, n: int) -> float:
    """Two-sided p-value for the null hypothesis of zero correlation.

    Args:
        r (float): Pearson coefficient.
        n (int): Number of paired observations behind ``r``.

    Returns:
        float: p-value from a Student-t test with ``n - 2`` degrees of
        freedom; ``nan`` when ``n < 3``, ``r`` is non-finite, or scipy is
        not installed.
    """
    if n < 3 or not np.isfinite(r) or not HAVE_SCIPY:
        return math.nan
    if abs(r) >= 1.0:
        return 0.0

    dof = n - 2
    t_stat = r * math.sqrt(dof / (1.0 - r * r))
    return float(2 * student_t.sf(abs(t_stat), dof))
