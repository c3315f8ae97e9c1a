"""
Statistical utilities for sweep correlation analysis.

This subpackage provides the numerical primitives the correlation matrix and
prediction models are built from. All functions operate on sequences and
primitive types; no knowledge of GPS errors or Kalman parameters is included.

Modules:
    correlation:
        Pearson correlation via the sum-of-products formula, returning 0
        instead of NaN for empty or zero-variance series, plus a Student-t
        p-value when scipy is available.

    regression:
        Ordinary least-squares line fit returning slope, intercept and R^2,
        with defined results for degenerate inputs.

Design Principle:
    This subpackage never raises on data shape. Mismatched, empty or
    constant series produce neutral results.
"""

from .correlation import correlation_p_value, pearson_correlation
from .regression import RegressionFit, linear_regression

__all__ = [
    "pearson_correlation",
    "correlation_p_value",
    "RegressionFit",
    "linear_regression",
]
