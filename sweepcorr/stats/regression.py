"""Provide the least-squares fit behind every prediction model.

The fit is deliberately plain (slope, intercept, R^2) so a model can be
rebuilt from the data points retained in a correlation result.
"""

from __future__ import annotations

import math
from typing import Dict, NamedTuple, Sequence

import numpy as np


class RegressionFit(NamedTuple):
    slope: float
    intercept: float
    r_squared: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "rSquared": self.r_squared,
        }


ZERO_FIT = RegressionFit(0.0, 0.0, 0.0)


def linear_regression(x: Sequence[float], y: Sequence[float]) -> RegressionFit:
    """Fit an ordinary least-squares straight line ``y = intercept + slope * x``.

    Args:
        x (Sequence[float]): Independent variable (a GPS error dimension).
        y (Sequence[float]): Dependent variable (a tuning parameter).

    Returns:
        RegressionFit: ``(slope, intercept, r_squared)``. The zero fit
        ``(0, 0, 0)`` is returned when the series differ in length or hold
        fewer than two points.

    Note:
        Degenerate inputs never raise:

        - zero variance in ``x``: slope ``0``, intercept ``mean(y)`` and
          ``r_squared`` ``0``, since x carries no information;
        - zero variance in ``y``: ``r_squared`` is ``1.0`` when the fitted
          line reproduces every ``y`` and ``nan`` otherwise. A non-finite
          ``r_squared`` marks the fit as unusable for prediction.

    References:
        Ordinary least squares linear regression.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if len(x_arr) != len(y_arr) or len(x_arr) < 2:
        return ZERO_FIT

    n = len(x_arr)
    sum_x = float(np.sum(x_arr))
    sum_y = float(np.sum(y_arr))
    sum_xy = float(np.sum(x_arr * y_arr))
    sum_x2 = float(np.sum(x_arr * x_arr))

    ssxx = n * sum_x2 - sum_x * sum_x
    if np.ptp(x_arr) == 0 or ssxx == 0:
        return RegressionFit(0.0, sum_y / n, 0.0)

    slope = (n * sum_xy - sum_x * sum_y) / ssxx
    intercept = (sum_y - slope * sum_x) / n

    yhat = slope * x_arr + intercept
    ss_residual = float(np.sum((y_arr - yhat) ** 2))

    if np.ptp(y_arr) == 0:
        r_squared = 1.0 if np.allclose(yhat, y_arr) else math.nan
    else:
        y_mean = sum_y / n
        ss_total = float(np.sum((y_arr - y_mean) ** 2))
        r_squared = 1.0 - ss_residual / ss_total

    return RegressionFit(float(slope), float(intercept), float(r_squared))
