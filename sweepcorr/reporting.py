"""Format correlation and prediction results as human-readable text and tables.

This module is used after numerical analysis, for log output and for the
tables written by ``sweepcorr.output``.
"""

from __future__ import annotations

from typing import Dict, Mapping, Tuple

import numpy as np
import pandas as pd

from .analysis import find_strongest_correlations
from .schema import CorrelationMatrix, CorrelationResult, PredictionModel
from .stats.regression import RegressionFit

DISPLAY_THRESHOLD = 0.3
DISPLAY_LIMIT = 20

PREDICTION_COLUMNS = ["Parameter", "Predicted Value", "Based On", "R2"]


def _fixed(value: float, decimals: int) -> str:
    """Fixed-point text; non-finite values print as ``nan``/``inf``."""
    v = float(value)
    if not np.isfinite(v):
        return str(v)
    return f"{v:.{decimals}f}"


def format_linear_equation(fit: RegressionFit) -> str:
    """Render a fit as ``y = <intercept> + <slope>x`` with 4 decimals.

    Args:
        fit (RegressionFit): Output of ``linear_regression``.

    Returns:
        str: Equation text, e.g. ``"y = 0.0100 + 2.0000x"``.
    """
    return f"y = {_fixed(fit.intercept, 4)} + {_fixed(fit.slope, 4)}x"


def format_correlation_info(result: CorrelationResult, fit: RegressionFit) -> str:
    """Summarize one pair: coefficient, R^2, equation and point count.

    Args:
        result (CorrelationResult): The pair's correlation.
        fit (RegressionFit): Regression over ``result.data_points``.

    Returns:
        str: Multi-line text block.
    """
    lines = [
        f"Correlation: {result.x_label} -> {result.y_label}",
        f"  r = {_fixed(result.coefficient, 4)}",
        f"  R^2 = {_fixed(fit.r_squared, 4)}",
        f"  {format_linear_equation(fit)}",
        f"  n = {result.n_points}",
    ]
    if np.isfinite(result.p_value):
        lines.append(f"  p = {result.p_value:.4g}")
    return "\n".join(lines)


def format_top_correlations(
    matrix: CorrelationMatrix,
    threshold: float = DISPLAY_THRESHOLD,
    limit: int = DISPLAY_LIMIT,
) -> str:
    """List the strongest pairs, one ``dim -> param: r = ...`` line each.

    Note:
        Pairs are selected with ``|r| >= threshold`` and at most ``limit``
        lines are shown.
    """
    strongest = find_strongest_correlations(matrix, threshold)
    lines = [f"Top Correlations (|r| > {threshold}):", ""]
    for corr in strongest[:limit]:
        lines.append(
            f"{corr.x_label} -> {corr.y_label}: r = {_fixed(corr.coefficient, 4)}"
        )
    if not strongest:
        lines.append("(none)")
    return "\n".join(lines)


def prediction_table(
    selected: Mapping[str, Tuple[float, PredictionModel]],
) -> pd.DataFrame:
    """Build the prediction table from ``select_prediction_models`` output.

    Each row names the model that actually produced the prediction.
    """
    rows = [
        {
            "Parameter": param,
            "Predicted Value": float(value),
            "Based On": model.input_dimension,
            "R2": float(model.r_squared),
        }
        for param, (value, model) in selected.items()
    ]
    return pd.DataFrame(rows, columns=PREDICTION_COLUMNS)


def format_prediction_table(
    selected: Mapping[str, Tuple[float, PredictionModel]],
) -> str:
    if not selected:
        return "No predictions passed the model quality gate."
    lines = ["Parameter | Predicted Value | Based On | R2"]
    for param, (value, model) in selected.items():
        lines.append(
            f"{param} | {_fixed(value, 6)} | {model.input_dimension} | "
            f"{_fixed(model.r_squared, 4)}"
        )
    return "\n".join(lines)


def summarize_counts(matrix: CorrelationMatrix) -> Dict[str, int]:
    """Count dimensions, parameters and pairs in a matrix."""
    first_row = next(iter(matrix.values()), {})
    return {
        "dimensions": len(matrix),
        "parameters": len(first_row),
        "pairs": sum(len(row) for row in matrix.values()),
    }
