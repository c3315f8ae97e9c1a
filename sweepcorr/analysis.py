"""
GPS error / Kalman parameter correlation analysis.

This module relates the GPS error profile each optimizer run was simulated
with to the tuning parameters the optimizer produced:
- A correlation matrix holds the Pearson coefficient for every
  (GPS error dimension, parameter) pair, computed over the observations where
  both values are finite. The finite points are kept with each result.
- The strongest pairs (by |r|) are turned into linear prediction models,
  y = intercept + slope * x, fitted to those retained points.
- Predictions for a new GPS error profile use only models whose R^2 is above
  a quality gate (0.3 by default).

Every function here is pure: inputs are read, never modified, and results
are freshly allocated.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import pandas as pd

from .aggregation import (
    aggregate_observations,
    extract_gps_error_dimensions,
    is_finite_number,
)
from .schema import (
    CorrelationMatrix,
    CorrelationResult,
    DataPoint,
    Observation,
    PredictionModel,
    ResultColumns,
)
from .stats.correlation import correlation_p_value, pearson_correlation
from .stats.regression import RegressionFit, linear_regression

DEFAULT_STRENGTH_THRESHOLD = 0.5
DEFAULT_TOP_N = 10
MIN_PREDICTION_R2 = 0.3
CONFLICT_POLICIES = ("last", "best_r2")


def _pair_points(
    observations: Sequence[Observation], dimension: str, parameter: str
) -> Tuple[DataPoint, ...]:
    points = []
    for obs in observations:
        x_val = obs.input_vector.get(dimension)
        y_val = obs.output_vector.get(parameter)
        if is_finite_number(x_val) and is_finite_number(y_val):
            points.append(DataPoint(float(x_val), float(y_val), obs.label))
    return tuple(points)


def build_correlation_matrix(observations: Sequence[Observation]) -> CorrelationMatrix:
    """Correlate every GPS error dimension with every output parameter.

    Args:
        observations: Aggregated runs/sections, in the order they should be
            reported.

    Returns:
        CorrelationMatrix: ``matrix[dimension][parameter]`` for the keys of
        the first observation's input and output vectors. Empty when there
        are no observations.

    Note:
        Later observations missing a key (or holding a non-finite value) are
        left out of that pair only, so its ``n_points`` is lower.
    """
    matrix: CorrelationMatrix = {}
    if not observations:
        return matrix

    dimensions = list(observations[0].input_vector.keys())
    parameters = list(observations[0].output_vector.keys())

    for dimension in dimensions:
        row: Dict[str, CorrelationResult] = {}
        for parameter in parameters:
            points = _pair_points(observations, dimension, parameter)
            coefficient = pearson_correlation(
                [p.x for p in points], [p.y for p in points]
            )
            row[parameter] = CorrelationResult(
                x_label=dimension,
                y_label=parameter,
                coefficient=coefficient,
                data_points=points,
                p_value=correlation_p_value(coefficient, len(points)),
            )
        matrix[dimension] = row

    return matrix


def correlation_matrix_from_files(files: Iterable[Any]) -> CorrelationMatrix:
    return build_correlation_matrix(aggregate_observations(files))


def _all_results(matrix: CorrelationMatrix) -> List[CorrelationResult]:
    return [result for row in matrix.values() for result in row.values()]


def _rank_by_strength(results: List[CorrelationResult]) -> List[CorrelationResult]:
    # sorted() is stable, so equal |r| keep matrix order.
    return sorted(results, key=lambda r: abs(r.coefficient), reverse=True)


def find_strongest_correlations(
    matrix: CorrelationMatrix, threshold: float = DEFAULT_STRENGTH_THRESHOLD
) -> List[CorrelationResult]:
    """Results with ``|r| >= threshold``, strongest first."""
    strong = [r for r in _all_results(matrix) if abs(r.coefficient) >= threshold]
    return _rank_by_strength(strong)


def build_prediction_model(correlation: CorrelationResult) -> PredictionModel:
    fit = linear_regression(correlation.x_values, correlation.y_values)
    return PredictionModel(
        input_dimension=correlation.x_label,
        output_parameter=correlation.y_label,
        model_type="linear",
        coefficients=(fit.intercept, fit.slope),
        r_squared=fit.r_squared,
    )


def top_prediction_models(
    matrix: CorrelationMatrix, top_n: int = DEFAULT_TOP_N
) -> List[PredictionModel]:
    """Fit models for the ``top_n`` strongest pairs, with no threshold applied."""
    ranked = _rank_by_strength(_all_results(matrix))[: max(int(top_n), 0)]
    return [build_prediction_model(corr) for corr in ranked]


def regression_for_pair(
    matrix: CorrelationMatrix, dimension: str, parameter: str
) -> Tuple[CorrelationResult, RegressionFit]:
    """Look up one pair and fit a line to its retained points.

    Raises:
        KeyError: If the dimension or parameter is not in the matrix.
    """
    try:
        correlation = matrix[dimension][parameter]
    except KeyError:
        raise KeyError(
            f"No correlation for dimension {dimension!r} and parameter {parameter!r}"
        ) from None
    return correlation, linear_regression(correlation.x_values, correlation.y_values)


def select_prediction_models(
    input_vector: Mapping[str, Any],
    models: Iterable[PredictionModel],
    min_r2: float = MIN_PREDICTION_R2,
    on_conflict: str = "last",
) -> Dict[str, Tuple[float, PredictionModel]]:
    """Evaluate models on one input and keep the prediction chosen per parameter.

    Args:
        input_vector: GPS error dimension -> value for the new profile.
        models: Fitted models, usually from ``top_prediction_models``.
        min_r2: Quality gate; a model must have finite R^2 above this value.
        on_conflict: ``"last"`` lets later models overwrite earlier ones for
            the same parameter; ``"best_r2"`` keeps the model with the higher
            R^2 (the earlier model on ties).

    Returns:
        dict[str, tuple[float, PredictionModel]]: Parameter -> (predicted
        value, model that produced it).

    Raises:
        ValueError: If ``on_conflict`` is not a known policy.
    """
    if on_conflict not in CONFLICT_POLICIES:
        raise ValueError(
            f"Unknown conflict policy {on_conflict!r}; expected one of {CONFLICT_POLICIES}"
        )

    selected: Dict[str, Tuple[float, PredictionModel]] = {}
    for model in models:
        value = input_vector.get(model.input_dimension)
        if not is_finite_number(value) or len(model.coefficients) < 2:
            continue
        if not model.is_usable(min_r2):
            continue

        previous = selected.get(model.output_parameter)
        if (
            on_conflict == "best_r2"
            and previous is not None
            and previous[1].r_squared >= model.r_squared
        ):
            continue
        selected[model.output_parameter] = (model.evaluate(float(value)), model)

    return selected


def predict_parameters(
    input_vector: Mapping[str, Any],
    models: Iterable[PredictionModel],
    min_r2: float = MIN_PREDICTION_R2,
    on_conflict: str = "last",
) -> Dict[str, float]:
    """Predict tuning parameters for a new GPS error profile.

    Returns:
        dict[str, float]: Output parameter -> ``intercept + slope * x`` for
        each model that passes the R^2 gate. Parameters without a usable
        model are omitted.
    """
    selected = select_prediction_models(
        input_vector, models, min_r2=min_r2, on_conflict=on_conflict
    )
    return {param: value for param, (value, _) in selected.items()}


def predict_from_gps_error(
    gps_error: Any,
    models: Iterable[PredictionModel],
    min_r2: float = MIN_PREDICTION_R2,
    on_conflict: str = "last",
) -> Dict[str, float]:
    return predict_parameters(
        extract_gps_error_dimensions(gps_error),
        models,
        min_r2=min_r2,
        on_conflict=on_conflict,
    )


def correlation_dataframe(matrix: CorrelationMatrix) -> pd.DataFrame:
    cols = ResultColumns()
    rows = []
    for dimension, row in matrix.items():
        for parameter, result in row.items():
            rows.append(
                {
                    cols.dimension: dimension,
                    cols.parameter: parameter,
                    cols.coefficient: result.coefficient,
                    cols.p_value: result.p_value,
                    cols.n_points: result.n_points,
                }
            )
    return pd.DataFrame(
        rows,
        columns=[
            cols.dimension,
            cols.parameter,
            cols.coefficient,
            cols.p_value,
            cols.n_points,
        ],
    )


def models_dataframe(models: Iterable[PredictionModel]) -> pd.DataFrame:
    cols = ResultColumns()
    rows = [
        {
            cols.dimension: m.input_dimension,
            cols.parameter: m.output_parameter,
            cols.intercept: m.intercept,
            cols.slope: m.slope,
            cols.r_squared: m.r_squared,
        }
        for m in models
    ]
    return pd.DataFrame(
        rows,
        columns=[
            cols.dimension,
            cols.parameter,
            cols.intercept,
            cols.slope,
            cols.r_squared,
        ],
    )
