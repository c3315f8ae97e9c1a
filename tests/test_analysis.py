import math

import numpy as np
import pytest

from sweepcorr.analysis import (
    build_correlation_matrix,
    build_prediction_model,
    correlation_dataframe,
    correlation_matrix_from_files,
    find_strongest_correlations,
    predict_from_gps_error,
    predict_parameters,
    regression_for_pair,
    select_prediction_models,
    top_prediction_models,
)
from sweepcorr.schema import CorrelationResult, DataPoint, Observation, PredictionModel


def _obs(inputs, outputs, label):
    return Observation(input_vector=inputs, output_vector=outputs, label=label)


def _matrix_with_coefficients(coefficients):
    return {
        "d1": {
            f"p{i}": CorrelationResult("d1", f"p{i}", coef)
            for i, coef in enumerate(coefficients)
        }
    }


def test_end_to_end_two_observations():
    observations = [
        _obs({"d1": 1.0}, {"p1": 2.0}, "run 0"),
        _obs({"d1": 2.0}, {"p1": 4.0}, "run 1"),
    ]
    matrix = build_correlation_matrix(observations)
    result = matrix["d1"]["p1"]
    assert np.isclose(result.coefficient, 1.0)
    assert [p.label for p in result.data_points] == ["run 0", "run 1"]

    model = build_prediction_model(result)
    assert model.model_type == "linear"
    assert np.isclose(model.slope, 2.0)
    assert np.isclose(model.intercept, 0.0)
    assert np.isclose(model.r_squared, 1.0)

    predictions = predict_parameters({"d1": 3.0}, [model])
    assert predictions.keys() == {"p1"}
    assert np.isclose(predictions["p1"], 6.0)


def test_matrix_uses_first_observation_keys_and_skips_missing_values():
    observations = [
        _obs({"d1": 1.0, "d2": 0.5}, {"p1": 1.0, "p2": 3.0}, "a"),
        _obs({"d1": 2.0, "d2": 0.7}, {"p1": 2.0}, "b"),
        _obs({"d1": 3.0, "d2": 0.2}, {"p1": 2.5, "p2": float("nan")}, "c"),
        _obs({"d1": 4.0, "d2": 0.9, "d3": 1.0}, {"p1": 5.0, "p2": 4.0, "p3": 1.0}, "d"),
    ]
    matrix = build_correlation_matrix(observations)

    assert list(matrix) == ["d1", "d2"]
    assert all(list(row) == ["p1", "p2"] for row in matrix.values())
    assert matrix["d1"]["p1"].n_points == 4
    assert matrix["d1"]["p2"].n_points == 2
    assert [p.label for p in matrix["d1"]["p2"].data_points] == ["a", "d"]


def test_non_finite_inputs_are_filtered():
    observations = [
        _obs({"d1": 1.0}, {"p1": 1.0}, "a"),
        _obs({"d1": float("inf")}, {"p1": 9.0}, "b"),
        _obs({"d1": 2.0}, {"p1": 2.0}, "c"),
        _obs({"d1": 3.0}, {"p1": 3.0}, "d"),
    ]
    result = build_correlation_matrix(observations)["d1"]["p1"]
    assert result.n_points == 3
    assert np.isclose(result.coefficient, 1.0)


def test_empty_observations_give_empty_matrix():
    matrix = build_correlation_matrix([])
    assert matrix == {}
    assert find_strongest_correlations(matrix) == []
    assert top_prediction_models(matrix) == []
    assert correlation_matrix_from_files([]) == {}


def test_find_strongest_applies_threshold():
    matrix = _matrix_with_coefficients([0.5, -0.5, 0.5])
    assert find_strongest_correlations(matrix, threshold=0.9) == []
    assert len(find_strongest_correlations(matrix, threshold=0.5)) == 3


def test_find_strongest_sorts_by_magnitude_and_is_stable():
    matrix = _matrix_with_coefficients([0.6, -0.9, 0.2, 0.9, -0.7])
    strongest = find_strongest_correlations(matrix, threshold=0.5)
    assert [r.y_label for r in strongest] == ["p1", "p3", "p4", "p0"]


def test_top_models_truncates_and_orders():
    observations = [
        _obs({"d1": x}, {"p1": 2 * x, "p2": (-1) ** int(x) + 0.1 * x, "p3": 5.0 - x}, f"r{x}")
        for x in [1.0, 2.0, 3.0, 4.0, 5.0]
    ]
    matrix = build_correlation_matrix(observations)
    models = top_prediction_models(matrix, 2)
    assert len(models) == 2
    assert {m.output_parameter for m in models} == {"p1", "p3"}
    assert np.isclose(models[0].slope, 2.0)
    assert np.isclose(models[1].slope, -1.0)

    assert len(top_prediction_models(matrix, 10)) == 3
    assert top_prediction_models(matrix, 0) == []


def test_prediction_quality_gate():
    weak = PredictionModel("d1", "p1", coefficients=(1.0, 2.0), r_squared=0.3)
    strong = PredictionModel("d1", "p2", coefficients=(1.0, 2.0), r_squared=0.31)
    unusable = PredictionModel("d1", "p3", coefficients=(1.0, 2.0), r_squared=float("nan"))

    predictions = predict_parameters({"d1": 2.0}, [weak, strong, unusable])
    assert predictions == {"p2": 5.0}


def test_prediction_skips_missing_dimensions():
    model = PredictionModel("d9", "p1", coefficients=(1.0, 2.0), r_squared=0.9)
    assert predict_parameters({"d1": 2.0}, [model]) == {}


def test_prediction_collision_policies():
    first = PredictionModel("d1", "p1", coefficients=(0.0, 1.0), r_squared=0.9)
    second = PredictionModel("d2", "p1", coefficients=(10.0, 1.0), r_squared=0.5)
    inputs = {"d1": 1.0, "d2": 1.0}

    assert predict_parameters(inputs, [first, second]) == {"p1": 11.0}
    assert predict_parameters(inputs, [first, second], on_conflict="best_r2") == {"p1": 1.0}

    selected = select_prediction_models(inputs, [first, second], on_conflict="best_r2")
    assert selected["p1"][1] is first


def test_unknown_conflict_policy_raises():
    with pytest.raises(ValueError, match="Unknown conflict policy"):
        predict_parameters({}, [], on_conflict="average")


def test_predict_from_gps_error_block():
    model = PredictionModel("fuzziness.velocity.y", "qVelocityY", coefficients=(0.5, 2.0), r_squared=0.8)
    gps_error = {"fuzziness": {"velocity": {"y": 0.25}}}
    assert predict_from_gps_error(gps_error, [model]) == {"qVelocityY": 1.0}


def test_build_model_from_retained_points_only():
    result = CorrelationResult(
        "d1",
        "p1",
        1.0,
        data_points=(DataPoint(0.0, 1.0, "a"), DataPoint(1.0, 3.0, "b"), DataPoint(2.0, 5.0, "c")),
    )
    model = build_prediction_model(result)
    assert model.coefficients == pytest.approx((1.0, 2.0))
    assert model.input_dimension == "d1"
    assert model.output_parameter == "p1"


def test_regression_for_pair_and_unknown_pair():
    observations = [_obs({"d1": float(x)}, {"p1": 3.0 * x + 1.0}, str(x)) for x in range(4)]
    matrix = build_correlation_matrix(observations)
    correlation, fit = regression_for_pair(matrix, "d1", "p1")
    assert correlation.n_points == 4
    assert np.isclose(fit.slope, 3.0)
    assert np.isclose(fit.intercept, 1.0)

    with pytest.raises(KeyError):
        regression_for_pair(matrix, "d1", "missing")


def test_correlation_dataframe_columns():
    observations = [_obs({"d1": float(x), "d2": 1.0}, {"p1": float(x)}, str(x)) for x in range(3)]
    df = correlation_dataframe(build_correlation_matrix(observations))
    assert list(df.columns) == ["GPS Error Dimension", "Parameter", "Correlation Coefficient", "p-value", "n"]
    assert len(df) == 2
    assert df.loc[1, "Correlation Coefficient"] == 0.0
    assert int(df.loc[0, "n"]) == 3


def test_matrix_building_does_not_mutate_inputs():
    observations = [_obs({"d1": 1.0}, {"p1": 1.0}, "a"), _obs({"d1": 2.0}, {"p1": 3.0}, "b")]
    first = build_correlation_matrix(observations)
    second = build_correlation_matrix(observations)
    assert first is not second
    assert first["d1"]["p1"].coefficient == second["d1"]["p1"].coefficient
    assert first["d1"]["p1"].data_points == second["d1"]["p1"].data_points
    assert dict(observations[0].output_vector) == {"p1": 1.0}
    assert math.isnan(first["d1"]["p1"].p_value)


def test_tightly_clustered_parameter_is_ranked_and_modelled():
    observations = [
        _obs({"d1": float(i)}, {"p1": 0.05 + 1e-8 * i, "p2": 1.0}, f"r{i}")
        for i in range(5)
    ]
    matrix = build_correlation_matrix(observations)
    assert matrix["d1"]["p1"].coefficient > 0.98
    assert matrix["d1"]["p2"].coefficient == 0.0

    strongest = find_strongest_correlations(matrix, threshold=0.5)
    assert [r.y_label for r in strongest] == ["p1"]
    models = top_prediction_models(matrix, 1)
    assert models[0].output_parameter == "p1"
    assert np.isclose(models[0].slope, 1e-8, rtol=1e-3)
