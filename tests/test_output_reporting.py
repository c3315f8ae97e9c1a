"""Tests for the CSV/JSON export layer."""

import json

from sweepcorr.analysis import build_correlation_matrix, select_prediction_models, top_prediction_models
from sweepcorr.output import (
    export_correlation_summary,
    export_gps_error_comparison,
    export_predictions,
    save_analysis_outputs,
)
from sweepcorr.schema import LoadedFile, Observation, PredictionModel


def _matrix():
    observations = [
        Observation({"position.x": x, "velocity.x": 1.0}, {"rPosX": 2.0 * x, "qPosX": 1.0 / (1.0 + x)}, f"run {x}")
        for x in [1.0, 2.0, 3.0]
    ]
    return build_correlation_matrix(observations)


def test_correlation_summary_csv_format():
    text = export_correlation_summary(_matrix())
    lines = text.split("\n")
    assert lines[0] == "GPS Error Dimension,Parameter,Correlation Coefficient"
    assert lines[1] == "position.x,rPosX,1.0000"
    assert lines[2].startswith("position.x,qPosX,-0.9")
    assert lines[3] == "velocity.x,rPosX,0.0000"
    assert len(lines) == 5
    assert not text.endswith("\n")


def test_correlation_summary_of_empty_matrix_is_header_only():
    assert export_correlation_summary({}) == "GPS Error Dimension,Parameter,Correlation Coefficient"


def test_export_predictions_records_model_used():
    first = PredictionModel("position.x", "rPosX", coefficients=(0.0, 1.0), r_squared=0.9)
    second = PredictionModel("velocity.x", "rPosX", coefficients=(1.0, 1.0), r_squared=0.6)
    selected = select_prediction_models({"position.x": 2.0, "velocity.x": 2.0}, [first, second])

    doc = export_predictions(selected)
    assert doc["params"] == {"rPosX": 3.0}
    assert doc["predictions"] == [
        {"parameter": "rPosX", "value": 3.0, "basedOn": "velocity.x", "rSquared": 0.6}
    ]


def test_export_gps_error_comparison_rows():
    files = [
        LoadedFile("a.json", "gps-error", {"gpsError": {"position": {"x": 1.5}}}),
        LoadedFile("b.json", "optimizer", {"finalParams": {}}),
    ]
    lines = export_gps_error_comparison(files).split("\n")
    assert lines[0] == "File,Component,Value"
    assert lines[1] == "a.json,position.x,1.5"
    assert len(lines) == 1 + 18


def test_save_analysis_outputs_writes_files(tmp_path):
    matrix = _matrix()
    models = top_prediction_models(matrix, 3)
    selected = select_prediction_models({"position.x": 4.0}, models)

    paths = save_analysis_outputs(matrix, models, selected, output_dir=str(tmp_path / "out"))

    assert set(paths) == {
        "correlation_summary",
        "correlation_table",
        "prediction_models",
        "predicted_parameters",
    }
    with open(paths["predicted_parameters"], encoding="utf-8") as fh:
        doc = json.load(fh)
    assert abs(doc["params"]["rPosX"] - 8.0) < 1e-9
    with open(paths["correlation_summary"], encoding="utf-8") as fh:
        assert fh.readline().strip() == "GPS Error Dimension,Parameter,Correlation Coefficient"


def test_save_analysis_outputs_without_predictions(tmp_path):
    paths = save_analysis_outputs(_matrix(), [], None, output_dir=str(tmp_path))
    assert "predicted_parameters" not in paths


def test_save_analysis_outputs_writes_gps_error_comparison(tmp_path):
    files = [
        LoadedFile("profile.json", "gps-error", {"gpsError": {"position": {"x": 2.5}}}),
        LoadedFile("params.json", "params", {"params": {"rPosX": 1.0}}),
    ]
    paths = save_analysis_outputs(_matrix(), [], None, output_dir=str(tmp_path), files=files)

    with open(paths["gps_error_comparison"], encoding="utf-8") as fh:
        lines = fh.read().splitlines()
    assert lines[0] == "File,Component,Value"
    assert lines[1] == "profile.json,position.x,2.5"
    assert len(lines) == 1 + 18


def test_save_analysis_outputs_skips_comparison_without_gps_files(tmp_path):
    files = [LoadedFile("params.json", "params", {"params": {"rPosX": 1.0}})]
    paths = save_analysis_outputs(_matrix(), [], None, output_dir=str(tmp_path), files=files)
    assert "gps_error_comparison" not in paths
