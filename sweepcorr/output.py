"""Write correlation, model and prediction outputs as CSV and JSON artifacts.

This module is the output boundary between in-memory analysis and files
other tools (spreadsheets, the optimizer's parameter import) consume.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .aggregation import extract_gps_error_dimensions, gps_error_files
from .analysis import correlation_dataframe, models_dataframe
from .schema import CorrelationMatrix, PredictionModel, ResultColumns
from .reporting import prediction_table


def export_correlation_summary(matrix: CorrelationMatrix) -> str:
    """Render the matrix as CSV text, one row per (dimension, parameter).

    Args:
        matrix (CorrelationMatrix): Output of ``build_correlation_matrix``.

    Returns:
        str: Header ``GPS Error Dimension,Parameter,Correlation Coefficient``
        followed by rows in matrix order with the coefficient to 4 decimal
        places. Lines are ``\\n`` separated with no trailing newline.
    """
    cols = ResultColumns()
    df = correlation_dataframe(matrix)[
        [cols.dimension, cols.parameter, cols.coefficient]
    ]
    text = df.to_csv(index=False, float_format="%.4f", lineterminator="\n")
    return text.rstrip("\n")


def export_predictions(
    selected: Mapping[str, Tuple[float, PredictionModel]],
) -> Dict[str, Any]:
    """Build the predicted-parameters JSON document.

    Args:
        selected: Output of ``select_prediction_models``.

    Returns:
        dict: ``{"params": {parameter: value}, "predictions": [...]}`` where
        each prediction records ``parameter``, ``value``, ``basedOn`` (input
        dimension) and ``rSquared``. ``params`` can be loaded back as a
        parameter export.
    """
    table = prediction_table(selected)
    params: Dict[str, float] = {}
    predictions: List[Dict[str, Any]] = []
    for _, row in table.iterrows():
        params[row["Parameter"]] = float(row["Predicted Value"])
        predictions.append(
            {
                "parameter": row["Parameter"],
                "value": float(row["Predicted Value"]),
                "basedOn": row["Based On"],
                "rSquared": float(row["R2"]),
            }
        )
    return {"params": params, "predictions": predictions}


def export_gps_error_comparison(files: Iterable[Any]) -> str:
    """CSV text ``File,Component,Value`` for every GPS error source file."""
    lines = ["File,Component,Value"]
    for loaded in gps_error_files(files):
        errors = extract_gps_error_dimensions(loaded.data.get("gpsError"))
        for component, value in errors.items():
            lines.append(f"{loaded.name},{component},{value}")
    return "\n".join(lines)


def save_analysis_outputs(
    matrix: CorrelationMatrix,
    models: Iterable[PredictionModel],
    selected: Mapping[str, Tuple[float, PredictionModel]] | None = None,
    output_dir: str = "output",
    files: Iterable[Any] | None = None,
) -> Dict[str, str]:
    """Save the correlation summary, model table, predictions and error profiles.

    Args:
        matrix (CorrelationMatrix): Correlation matrix to export.
        models: Fitted prediction models.
        selected: Optional ``select_prediction_models`` output. The JSON file
            is only written when it holds at least one prediction.
        output_dir (str): Directory where outputs are written.
        files: Optional loaded files. When any carry a GPS error block,
            their 18 dimensions are written to ``gps_error_comparison.csv``.

    Returns:
        dict[str, str]: Artifact name -> written path.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths = {
        "correlation_summary": os.path.join(output_dir, "correlation_summary.csv"),
        "correlation_table": os.path.join(output_dir, "correlation_table.csv"),
        "prediction_models": os.path.join(output_dir, "prediction_models.csv"),
    }

    with open(paths["correlation_summary"], "w", encoding="utf-8") as fh:
        fh.write(export_correlation_summary(matrix))
        fh.write("\n")
    correlation_dataframe(matrix).to_csv(paths["correlation_table"], index=False)
    models_dataframe(models).to_csv(paths["prediction_models"], index=False)

    if selected:
        paths["predicted_parameters"] = os.path.join(
            output_dir, "predicted_parameters.json"
        )
        with open(paths["predicted_parameters"], "w", encoding="utf-8") as fh:
            json.dump(export_predictions(selected), fh, indent=2)

    gps_files = gps_error_files(files or [])
    if gps_files:
        paths["gps_error_comparison"] = os.path.join(
            output_dir, "gps_error_comparison.csv"
        )
        with open(paths["gps_error_comparison"], "w", encoding="utf-8") as fh:
            fh.write(export_gps_error_comparison(gps_files))
            fh.write("\n")

    for name, path in paths.items():
        logging.info("Saved %s to %s", name.replace("_", " "), path)

    return paths
