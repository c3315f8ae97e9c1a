"""
A Python package for relating GPS error profiles to Kalman filter tuning results.

Aggregates optimizer sweep results, correlates each simulated GPS error
dimension with each optimized parameter, and fits linear models that predict
parameters for a new error profile.

Modules:
    - data_processing: Loads result files and tags them by kind.
    - aggregation: Flattens sweep and section-sweep files into observations.
    - analysis: Builds the correlation matrix, ranks pairs, fits and applies models.
    - reporting: Formats results as text and tables.
    - output: Writes CSV and JSON artifacts.
    - stats: Pearson correlation and least-squares regression primitives.
"""

__version__ = "1.0.0"

from .aggregation import (
    aggregate_observations,
    extract_final_parameters,
    extract_gps_error_dimensions,
)
from .analysis import (
    build_correlation_matrix,
    build_prediction_model,
    correlation_matrix_from_files,
    find_strongest_correlations,
    predict_parameters,
    select_prediction_models,
    top_prediction_models,
)
from .data_processing import load_result_file, load_result_files
from .output import (
    export_correlation_summary,
    export_predictions,
    save_analysis_outputs,
)
from .schema import (
    CorrelationResult,
    DataPoint,
    LoadedFile,
    Observation,
    PredictionModel,
)
from .stats import linear_regression, pearson_correlation

__all__ = [
    # Data processing
    "load_result_file",
    "load_result_files",
    # Aggregation
    "aggregate_observations",
    "extract_final_parameters",
    "extract_gps_error_dimensions",
    # Analysis
    "build_correlation_matrix",
    "correlation_matrix_from_files",
    "find_strongest_correlations",
    "build_prediction_model",
    "top_prediction_models",
    "select_prediction_models",
    "predict_parameters",
    # Output
    "export_correlation_summary",
    "export_predictions",
    "save_analysis_outputs",
    # Types
    "CorrelationResult",
    "DataPoint",
    "LoadedFile",
    "Observation",
    "PredictionModel",
    # Stats
    "pearson_correlation",
    "linear_regression",
]
