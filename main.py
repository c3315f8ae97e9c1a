#!/usr/bin/env python3
"""
Main script for running GPS error / tuning parameter correlation analysis.
"""

# Pipeline overview:
# 1) Load sweep summaries, section sweeps and GPS error profiles from disk.
# 2) Flatten every run/section into an observation (18 GPS error dimensions
#    against the optimized R/Q parameters).
# 3) Correlate every dimension with every parameter and log the strongest pairs.
# 4) Fit linear models for the top pairs and, for each GPS error profile passed
#    with --predict, predict parameters from models with R^2 above the gate.
# 5) Export the correlation summary, model table, predictions and the GPS
#    error profiles seen in the inputs.

import argparse
import logging
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sweepcorr.aggregation import (
    aggregate_observations,
    count_runs,
    extract_gps_error_dimensions,
    gps_error_files,
    sweep_files,
)
from sweepcorr.analysis import (
    MIN_PREDICTION_R2,
    build_correlation_matrix,
    regression_for_pair,
    select_prediction_models,
    top_prediction_models,
)
from sweepcorr.data_processing import load_result_files
from sweepcorr.output import save_analysis_outputs
from sweepcorr.reporting import (
    DISPLAY_LIMIT,
    DISPLAY_THRESHOLD,
    format_correlation_info,
    format_prediction_table,
    format_top_correlations,
    summarize_counts,
)
from sweepcorr.schema import CSV

CLI_TOP_N = 15
DEFAULT_OUTPUT_DIR = "output"
LOG_FILENAME = "correlation_analysis.log"


def _configure_logging(output_dir):
    os.makedirs(output_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(os.path.join(output_dir, LOG_FILENAME), mode="w"),
        ],
        force=True,
    )


def _build_arg_parser():
    """Build command-line parser for the analysis pipeline."""
    parser = argparse.ArgumentParser(
        description="Correlate GPS error dimensions with optimized Kalman parameters."
    )
    parser.add_argument(
        "files", nargs="+", help="Sweep summary / section sweep JSON files."
    )
    parser.add_argument(
        "--predict",
        action="append",
        default=[],
        metavar="GPS_FILE",
        help=(
            "GPS error profile to predict parameters for (repeatable; the "
            "JSON export holds the predictions for the last profile)."
        ),
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=CLI_TOP_N,
        help=f"Number of strongest pairs to fit models for (default: {CLI_TOP_N}).",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DISPLAY_THRESHOLD,
        help=f"|r| threshold for the top correlation listing (default: {DISPLAY_THRESHOLD}).",
    )
    parser.add_argument(
        "--min-r2",
        type=float,
        default=MIN_PREDICTION_R2,
        help=f"Model quality gate for predictions (default: {MIN_PREDICTION_R2}).",
    )
    parser.add_argument(
        "--on-conflict",
        choices=["last", "best_r2"],
        default="last",
        help="Which model wins when several predict the same parameter.",
    )
    parser.add_argument(
        "--pair",
        nargs=2,
        metavar=("DIMENSION", "PARAMETER"),
        help="Report the regression for one GPS error dimension / parameter pair.",
    )
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR}).",
    )
    return parser


def main(argv=None):
    """Run the correlation pipeline and write its outputs."""
    args = _build_arg_parser().parse_args(argv)
    _configure_logging(args.output_dir)

    start_time = time.time()
    logging.info("Initializing correlation analysis pipeline")
    logging.info("Configured %d input files for analysis", len(args.files))

    loaded = load_result_files(args.files)
    time_series = [f.name for f in loaded if f.kind == CSV]
    if time_series:
        logging.info(
            "Skipping %d CSV time series (not used for correlation): %s",
            len(time_series),
            ", ".join(time_series),
        )
    sweeps = sweep_files(loaded)
    logging.info(
        "Found %d sweep files containing %d runs/sections",
        len(sweeps),
        count_runs(sweeps),
    )

    step_start = time.time()
    observations = aggregate_observations(loaded)
    if not observations:
        logging.error(
            "No observations could be aggregated from the input files. Terminating execution."
        )
        return 1

    matrix = build_correlation_matrix(observations)
    counts = summarize_counts(matrix)
    logging.info(
        "Correlation matrix built in %.2f seconds: %d dimensions x %d parameters over %d observations",
        time.time() - step_start,
        counts["dimensions"],
        counts["parameters"],
        len(observations),
    )
    for line in format_top_correlations(
        matrix, threshold=args.threshold, limit=DISPLAY_LIMIT
    ).splitlines():
        logging.info("%s", line)

    models = top_prediction_models(matrix, args.top_n)
    usable = sum(1 for m in models if m.is_usable(args.min_r2))
    logging.info(
        "Fitted %d prediction models (%d with R^2 > %.2f)",
        len(models),
        usable,
        args.min_r2,
    )

    if args.pair:
        dimension, parameter = args.pair
        try:
            correlation, fit = regression_for_pair(matrix, dimension, parameter)
        except KeyError as e:
            logging.warning("%s", e.args[0])
        else:
            for line in format_correlation_info(correlation, fit).splitlines():
                logging.info("%s", line)

    selected = {}
    predict_files = load_result_files(args.predict) if args.predict else []
    if args.predict:
        profiles = gps_error_files(predict_files)
        if not profiles:
            logging.warning("None of the --predict files contain a gpsError block")
        for profile in profiles:
            selected = select_prediction_models(
                extract_gps_error_dimensions(profile.data["gpsError"]),
                models,
                min_r2=args.min_r2,
                on_conflict=args.on_conflict,
            )
            logging.info("Predictions for %s:", profile.name)
            for line in format_prediction_table(selected).splitlines():
                logging.info("  %s", line)

    paths = save_analysis_outputs(
        matrix, models, selected, args.output_dir, files=loaded + predict_files
    )

    total_duration = time.time() - start_time
    logging.info("Total execution time: %.2f seconds", total_duration)
    logging.info("Analysis pipeline completed successfully")
    logging.info("Generated output files:")
    for name, path in paths.items():
        logging.info("  - %s: %s", name, path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
