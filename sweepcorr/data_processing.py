"""
Loads optimizer result files from disk and tags each with its source kind.
"""

# JSON files are tagged by their top-level keys, checked in this order:
# sections -> section sweep, allResults -> sweep summary, gpsError -> GPS
# error profile, finalParams -> optimizer metadata, params -> parameter
# export. CSV time series are kept as DataFrames and are not used by the
# correlation pipeline.

import json
import logging
import os

import pandas as pd

from .schema import (
    CSV,
    GPS_ERROR,
    OPTIMIZER,
    PARAMS,
    SECTION_SWEEP,
    SWEEP_SUMMARY,
    LoadedFile,
)

_JSON_SHAPES = (
    ("sections", list, SECTION_SWEEP),
    ("allResults", list, SWEEP_SUMMARY),
    ("gpsError", dict, GPS_ERROR),
    ("finalParams", dict, OPTIMIZER),
    ("params", dict, PARAMS),
)


def classify_json(payload, name=""):
    """Return the file kind for a parsed JSON payload.

    Args:
        payload: Object returned by ``json.load``.
        name (str): File name, used in the error message.

    Returns:
        str: One of the kinds in ``sweepcorr.schema.FILE_KINDS``.

    Raises:
        ValueError: If the payload matches none of the known shapes.
    """
    if isinstance(payload, dict):
        for key, expected_type, kind in _JSON_SHAPES:
            if isinstance(payload.get(key), expected_type):
                return kind
    raise ValueError(f"Unknown JSON format in {name}")


def load_time_series(filepath):
    """
    Load a CSV time series exported alongside optimizer runs.

    Args:
        filepath (str): Path to the CSV file.

    Returns:
        pd.DataFrame: Loaded DataFrame; non-numeric cells are kept as text.

    Raises:
        ValueError: If the file has a header but no data rows.
    """
    try:
        df = pd.read_csv(filepath, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()
    if df.empty:
        raise ValueError(
            f"CSV file {os.path.basename(filepath)} has insufficient data"
        )
    df.columns = [str(col).strip() for col in df.columns]
    return df


def load_result_file(filepath):
    """Load one result file and tag it by kind.

    Args:
        filepath (str): Path to a ``.json`` or ``.csv`` file.

    Returns:
        LoadedFile: ``name`` is the file's base name, ``data`` the parsed
        JSON object or a DataFrame for CSV input.

    Raises:
        ValueError: For unsupported extensions, malformed JSON, unknown JSON
            shapes or empty CSV files.
    """
    name = os.path.basename(filepath)
    ext = os.path.splitext(name)[1].lower().lstrip(".")

    if ext == "json":
        with open(filepath, encoding="utf-8") as fh:
            try:
                payload = json.load(fh)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Malformed JSON in {name}: {exc}") from exc
        return LoadedFile(name=name, kind=classify_json(payload, name), data=payload)

    if ext == "csv":
        return LoadedFile(name=name, kind=CSV, data=load_time_series(filepath))

    raise ValueError(f"Unsupported file type: {ext or '(none)'}")


def load_result_files(filepaths):
    """Load every readable file, logging and skipping the ones that fail.

    Args:
        filepaths: Iterable of paths.

    Returns:
        list[LoadedFile]: Successfully loaded files in input order.
    """
    loaded = []
    for filepath in filepaths:
        try:
            loaded.append(load_result_file(filepath))
        except (OSError, ValueError) as e:
            logging.error("Error parsing %s: %s", filepath, e)
            continue
        logging.info("Loaded %s as %s", filepath, loaded[-1].kind)
    return loaded
