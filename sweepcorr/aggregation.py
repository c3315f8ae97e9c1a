"""
Flattens sweep-summary and section-sweep result files into observations.

Each observation pairs the 18 GPS error dimensions a run was simulated with
against the Kalman tuning parameters the optimizer settled on. Missing nested
fields are never an error: inputs default to 0 and absent outputs are simply
left out of the output vector.
"""

# Source shapes:
#   sweep summary  -> {"gpsError": {...}, "allResults": [{"runIndex", "finalParams"}]}
#   section sweep  -> {"sections": [{"section": {"name"}, "gpsErrorProfile",
#                                     "bestResult": {"finalParameters"}}]}

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping

from .schema import (
    AXES,
    GPS_ERROR,
    GPS_ERROR_DIMENSIONS,
    PARAMETER_FAMILIES,
    SECTION_SWEEP,
    SWEEP_SUMMARY,
    LoadedFile,
    Observation,
)


def _as_loaded_file(record: Any) -> LoadedFile:
    if isinstance(record, LoadedFile):
        return record
    return LoadedFile(
        name=str(record.get("name", "")),
        kind=str(record.get("type", record.get("kind", ""))),
        data=record.get("data"),
    )


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _lookup(block: Any, path: str) -> Any:
    node = block
    for key in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def extract_gps_error_dimensions(gps_error: Any) -> Dict[str, float]:
    """Read the 18 GPS error dimensions from a nested ``gpsError`` block.

    Args:
        gps_error: Mapping shaped like
            ``{"position": {"x": ..}, ..., "fuzziness": {"position": {..}, ..}}``.
            Any level may be missing or ``None``.

    Returns:
        dict[str, float]: Every name in ``GPS_ERROR_DIMENSIONS`` mapped to
        its value, or ``0.0`` where the field is absent or not numeric.
    """
    dims = {}
    for name in GPS_ERROR_DIMENSIONS:
        value = _to_float(_lookup(gps_error, name))
        dims[name] = value if value is not None else 0.0
    return dims


def extract_final_parameters(final_params: Any) -> Dict[str, float]:
    """Read the recognized Kalman tuning parameters from an optimizer result.

    Legacy combined values (``rPosXZ`` and friends) are expanded into the X
    and Z entries first; per-axis values present in the source then overwrite
    them.

    Args:
        final_params: Flat mapping of parameter name to value.

    Returns:
        dict[str, float]: Recognized parameters only. Unknown keys and
        non-numeric values are skipped.
    """
    params: Dict[str, float] = {}
    if not isinstance(final_params, Mapping):
        return params

    for family in PARAMETER_FAMILIES:
        legacy = _to_float(final_params.get(f"{family}XZ"))
        if legacy is not None:
            params[f"{family}X"] = legacy
            params[f"{family}Z"] = legacy

        for axis in AXES:
            name = f"{family}{axis.upper()}"
            value = _to_float(final_params.get(name))
            if value is not None:
                params[name] = value

    return params


def _sweep_observations(loaded: LoadedFile) -> List[Observation]:
    sweep = loaded.data if isinstance(loaded.data, Mapping) else {}
    gps_errors = extract_gps_error_dimensions(sweep.get("gpsError"))

    observations = []
    for position, result in enumerate(sweep.get("allResults") or []):
        if not isinstance(result, Mapping):
            continue
        run_index = result.get("runIndex", position)
        observations.append(
            Observation(
                input_vector=gps_errors,
                output_vector=extract_final_parameters(result.get("finalParams")),
                label=f"{loaded.name} - Run {run_index}",
            )
        )
    return observations


def _section_observations(loaded: LoadedFile) -> List[Observation]:
    section_sweep = loaded.data if isinstance(loaded.data, Mapping) else {}

    observations = []
    for position, section in enumerate(section_sweep.get("sections") or []):
        if not isinstance(section, Mapping):
            continue
        name = _lookup(section, "section.name")
        if name is None:
            name = f"Section {position}"
        best = section.get("bestResult") or {}
        observations.append(
            Observation(
                input_vector=extract_gps_error_dimensions(
                    section.get("gpsErrorProfile")
                ),
                output_vector=extract_final_parameters(
                    best.get("finalParameters") if isinstance(best, Mapping) else None
                ),
                label=f"{loaded.name} - {name}",
            )
        )
    return observations


def aggregate_observations(files: Iterable[Any]) -> List[Observation]:
    """Flatten loaded result files into one ordered list of observations.

    Args:
        files: ``LoadedFile`` records, or dicts with ``name``, ``type`` and
            ``data`` keys, in any mix of kinds.

    Returns:
        list[Observation]: One observation per sweep run and per section, in
        file order. Files of any other kind are ignored.
    """
    observations: List[Observation] = []
    for record in files:
        loaded = _as_loaded_file(record)
        if loaded.kind == SWEEP_SUMMARY:
            observations.extend(_sweep_observations(loaded))
        elif loaded.kind == SECTION_SWEEP:
            observations.extend(_section_observations(loaded))
    return observations


def sweep_files(files: Iterable[Any]) -> List[LoadedFile]:
    loaded = (_as_loaded_file(f) for f in files)
    return [f for f in loaded if f.kind in (SWEEP_SUMMARY, SECTION_SWEEP)]


def gps_error_files(files: Iterable[Any]) -> List[LoadedFile]:
    """Files carrying a top-level ``gpsError`` block usable as prediction input."""
    loaded = (_as_loaded_file(f) for f in files)
    return [
        f
        for f in loaded
        if f.kind in (GPS_ERROR, SWEEP_SUMMARY)
        and isinstance(f.data, Mapping)
        and isinstance(f.data.get("gpsError"), Mapping)
    ]


def count_runs(files: Iterable[Any]) -> int:
    total = 0
    for loaded in sweep_files(files):
        data = loaded.data if isinstance(loaded.data, Mapping) else {}
        key = "allResults" if loaded.kind == SWEEP_SUMMARY else "sections"
        total += len(data.get(key) or [])
    return total


def is_finite_number(value: Any) -> bool:
    number = _to_float(value)
    return number is not None and math.isfinite(number)
