"""Define the shared record types and vocabularies for sweep correlation analysis."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

import numpy as np

SWEEP_SUMMARY = "sweep-summary"
SECTION_SWEEP = "section-sweep"
GPS_ERROR = "gps-error"
OPTIMIZER = "optimizer"
PARAMS = "params"
CSV = "csv"

FILE_KINDS: Tuple[str, ...] = (
    SWEEP_SUMMARY,
    SECTION_SWEEP,
    GPS_ERROR,
    OPTIMIZER,
    PARAMS,
    CSV,
)

AXES: Tuple[str, ...] = ("x", "y", "z")
MOTION_TERMS: Tuple[str, ...] = ("position", "velocity", "acceleration")

# Raw error block first, then the fuzziness block, each as term.axis.
GPS_ERROR_DIMENSIONS: Tuple[str, ...] = tuple(
    f"{term}.{axis}" for term in MOTION_TERMS for axis in AXES
) + tuple(f"fuzziness.{term}.{axis}" for term in MOTION_TERMS for axis in AXES)

NOISE_PREFIXES: Tuple[str, ...] = ("r", "q")
PARAMETER_TERMS: Tuple[str, ...] = ("Pos", "Velocity", "Acceleration")

PARAMETER_FAMILIES: Tuple[str, ...] = tuple(
    f"{prefix}{term}" for prefix in NOISE_PREFIXES for term in PARAMETER_TERMS
)
KALMAN_PARAMETERS: Tuple[str, ...] = tuple(
    f"{family}{axis.upper()}" for family in PARAMETER_FAMILIES for axis in AXES
)
LEGACY_XZ_PARAMETERS: Tuple[str, ...] = tuple(
    f"{family}XZ" for family in PARAMETER_FAMILIES
)


@dataclass(frozen=True)
class ResultColumns:
    """Container for standardized column labels.

    Attributes:
        dimension: GPS error dimension (input axis) of a correlation pair.
            The exported summary CSV header is fixed, so this label must not
            change.
        parameter: Kalman tuning parameter (output axis) of a pair.
        coefficient: Pearson correlation coefficient in [-1, 1].
        p_value: Two-sided p-value for the null hypothesis r = 0.
        n_points: Number of finite (x, y) pairs behind the coefficient.
        intercept, slope, r_squared: Linear prediction model terms.
    """

    dimension: str = "GPS Error Dimension"
    parameter: str = "Parameter"
    coefficient: str = "Correlation Coefficient"
    p_value: str = "p-value"
    n_points: str = "n"
    intercept: str = "Intercept"
    slope: str = "Slope"
    r_squared: str = "R2"


@dataclass(frozen=True)
class LoadedFile:
    """A parsed result file tagged with its source kind."""

    name: str
    kind: str
    data: Any


@dataclass(frozen=True)
class Observation:
    """One run or section: GPS error inputs paired with optimized outputs."""

    input_vector: Mapping[str, float]
    output_vector: Mapping[str, float]
    label: str

    def __post_init__(self):
        object.__setattr__(
            self, "input_vector", MappingProxyType(dict(self.input_vector))
        )
        object.__setattr__(
            self, "output_vector", MappingProxyType(dict(self.output_vector))
        )


@dataclass(frozen=True)
class DataPoint:
    x: float
    y: float
    label: str


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation between one input dimension and one output parameter.

    ``data_points`` holds only the finite pairs the coefficient was computed
    from, in observation order, so the same points can be reused for the
    regression fit.
    """

    x_label: str
    y_label: str
    coefficient: float
    data_points: Tuple[DataPoint, ...] = ()
    p_value: float = float("nan")

    @property
    def n_points(self) -> int:
        return len(self.data_points)

    @property
    def x_values(self) -> np.ndarray:
        return np.array([p.x for p in self.data_points], dtype=float)

    @property
    def y_values(self) -> np.ndarray:
        return np.array([p.y for p in self.data_points], dtype=float)


@dataclass(frozen=True)
class PredictionModel:
    """Linear model ``y = intercept + slope * x`` fitted to one correlation."""

    input_dimension: str
    output_parameter: str
    model_type: str = "linear"
    coefficients: Tuple[float, float] = (0.0, 0.0)
    r_squared: float = 0.0

    @property
    def intercept(self) -> float:
        return float(self.coefficients[0])

    @property
    def slope(self) -> float:
        return float(self.coefficients[1])

    def evaluate(self, value: float) -> float:
        return self.intercept + self.slope * float(value)

    def is_usable(self, min_r2: float) -> bool:
        """Return True when R^2 is finite and strictly above ``min_r2``."""
        return bool(np.isfinite(self.r_squared) and self.r_squared > min_r2)


CorrelationMatrix = Dict[str, Dict[str, CorrelationResult]]
