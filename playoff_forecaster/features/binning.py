"""
Ordinal binning of continuous season statistics.

Each feature is cut into five ordered bins using four boundaries. Most
features use the 20/40/60/80th percentiles of the training split; a few
(team age, strength of schedule) use fixed, hand-picked breakpoints.

Intervals are closed on the right, so a value equal to a boundary lands in
the lower bin:

    v <= b1       -> Low
    b1 < v <= b2  -> Mid-Low
    b2 < v <= b3  -> Mid
    b3 < v <= b4  -> Mid-High
    v > b4        -> High

Thresholds are only ever computed from the training split and are frozen
after the first fit. Validation and test rows are binned with the training
boundaries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import DataLeakageError
from .partition import Split

logger = logging.getLogger(__name__)

BIN_LABELS: Tuple[str, ...] = ("Low", "Mid-Low", "Mid", "Mid-High", "High")
QUANTILES: Tuple[float, ...] = (20.0, 40.0, 60.0, 80.0)

QUANTILE = "quantile"
FIXED = "fixed"

DEFAULT_FIXED_BREAKPOINTS: Dict[str, Tuple[float, float, float, float]] = {
    "age": (25.0, 26.0, 27.0, 28.0),
    "sos": (-0.5, -0.2, 0.2, 0.5),
}


@dataclass(frozen=True)
class QuantileThresholds:
    """Frozen per-feature bin boundaries."""

    boundaries: Mapping[str, Tuple[float, ...]]
    strategies: Mapping[str, str]
    fit_on: str = "train"
    n_rows: int = 0
    features: Tuple[str, ...] = field(init=False)

    def __post_init__(self):
        bounds = {name: tuple(float(b) for b in values) for name, values in self.boundaries.items()}
        object.__setattr__(self, "boundaries", MappingProxyType(bounds))
        object.__setattr__(self, "strategies", MappingProxyType(dict(self.strategies)))
        object.__setattr__(self, "features", tuple(bounds))

    def bin_codes(self, feature: str, values) -> np.ndarray:
        """Map values to bin numbers 1..5."""
        values = np.asarray(values, dtype=float)
        if np.isnan(values).any():
            raise ValueError(f"Feature '{feature}' contains missing values")
        # side="left" counts boundaries strictly below each value
        return np.searchsorted(self.boundaries[feature], values, side="left") + 1

    def to_dict(self) -> Dict:
        return {
            "fit_on": self.fit_on,
            "n_rows": self.n_rows,
            "features": {
                name: {"strategy": self.strategies[name], "boundaries": list(self.boundaries[name])}
                for name in self.features
            },
        }


def _check_breakpoints(feature: str, breakpoints) -> Tuple[float, ...]:
    points = tuple(float(b) for b in breakpoints)
    if len(points) != len(QUANTILES):
        raise ValueError(
            f"Feature '{feature}' needs {len(QUANTILES)} breakpoints, got {len(points)}"
        )
    if any(a > b for a, b in zip(points, points[1:])):
        raise ValueError(f"Breakpoints for '{feature}' must be non-decreasing: {points}")
    return points


def fit_thresholds(
    train: Split,
    feature_names: Sequence[str],
    fixed_breakpoints: Optional[Mapping[str, Sequence[float]]] = None,
) -> QuantileThresholds:
    """
    Compute bin boundaries from the training split.

    Args:
        train: The training Split. Any other split raises DataLeakageError.
        feature_names: Features to bin
        fixed_breakpoints: Features binned on hand-specified boundaries
            instead of quantiles

    Returns:
        QuantileThresholds for every feature in ``feature_names``
    """
    if not isinstance(train, Split):
        raise DataLeakageError(
            "Thresholds must be fit from the training Split, not a bare table"
        )
    if train.name != "train":
        raise DataLeakageError(
            f"Refusing to fit thresholds on the '{train.name}' split"
        )
    if len(train) == 0:
        raise ValueError("Cannot fit thresholds on an empty training split")

    fixed_breakpoints = fixed_breakpoints or {}
    boundaries: Dict[str, Tuple[float, ...]] = {}
    strategies: Dict[str, str] = {}
    for feature in feature_names:
        if feature in fixed_breakpoints:
            boundaries[feature] = _check_breakpoints(feature, fixed_breakpoints[feature])
            strategies[feature] = FIXED
            continue
        values = train.frame[feature].to_numpy(dtype=float)
        if np.isnan(values).any():
            raise ValueError(f"Feature '{feature}' contains missing values")
        boundaries[feature] = tuple(np.percentile(values, QUANTILES))
        strategies[feature] = QUANTILE

    logger.info(
        "Fit bin thresholds for %d features on %d training rows (%d fixed)",
        len(boundaries), len(train), sum(s == FIXED for s in strategies.values()),
    )
    return QuantileThresholds(
        boundaries=boundaries,
        strategies=strategies,
        fit_on=train.name,
        n_rows=len(train),
    )


def apply_bins(
    records: Union[pd.DataFrame, Split],
    thresholds: QuantileThresholds,
) -> pd.DataFrame:
    """
    Replace each thresholded feature with its ordered bin label.

    Returns a new DataFrame; columns without thresholds are copied unchanged.
    """
    frame = records.frame if isinstance(records, Split) else records
    binned = frame.copy()
    for feature in thresholds.features:
        codes = thresholds.bin_codes(feature, frame[feature].to_numpy(dtype=float))
        binned[feature] = pd.Categorical.from_codes(
            codes - 1, categories=list(BIN_LABELS), ordered=True
        )
    return binned


class QuantileBinner:
    """Fits thresholds once on the training split and applies them everywhere."""

    def __init__(
        self,
        feature_names: Sequence[str],
        fixed_breakpoints: Optional[Mapping[str, Sequence[float]]] = None,
    ):
        self.feature_names = list(feature_names)
        self.fixed_breakpoints = dict(
            DEFAULT_FIXED_BREAKPOINTS if fixed_breakpoints is None else fixed_breakpoints
        )
        self._thresholds: Optional[QuantileThresholds] = None

    @property
    def is_fitted(self) -> bool:
        return self._thresholds is not None

    @property
    def thresholds(self) -> QuantileThresholds:
        if self._thresholds is None:
            raise ValueError("Binner has not been fit")
        return self._thresholds

    def fit(self, train: Split) -> QuantileThresholds:
        if self._thresholds is not None:
            raise DataLeakageError(
                f"Thresholds are frozen (fit on '{self._thresholds.fit_on}'); refusing to refit"
            )
        fixed = {f: b for f, b in self.fixed_breakpoints.items() if f in self.feature_names}
        self._thresholds = fit_thresholds(train, self.feature_names, fixed)
        return self._thresholds

    def transform(self, records: Union[pd.DataFrame, Split]) -> pd.DataFrame:
        return apply_bins(records, self.thresholds)
