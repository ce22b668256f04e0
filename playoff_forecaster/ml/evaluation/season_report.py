"""Per-season classification accuracy at a fixed cutoff."""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ...errors import EmptyGroupError
from ...features.design_matrix import DesignMatrix, FeatureMatrixBuilder

logger = logging.getLogger(__name__)

ON_EMPTY_CHOICES = ("raise", "nan", "skip")


class SeasonAccuracyReport:
    """
    Lazy, restartable sequence of ``(season, accuracy)`` pairs.

    Nothing is scored until iteration and every new iteration scores the
    groups again, in ascending season order.
    """

    def __init__(
        self,
        model,
        groups: Mapping[object, DesignMatrix],
        cutoff: float,
        on_empty: str = "raise",
    ):
        if on_empty not in ON_EMPTY_CHOICES:
            raise ValueError(f"on_empty must be one of {ON_EMPTY_CHOICES}, got {on_empty!r}")
        self.model = model
        self.groups = dict(groups)
        self.cutoff = float(cutoff)
        self.on_empty = on_empty

    def __len__(self) -> int:
        if self.on_empty == "skip":
            return sum(1 for m in self.groups.values() if m.n_rows > 0)
        return len(self.groups)

    def __iter__(self) -> Iterator[Tuple[object, float]]:
        for key in sorted(self.groups):
            matrix = self.groups[key]
            if matrix.n_rows == 0:
                if self.on_empty == "raise":
                    raise EmptyGroupError(f"Season {key} has no records to score")
                logger.warning("Season %s has no records; %s", key,
                               "skipping" if self.on_empty == "skip" else "reporting NaN")
                if self.on_empty == "nan":
                    yield key, float("nan")
                continue
            if matrix.labels is None:
                raise ValueError(f"Season {key} matrix has no labels")
            predicted = (self.model.predict(matrix) > self.cutoff).astype(int)
            matches = int(np.sum(predicted == matrix.labels))
            yield key, matches / matrix.n_rows

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self), columns=["season", "accuracy"])


def report(model, grouped_records: Mapping[object, DesignMatrix], cutoff: float,
           on_empty: str = "raise") -> SeasonAccuracyReport:
    """Score every season group with ``model`` at ``cutoff``."""
    return SeasonAccuracyReport(model, grouped_records, cutoff, on_empty=on_empty)


def group_by_season(
    binned: pd.DataFrame,
    builder: FeatureMatrixBuilder,
    reference_columns: Sequence[str],
    season_column: str = "season",
    seasons: Optional[Sequence] = None,
) -> dict:
    """
    Build one reconciled design matrix per season.

    ``seasons`` lists the groups to produce; a listed season with no rows
    yields an empty matrix so the reporter can flag it.
    """
    keys = sorted(binned[season_column].unique()) if seasons is None else list(seasons)
    groups = {}
    for key in keys:
        subset = binned[binned[season_column] == key]
        groups[key] = builder.build(subset, reference_columns=reference_columns)
    return groups
