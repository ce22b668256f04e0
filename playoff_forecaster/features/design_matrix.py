"""
Categorical expansion of binned season records into a numeric design matrix.

Every categorical column becomes a block of 0/1 indicator columns, one per
observed level except the reference (lowest observed) level. Matrices built
for validation, test or per-season scoring are reconciled against the
training matrix's columns: missing indicators are added as zeros and unseen
ones (for example a team that only appears outside the training split) are
dropped, so such rows are encoded as the training reference level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import ColumnMismatchError

logger = logging.getLogger(__name__)


def _readonly(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class DesignMatrix:
    """Numeric matrix derived from binned records. Does not own the records."""

    values: np.ndarray
    columns: Tuple[str, ...]
    index: Tuple
    labels: Optional[np.ndarray] = None
    sources: Mapping[str, str] = field(default_factory=dict)
    added_columns: Tuple[str, ...] = ()
    dropped_columns: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", _readonly(np.asarray(self.values, dtype=float)))
        if self.labels is not None:
            object.__setattr__(self, "labels", _readonly(np.asarray(self.labels, dtype=int)))
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))
        if self.values.shape != (len(self.index), len(self.columns)):
            raise ValueError(
                f"Matrix shape {self.values.shape} does not match "
                f"{len(self.index)} rows x {len(self.columns)} columns"
            )

    @property
    def n_rows(self) -> int:
        return self.values.shape[0]

    def column_index(self, names: Sequence[str]) -> List[int]:
        lookup = {name: i for i, name in enumerate(self.columns)}
        return [lookup[name] for name in names]

    def require_columns(self, reference: Sequence[str]) -> None:
        """Raise ColumnMismatchError unless the columns equal ``reference`` in order."""
        reference = tuple(reference)
        if self.columns == reference:
            return
        missing = [c for c in reference if c not in self.columns]
        unexpected = [c for c in self.columns if c not in reference]
        raise ColumnMismatchError(missing, unexpected)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, columns=list(self.columns), index=list(self.index))


class FeatureMatrixBuilder:
    """Builds design matrices and reconciles their columns across splits."""

    def __init__(
        self,
        categorical_columns: Sequence[str],
        numeric_columns: Sequence[str] = (),
        label_column: Optional[str] = "playoffs",
    ):
        self.categorical_columns = list(categorical_columns)
        self.numeric_columns = list(numeric_columns)
        self.label_column = label_column

    def _expand(
        self, frame: pd.DataFrame, drop_reference: bool = True
    ) -> Tuple[pd.DataFrame, Dict[str, str]]:
        blocks = []
        sources: Dict[str, str] = {}
        for column in self.numeric_columns:
            blocks.append(frame[[column]].astype(float))
            sources[column] = column

        for column in self.categorical_columns:
            series = frame[column]
            if isinstance(series.dtype, pd.CategoricalDtype):
                observed = set(series.dropna().unique())
                levels = [level for level in series.cat.categories if level in observed]
            else:
                levels = sorted(series.dropna().astype(str).unique())
                series = series.astype(str)
            if drop_reference:
                # lowest observed level is the reference and gets no indicator
                levels = levels[1:]
            names = [f"{column}_{level}" for level in levels]
            indicators = pd.DataFrame(
                {name: (series == level).astype(float).to_numpy()
                 for name, level in zip(names, levels)},
                index=frame.index,
            )
            blocks.append(indicators)
            for name in names:
                sources[name] = column

        if not blocks:
            return pd.DataFrame(index=frame.index), sources
        return pd.concat(blocks, axis=1), sources

    def _source_of(self, name: str) -> str:
        if name in self.numeric_columns:
            return name
        # longest prefix first
        for column in sorted(self.categorical_columns, key=len, reverse=True):
            if name.startswith(f"{column}_"):
                return column
        return name

    def build(
        self,
        binned: pd.DataFrame,
        reference_columns: Optional[Sequence[str]] = None,
    ) -> DesignMatrix:
        """
        Expand binned records into a DesignMatrix.

        Args:
            binned: Binned record frame
            reference_columns: Training matrix columns; when given the result
                has exactly these columns in this order

        Returns:
            DesignMatrix, carrying labels when the label column is present

        With ``reference_columns`` every observed level is expanded before
        reconciliation, so ``dropped_columns`` also lists the indicator of the
        training reference level.
        """
        expanded, sources = self._expand(binned, drop_reference=reference_columns is None)
        added: List[str] = []
        dropped: List[str] = []

        if reference_columns is not None:
            reference = list(reference_columns)
            present = set(expanded.columns)
            wanted = set(reference)
            added = [c for c in reference if c not in present]
            dropped = [c for c in expanded.columns if c not in wanted]
            expanded = expanded.reindex(columns=reference, fill_value=0.0)
            sources = {name: sources.get(name) or self._source_of(name) for name in reference}
            if added or dropped:
                logger.info(
                    "Reconciled design matrix: added %d zero columns %s, dropped %d columns %s",
                    len(added), added, len(dropped), dropped,
                )

        labels = None
        if self.label_column is not None and self.label_column in binned.columns:
            labels = binned[self.label_column].astype(int).to_numpy()

        return DesignMatrix(
            values=expanded.to_numpy(dtype=float),
            columns=tuple(expanded.columns),
            index=tuple(binned.index),
            labels=labels,
            sources=sources,
            added_columns=tuple(added),
            dropped_columns=tuple(dropped),
        )
