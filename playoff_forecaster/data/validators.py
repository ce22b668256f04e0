"""Schema validators for the team season table."""

from __future__ import annotations

from typing import List, Sequence

import pandas as pd

_LABEL_VALUES = {"true", "false", "1", "0", "1.0", "0.0"}


def _label_is_boolean_like(series: pd.Series) -> bool:
    values = series.dropna()
    if values.empty:
        return False
    if pd.api.types.is_bool_dtype(values):
        return True
    return all(str(v).strip().lower() in _LABEL_VALUES for v in values.unique())


def validate_season_table(
    frame: pd.DataFrame,
    feature_columns: Sequence[str],
    label_column: str = "playoffs",
    key_columns: Sequence[str] = ("season", "team"),
) -> List[str]:
    """Check a loaded season table before it enters the pipeline.

    Returns:
        List of human-readable problems; empty when the table is usable.
    """
    errors: List[str] = []
    if frame is None or frame.empty:
        return ["season table is empty"]

    required = list(key_columns) + [label_column] + list(feature_columns)
    missing = [c for c in required if c not in frame.columns]
    if missing:
        errors.append(f"season table missing columns: {', '.join(missing)}")

    for column in feature_columns:
        if column not in frame.columns:
            continue
        coerced = pd.to_numeric(frame[column], errors="coerce")
        bad = int((coerced.isna() & frame[column].notna()).sum())
        if bad:
            errors.append(f"feature '{column}' has {bad} non-numeric values")

    if label_column in frame.columns and not _label_is_boolean_like(frame[label_column]):
        errors.append(f"label '{label_column}' must be boolean or 0/1")
    return errors
