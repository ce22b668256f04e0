"""Data loader for team season statistics."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import DataRequirementError
from .validators import validate_season_table

logger = logging.getLogger(__name__)

# Per-team season summaries in the basketball-reference column layout.
DEFAULT_FEATURES: Tuple[str, ...] = (
    "age",
    "mov",
    "sos",
    "srs",
    "o_rtg",
    "d_rtg",
    "n_rtg",
    "pace",
    "f_tr",
    "x3p_ar",
    "ts_percent",
    "e_fg_percent",
    "tov_percent",
    "orb_percent",
    "ft_fga",
    "opp_e_fg_percent",
    "opp_tov_percent",
    "drb_percent",
    "opp_ft_fga",
)

LABEL_COLUMN = "playoffs"
LEAGUE_AVERAGE = "League Average"


def _coerce_label(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return series.astype(int)
    text = series.astype(str).str.strip().str.lower()
    return text.map({"true": 1, "1": 1, "1.0": 1, "false": 0, "0": 0, "0.0": 0}).astype(int)


class SeasonDataLoader:
    """Loads and cleans the flat team-season CSV."""

    @staticmethod
    def load_season_table(
        file_path: str,
        feature_columns: Sequence[str] = DEFAULT_FEATURES,
        label_column: str = LABEL_COLUMN,
        min_season: Optional[int] = None,
        league: Optional[str] = "NBA",
    ) -> pd.DataFrame:
        """
        Load the season table and return rows ready for partitioning.

        Args:
            file_path: Path to the CSV file
            feature_columns: Numeric statistics the models use
            label_column: Boolean playoff qualification column
            min_season: Drop seasons before this year when set
            league: Keep only this league when an ``lg`` column exists

        Returns:
            DataFrame with a 0/1 label and no missing feature values
        """
        path = Path(file_path)
        if not path.exists():
            raise DataRequirementError(f"Season table not found: {file_path}")

        frame = pd.read_csv(path)
        return SeasonDataLoader.clean(
            frame,
            feature_columns=feature_columns,
            label_column=label_column,
            min_season=min_season,
            league=league,
        )

    @staticmethod
    def clean(
        frame: pd.DataFrame,
        feature_columns: Sequence[str] = DEFAULT_FEATURES,
        label_column: str = LABEL_COLUMN,
        min_season: Optional[int] = None,
        league: Optional[str] = "NBA",
    ) -> pd.DataFrame:
        """Filter, validate and coerce a raw season table. Returns a new frame."""
        if league is not None and "lg" in frame.columns:
            frame = frame[frame["lg"] == league]
        if "team" in frame.columns:
            frame = frame[frame["team"] != LEAGUE_AVERAGE]
        if min_season is not None and "season" in frame.columns:
            frame = frame[frame["season"] >= min_season]
        frame = frame.copy()
        if "team" in frame.columns:
            # basketball-reference marks playoff teams with a trailing asterisk
            frame["team"] = frame["team"].astype(str).str.rstrip("*").str.strip()

        errors = validate_season_table(frame, feature_columns, label_column=label_column)
        if errors:
            raise DataRequirementError("Invalid season table: " + "; ".join(errors))

        for column in feature_columns:
            frame[column] = pd.to_numeric(frame[column], errors="coerce")

        incomplete = frame[list(feature_columns) + [label_column]].isna().any(axis=1)
        if incomplete.any():
            logger.warning(
                "Dropping %d of %d rows with missing feature values",
                int(incomplete.sum()), len(frame),
            )
            frame = frame[~incomplete].copy()

        frame[label_column] = _coerce_label(frame[label_column])
        frame = frame.reset_index(drop=True)
        logger.info(
            "Loaded %d team-seasons (%d playoff teams)",
            len(frame), int(frame[label_column].sum()),
        )
        return frame

    @staticmethod
    def create_sample_data(
        output_path: str,
        seasons: Sequence[int] = tuple(range(2010, 2024)),
        teams_per_season: int = 30,
        seed: int = 123,
    ) -> pd.DataFrame:
        """
        Write a synthetic season table with the real column layout.

        Playoff qualification follows net rating with noise, so the models
        have a learnable signal.

        Args:
            output_path: CSV destination
            seasons: Season years to generate
            teams_per_season: Teams per season
            seed: Random seed

        Returns:
            The generated DataFrame
        """
        rng = np.random.default_rng(seed)
        rows = []
        for season in seasons:
            n_rtg = rng.normal(0.0, 4.5, size=teams_per_season)
            pace = rng.normal(98.0, 3.0, size=teams_per_season)
            o_rtg = 110.0 + n_rtg / 2.0 + rng.normal(0.0, 1.5, size=teams_per_season)
            d_rtg = o_rtg - n_rtg
            noisy = n_rtg + rng.normal(0.0, 2.0, size=teams_per_season)
            cutoff = np.sort(noisy)[::-1][min(15, teams_per_season) - 1]
            for idx in range(teams_per_season):
                mov = n_rtg[idx] * pace[idx] / 100.0
                sos = float(rng.normal(0.0, 0.4))
                rows.append({
                    "season": season,
                    "lg": "NBA",
                    "team": f"Team {idx + 1:02d}",
                    "playoffs": bool(noisy[idx] >= cutoff),
                    "age": round(float(rng.normal(26.5, 1.6)), 1),
                    "mov": round(float(mov), 2),
                    "sos": round(sos, 2),
                    "srs": round(float(mov + sos), 2),
                    "o_rtg": round(float(o_rtg[idx]), 1),
                    "d_rtg": round(float(d_rtg[idx]), 1),
                    "n_rtg": round(float(n_rtg[idx]), 1),
                    "pace": round(float(pace[idx]), 1),
                    "f_tr": round(float(rng.normal(0.26, 0.03)), 3),
                    "x3p_ar": round(float(rng.normal(0.35, 0.06)), 3),
                    "ts_percent": round(float(0.56 + n_rtg[idx] / 400.0 + rng.normal(0, 0.01)), 3),
                    "e_fg_percent": round(float(0.52 + n_rtg[idx] / 400.0 + rng.normal(0, 0.01)), 3),
                    "tov_percent": round(float(rng.normal(13.0, 1.2)), 1),
                    "orb_percent": round(float(rng.normal(24.0, 2.5)), 1),
                    "ft_fga": round(float(rng.normal(0.20, 0.02)), 3),
                    "opp_e_fg_percent": round(float(0.52 - n_rtg[idx] / 400.0 + rng.normal(0, 0.01)), 3),
                    "opp_tov_percent": round(float(rng.normal(13.0, 1.2)), 1),
                    "drb_percent": round(float(rng.normal(76.0, 2.0)), 1),
                    "opp_ft_fga": round(float(rng.normal(0.20, 0.02)), 3),
                })

        frame = pd.DataFrame(rows)
        frame.to_csv(output_path, index=False)
        logger.info("Wrote %d synthetic team-seasons to %s", len(frame), output_path)
        return frame
