"""Season table loading and validation."""

from .loader import DEFAULT_FEATURES, SeasonDataLoader
from .validators import validate_season_table

__all__ = ["DEFAULT_FEATURES", "SeasonDataLoader", "validate_season_table"]
