"""Reproducible train / validation / test partitioning."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np
import pandas as pd

from ..errors import InsufficientDataError

logger = logging.getLogger(__name__)

SPLIT_NAMES = ("train", "valid", "test")
DEFAULT_RATIOS = (0.70, 0.15, 0.15)
MIN_ROWS = 2


@dataclass(frozen=True, eq=False)
class Split:
    """A named subset of the season table. Owns its rows."""

    name: str
    frame: pd.DataFrame

    def __post_init__(self):
        if self.name not in SPLIT_NAMES:
            raise ValueError(f"Unknown split name: {self.name}")

    def __len__(self) -> int:
        return len(self.frame)


@dataclass(frozen=True, eq=False)
class Partition:
    """The three disjoint splits of one dataset."""

    train: Split
    valid: Split
    test: Split

    def __iter__(self) -> Iterator[Split]:
        return iter((self.train, self.valid, self.test))

    def sizes(self) -> Tuple[int, int, int]:
        return len(self.train), len(self.valid), len(self.test)


def _validate_ratios(ratios) -> Tuple[float, float, float]:
    if len(ratios) != 3:
        raise ValueError(f"Expected 3 split ratios, got {len(ratios)}")
    ratios = tuple(float(r) for r in ratios)
    if any(r <= 0 for r in ratios):
        raise ValueError(f"Split ratios must be positive: {ratios}")
    if not math.isclose(sum(ratios), 1.0, abs_tol=1e-9):
        raise ValueError(f"Split ratios must sum to 1, got {sum(ratios):.6f}")
    return ratios


def partition(
    records: pd.DataFrame,
    seed: int = 123,
    ratios=DEFAULT_RATIOS,
) -> Partition:
    """
    Split records into train, validation and test subsets.

    Train is a uniform sample without replacement of ``floor(n * ratios[0])``
    rows. Validation is drawn from the remainder in proportion
    ``ratios[1] / (ratios[1] + ratios[2])`` and test receives the rest.
    Rows inside each split keep their input order.

    Args:
        records: Season table
        seed: Seed for ``numpy.random.default_rng``
        ratios: (train, valid, test) fractions summing to 1

    Returns:
        Partition of three disjoint splits covering every input row
    """
    train_ratio, valid_ratio, test_ratio = _validate_ratios(ratios)
    n = len(records)
    if n < MIN_ROWS:
        raise InsufficientDataError(
            f"Need at least {MIN_ROWS} rows to partition, got {n}"
        )

    rng = np.random.default_rng(seed)
    positions = np.arange(n)

    n_train = int(math.floor(n * train_ratio))
    train_pos = np.sort(rng.choice(positions, size=n_train, replace=False))
    remainder = np.setdiff1d(positions, train_pos)

    n_valid = int(math.floor(len(remainder) * valid_ratio / (valid_ratio + test_ratio)))
    valid_pos = np.sort(rng.choice(remainder, size=n_valid, replace=False))
    test_pos = np.setdiff1d(remainder, valid_pos)

    result = Partition(
        train=Split("train", records.iloc[train_pos].copy()),
        valid=Split("valid", records.iloc[valid_pos].copy()),
        test=Split("test", records.iloc[test_pos].copy()),
    )
    logger.info("Partitioned %d rows into train/valid/test = %s", n, result.sizes())
    return result
