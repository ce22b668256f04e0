"""Binning, partitioning and design-matrix construction."""

from .binning import BIN_LABELS, QuantileBinner, QuantileThresholds, apply_bins, fit_thresholds
from .design_matrix import DesignMatrix, FeatureMatrixBuilder
from .partition import Partition, Split, partition

__all__ = [
    "BIN_LABELS",
    "QuantileBinner",
    "QuantileThresholds",
    "apply_bins",
    "fit_thresholds",
    "DesignMatrix",
    "FeatureMatrixBuilder",
    "Partition",
    "Split",
    "partition",
]
