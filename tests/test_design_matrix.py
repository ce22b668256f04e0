"""Tests for design-matrix expansion and cross-split column reconciliation."""

import numpy as np
import pandas as pd
import pytest

from playoff_forecaster.errors import ColumnMismatchError
from playoff_forecaster.features.binning import BIN_LABELS
from playoff_forecaster.features.design_matrix import DesignMatrix, FeatureMatrixBuilder


def _binned(levels, teams, labels=None):
    frame = pd.DataFrame({
        "n_rtg": pd.Categorical(levels, categories=list(BIN_LABELS), ordered=True),
        "team": teams,
    })
    frame["playoffs"] = labels if labels is not None else [0] * len(levels)
    return frame


class TestExpansion:
    def test_ordinal_bins_use_observed_levels_minus_reference(self):
        builder = FeatureMatrixBuilder(["n_rtg"])
        matrix = builder.build(_binned(["Low", "High", "Mid"], ["A", "B", "C"]))
        # declared order, unobserved bins omitted
        assert matrix.columns == ("n_rtg_Mid", "n_rtg_High")
        np.testing.assert_array_equal(matrix.values, [[0, 0], [0, 1], [1, 0]])

    def test_lowest_observed_bin_is_reference_when_low_is_empty(self):
        rng = np.random.default_rng(5)
        levels = rng.choice(list(BIN_LABELS[1:]), size=40)
        levels[:4] = list(BIN_LABELS[1:])
        matrix = FeatureMatrixBuilder(["n_rtg"]).build(_binned(list(levels), ["A"] * 40))

        assert matrix.columns == ("n_rtg_Mid", "n_rtg_Mid-High", "n_rtg_High")
        with_intercept = np.column_stack([np.ones(matrix.n_rows), matrix.values])
        assert np.linalg.matrix_rank(with_intercept) == with_intercept.shape[1]

    def test_training_columns_are_never_all_zero(self):
        matrix = FeatureMatrixBuilder(["n_rtg"]).build(_binned(["Mid-Low", "High"], ["A", "B"]))
        assert matrix.values.any(axis=0).all()

    def test_string_levels_use_sorted_observed_values(self):
        builder = FeatureMatrixBuilder(["team"])
        matrix = builder.build(_binned(["Low"] * 3, ["Celtics", "Bulls", "Lakers"]))
        # "Bulls" is the reference level
        assert matrix.columns == ("team_Celtics", "team_Lakers")
        np.testing.assert_array_equal(matrix.values, [[1, 0], [0, 0], [0, 1]])

    def test_numeric_columns_pass_through(self):
        frame = _binned(["Low", "Mid"], ["A", "B"])
        frame["pace"] = [97.5, 101.0]
        matrix = FeatureMatrixBuilder(["n_rtg"], numeric_columns=["pace"]).build(frame)
        assert matrix.columns[0] == "pace"
        assert matrix.values[:, 0].tolist() == [97.5, 101.0]
        assert matrix.sources["pace"] == "pace"

    def test_labels_and_sources_carried(self):
        matrix = FeatureMatrixBuilder(["n_rtg", "team"]).build(
            _binned(["Low", "Mid"], ["A", "B"], labels=[0, 1])
        )
        assert matrix.labels.tolist() == [0, 1]
        assert matrix.sources["n_rtg_Mid"] == "n_rtg"
        assert matrix.sources["team_B"] == "team"

    def test_no_labels_when_label_column_absent(self):
        frame = _binned(["Low"], ["A"]).drop(columns=["playoffs"])
        assert FeatureMatrixBuilder(["n_rtg"]).build(frame).labels is None

    def test_matrix_is_read_only(self):
        matrix = FeatureMatrixBuilder(["n_rtg"]).build(_binned(["Low", "High"], ["A", "B"]))
        with pytest.raises(ValueError):
            matrix.values[0, 0] = 5.0

    def test_sources_are_read_only(self):
        matrix = FeatureMatrixBuilder(["n_rtg"]).build(_binned(["Low", "High"], ["A", "B"]))
        with pytest.raises(TypeError):
            matrix.sources["n_rtg_High"] = "pace"

    def test_shape_mismatch_rejected(self):
        with pytest.raises(ValueError, match="does not match"):
            DesignMatrix(values=np.zeros((2, 2)), columns=("a",), index=(0, 1))


class TestReconciliation:
    def test_output_has_exactly_reference_columns(self):
        builder = FeatureMatrixBuilder(["team"])
        train = builder.build(_binned(["Low"] * 3, ["A", "B", "C"]))
        assert train.columns == ("team_B", "team_C")

        # "D" never appeared in training; "C" is absent here
        valid = builder.build(_binned(["Low"] * 2, ["A", "D"]), reference_columns=train.columns)

        assert valid.columns == train.columns
        assert valid.added_columns == ("team_B", "team_C")
        # "A" is the training reference level, "D" was never seen in training
        assert valid.dropped_columns == ("team_A", "team_D")
        np.testing.assert_array_equal(valid.values, np.zeros((2, 2)))

    def test_added_columns_are_all_zero(self):
        builder = FeatureMatrixBuilder(["team"])
        reference = ("team_B", "team_C", "team_Z")
        matrix = builder.build(_binned(["Low"] * 2, ["A", "B"]), reference_columns=reference)
        assert matrix.columns == reference
        assert matrix.added_columns == ("team_C", "team_Z")
        z = matrix.column_index(["team_C", "team_Z"])
        assert not matrix.values[:, z].any()
        assert matrix.values[:, 0].tolist() == [0.0, 1.0]
        assert matrix.sources["team_Z"] == "team"

    def test_reference_order_is_preserved(self):
        builder = FeatureMatrixBuilder(["n_rtg"])
        reference = ("n_rtg_High", "n_rtg_Mid")
        matrix = builder.build(_binned(["Mid", "High"], ["A", "B"]), reference_columns=reference)
        assert matrix.columns == reference
        np.testing.assert_array_equal(matrix.values, [[0, 1], [1, 0]])
        assert matrix.added_columns == ()
        assert matrix.dropped_columns == ()

    def test_training_reference_level_maps_to_all_zero_row(self):
        builder = FeatureMatrixBuilder(["team"])
        train = builder.build(_binned(["Low"] * 2, ["B", "C"]))
        test = builder.build(_binned(["Low"] * 2, ["A", "B"]), reference_columns=train.columns)
        assert test.columns == ("team_C",)
        np.testing.assert_array_equal(test.values, [[0.0], [0.0]])
        assert test.dropped_columns == ("team_A", "team_B")

    def test_split_without_training_reference_level_keeps_encoding(self):
        builder = FeatureMatrixBuilder(["n_rtg", "team"])
        train = builder.build(_binned(["Low", "Mid", "High"], ["A", "B", "C"]))
        # only non-reference levels here; each must keep its training indicator
        valid = builder.build(_binned(["High", "Mid"], ["C", "B"]), reference_columns=train.columns)
        assert valid.columns == ("n_rtg_Mid", "n_rtg_High", "team_B", "team_C")
        np.testing.assert_array_equal(valid.values, [[0, 1, 0, 1], [1, 0, 1, 0]])
        assert valid.added_columns == ()

    def test_empty_frame_reconciles_to_zero_rows(self):
        builder = FeatureMatrixBuilder(["n_rtg", "team"])
        train = builder.build(_binned(["Low", "High"], ["A", "B"]))
        empty = builder.build(_binned([], []), reference_columns=train.columns)
        assert empty.n_rows == 0
        assert empty.columns == train.columns


class TestRequireColumns:
    def test_matching_columns_pass(self):
        matrix = FeatureMatrixBuilder(["team"]).build(_binned(["Low"] * 2, ["A", "B"]))
        matrix.require_columns(("team_B",))

    def test_mismatch_raises_with_details(self):
        matrix = FeatureMatrixBuilder(["team"]).build(_binned(["Low"] * 2, ["A", "B"]))
        with pytest.raises(ColumnMismatchError) as excinfo:
            matrix.require_columns(("team_C",))
        assert excinfo.value.missing == ["team_C"]
        assert excinfo.value.unexpected == ["team_B"]

    def test_order_difference_is_a_mismatch(self):
        matrix = FeatureMatrixBuilder(["team"]).build(_binned(["Low"] * 3, ["A", "B", "C"]))
        with pytest.raises(ColumnMismatchError):
            matrix.require_columns(("team_C", "team_B"))
