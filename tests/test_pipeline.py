"""Integration tests for the end-to-end playoff pipeline on synthetic seasons."""

import json

import pytest

from playoff_forecaster.data.loader import SeasonDataLoader
from playoff_forecaster.errors import DataLeakageError, DataRequirementError
from playoff_forecaster.features.partition import partition
from playoff_forecaster.ml.models import BoostingParams
from playoff_forecaster.pipeline.playoffs import (
    PlayoffPipeline,
    PlayoffPipelineConfig,
    run_pipeline,
    run_pipeline_to_file,
)


@pytest.fixture
def season_csv(tmp_path):
    path = tmp_path / "seasons.csv"
    SeasonDataLoader.create_sample_data(str(path), seasons=range(2004, 2020), seed=7)
    return str(path)


def _logit_config(path: str, **overrides) -> PlayoffPipelineConfig:
    params = dict(
        input_csv=path,
        model="logit",
        glm_variables=("n_rtg", "srs"),
    )
    params.update(overrides)
    return PlayoffPipelineConfig(**params)


def test_logit_pipeline_report(season_csv):
    result = run_pipeline(_logit_config(season_csv))

    assert result["partition"] == {"train": 336, "valid": 72, "test": 72}
    assert set(result["evaluation"]) == {"train", "valid", "test"}
    for name in ("train", "valid", "test"):
        assert result["evaluation"][name]["auc"] > 0.75
    assert set(result["evaluation_at_train_cutoff"]) == {"valid", "test"}
    for evaluation in result["evaluation_at_train_cutoff"].values():
        assert evaluation["cutoff"] == result["evaluation"]["train"]["cutoff"]

    assert result["model"]["name"] == "logit_glm"
    assert result["model"]["n_columns"] == 8
    assert "const" in result["model"]["coefficients"]


def test_thresholds_fit_on_training_rows_only(season_csv):
    result = run_pipeline(_logit_config(season_csv))
    thresholds = result["thresholds"]
    assert thresholds["fit_on"] == "train"
    assert thresholds["n_rows"] == result["partition"]["train"]
    assert thresholds["features"]["age"]["strategy"] == "fixed"
    assert thresholds["features"]["n_rtg"]["strategy"] == "quantile"


def test_season_accuracy_covers_every_season_in_order(season_csv):
    result = run_pipeline(_logit_config(season_csv))
    seasons = [row["season"] for row in result["season_accuracy"]]
    assert seasons == list(range(2004, 2020))
    assert all(0.0 <= row["accuracy"] <= 1.0 for row in result["season_accuracy"])


def test_xgboost_pipeline(season_csv):
    config = PlayoffPipelineConfig(
        input_csv=season_csv,
        model="xgboost",
        boosting=BoostingParams(num_rounds=40, max_depth=2),
    )
    result = run_pipeline(config)

    assert result["model"]["name"] == "xgboost"
    assert result["model"]["params"]["num_rounds"] == 40
    assert result["model"]["feature_importance"]
    assert result["evaluation"]["test"]["auc"] > 0.7


def test_same_seed_reproduces_report(season_csv):
    a = run_pipeline(_logit_config(season_csv))
    b = run_pipeline(_logit_config(season_csv))
    a.pop("generated_at")
    b.pop("generated_at")
    assert a == b


def test_report_written_as_json(season_csv, tmp_path):
    out = tmp_path / "report.json"
    run_pipeline_to_file(_logit_config(season_csv), str(out))
    with open(out) as f:
        payload = json.load(f)
    assert payload["config"]["model"] == "logit"
    assert len(payload["evaluation"]["test"]["gains"]) == 10


def test_pipeline_can_run_twice_on_new_tables(season_csv, tmp_path):
    pipeline = PlayoffPipeline(_logit_config(season_csv))
    first = pipeline.run()
    first_binner = pipeline.binner

    other = SeasonDataLoader.clean(
        SeasonDataLoader.create_sample_data(str(tmp_path / "other.csv"), seasons=range(2000, 2010), seed=99)
    )
    second = pipeline.run(other)

    assert pipeline.binner is not first_binner
    assert second["partition"] == {"train": 210, "valid": 45, "test": 45}
    assert second["thresholds"]["n_rows"] == 210
    assert first["thresholds"]["n_rows"] == 336


def test_fitted_binner_still_refuses_refit(season_csv):
    pipeline = PlayoffPipeline(_logit_config(season_csv))
    pipeline.run()
    splits = partition(pipeline.load(), seed=1)
    with pytest.raises(DataLeakageError, match="frozen"):
        pipeline.binner.fit(splits.train)


def test_missing_input_raises(tmp_path):
    with pytest.raises(DataRequirementError):
        run_pipeline(_logit_config(str(tmp_path / "missing.csv")))


def test_unknown_model_rejected():
    with pytest.raises(ValueError, match="Unknown model"):
        PlayoffPipeline(PlayoffPipelineConfig(model="forest"))
