"""End-to-end playoff qualification pipeline."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..data.loader import DEFAULT_FEATURES, LABEL_COLUMN, SeasonDataLoader
from ..features.binning import DEFAULT_FIXED_BREAKPOINTS, QuantileBinner
from ..features.design_matrix import DesignMatrix, FeatureMatrixBuilder
from ..features.partition import DEFAULT_RATIOS, Partition, partition
from ..ml.evaluation.evaluator import EvaluationReport, ModelEvaluator, ScoreSet
from ..ml.evaluation.season_report import group_by_season, report
from ..ml.models import BoostingParams, GradientBoostedTrees, LogisticGLM, ProbabilityModel

logger = logging.getLogger(__name__)

MODEL_CHOICES = ("logit", "xgboost")


@dataclass
class PlayoffPipelineConfig:
    """Pipeline configuration knobs."""

    input_csv: Optional[str] = None
    model: str = "logit"
    random_seed: int = 123
    ratios: Tuple[float, float, float] = DEFAULT_RATIOS

    features: Tuple[str, ...] = DEFAULT_FEATURES
    fixed_breakpoints: Dict[str, Tuple[float, ...]] = field(
        default_factory=lambda: dict(DEFAULT_FIXED_BREAKPOINTS)
    )
    # Extra categorical predictors used as-is (team identity)
    categorical_extras: Tuple[str, ...] = ("team",)
    label_column: str = LABEL_COLUMN
    season_column: str = "season"
    min_season: Optional[int] = None

    # Variable subset for the GLM; None keeps every design column
    glm_variables: Optional[Tuple[str, ...]] = None
    boosting: BoostingParams = field(default_factory=BoostingParams)

    n_deciles: int = 10
    on_empty: str = "raise"


class PlayoffPipeline:
    """Load, bin, split, fit, evaluate and report in one pass."""

    def __init__(self, config: Optional[PlayoffPipelineConfig] = None):
        self.config = config or PlayoffPipelineConfig()
        if self.config.model not in MODEL_CHOICES:
            raise ValueError(f"Unknown model type: {self.config.model}")

        self.builder = FeatureMatrixBuilder(
            categorical_columns=list(self.config.features) + list(self.config.categorical_extras),
            label_column=self.config.label_column,
        )
        self.evaluator = ModelEvaluator(n_deciles=self.config.n_deciles)
        self.binner: Optional[QuantileBinner] = None
        self.model: Optional[ProbabilityModel] = None

    def create_model(self) -> ProbabilityModel:
        if self.config.model == "logit":
            return LogisticGLM(variables=self.config.glm_variables)
        return GradientBoostedTrees(self.config.boosting)

    def load(self) -> pd.DataFrame:
        if not self.config.input_csv:
            raise ValueError("No input CSV configured")
        return SeasonDataLoader.load_season_table(
            self.config.input_csv,
            feature_columns=self.config.features,
            label_column=self.config.label_column,
            min_season=self.config.min_season,
        )

    def run(self, records: Optional[pd.DataFrame] = None) -> Dict:
        """Run every stage and return a JSON-serializable report."""
        if records is None:
            records = self.load()

        splits = partition(records, seed=self.config.random_seed, ratios=self.config.ratios)
        # fresh thresholds per run; the binner itself refuses a refit
        self.binner = QuantileBinner(self.config.features, self.config.fixed_breakpoints)
        thresholds = self.binner.fit(splits.train)
        binned = {split.name: self.binner.transform(split) for split in splits}

        matrices = self._build_matrices(binned)
        self.model = self.create_model().fit(matrices["train"])

        evaluations = self._evaluate_splits(matrices)
        cutoff = evaluations["train"].cutoff
        frozen = {
            name: self.evaluator.evaluate_at(self._scores(name, matrices[name]), cutoff)
            for name in ("valid", "test")
        }

        seasons = self._season_accuracy(records, matrices["train"].columns, cutoff)

        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "config": self._config_dict(),
            "partition": dict(zip(("train", "valid", "test"), splits.sizes())),
            "thresholds": thresholds.to_dict(),
            "design_matrix": {
                "n_columns": len(matrices["train"].columns),
                "reconciliation": {
                    name: {
                        "added": list(matrices[name].added_columns),
                        "dropped": list(matrices[name].dropped_columns),
                    }
                    for name in ("valid", "test")
                },
            },
            "model": self._model_summary(),
            "evaluation": {name: rep.to_dict() for name, rep in evaluations.items()},
            "evaluation_at_train_cutoff": {name: rep.to_dict() for name, rep in frozen.items()},
            "season_accuracy": [
                {"season": _native(season), "accuracy": acc} for season, acc in seasons
            ],
        }

    def _build_matrices(self, binned: Dict[str, pd.DataFrame]) -> Dict[str, DesignMatrix]:
        train = self.builder.build(binned["train"])
        matrices = {"train": train}
        for name in ("valid", "test"):
            matrices[name] = self.builder.build(binned[name], reference_columns=train.columns)
        return matrices

    def _scores(self, name: str, matrix: DesignMatrix) -> ScoreSet:
        return ScoreSet(self.model.predict(matrix), matrix.labels, name=name)

    def _evaluate_splits(self, matrices: Dict[str, DesignMatrix]) -> Dict[str, EvaluationReport]:
        return {
            name: self.evaluator.evaluate(self._scores(name, matrix))
            for name, matrix in matrices.items()
        }

    def _season_accuracy(self, records: pd.DataFrame, columns, cutoff: float) -> List:
        binned_all = self.binner.transform(records)
        groups = group_by_season(
            binned_all,
            self.builder,
            reference_columns=columns,
            season_column=self.config.season_column,
        )
        return list(report(self.model, groups, cutoff, on_empty=self.config.on_empty))

    def _model_summary(self) -> Dict:
        summary: Dict = {"name": self.model.name}
        if isinstance(self.model, LogisticGLM):
            summary["aic"] = self.model.aic
            summary["n_columns"] = len(self.model.used_columns)
            summary["coefficients"] = {
                str(k): float(v) for k, v in self.model.coefficients()["estimate"].items()
            }
        elif isinstance(self.model, GradientBoostedTrees):
            summary["params"] = self.model.params.to_dict()
            summary["feature_importance"] = self.model.feature_importance()
        return summary

    def _config_dict(self) -> Dict:
        cfg = self.config
        return {
            "input_csv": cfg.input_csv,
            "model": cfg.model,
            "random_seed": cfg.random_seed,
            "ratios": list(cfg.ratios),
            "features": list(cfg.features),
            "fixed_breakpoints": {k: list(v) for k, v in cfg.fixed_breakpoints.items()},
            "categorical_extras": list(cfg.categorical_extras),
            "min_season": cfg.min_season,
            "glm_variables": list(cfg.glm_variables) if cfg.glm_variables else None,
            "n_deciles": cfg.n_deciles,
        }


def _native(value):
    if isinstance(value, np.generic):
        return value.item()
    return value


def run_pipeline(config: PlayoffPipelineConfig, records: Optional[pd.DataFrame] = None) -> Dict:
    return PlayoffPipeline(config).run(records)


def run_pipeline_to_file(config: PlayoffPipelineConfig, output_path: str) -> Dict:
    result = run_pipeline(config)
    with open(output_path, "w") as f:
        json.dump(result, f, indent=2, default=_native)
    logger.info("Wrote pipeline report to %s", output_path)
    return result
