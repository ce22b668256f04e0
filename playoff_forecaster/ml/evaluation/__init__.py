"""Model evaluation harness."""

from .evaluator import ConfusionMatrix, EvaluationReport, ModelEvaluator, ScoreSet
from .season_report import SeasonAccuracyReport, group_by_season, report

__all__ = [
    "ConfusionMatrix",
    "EvaluationReport",
    "ModelEvaluator",
    "ScoreSet",
    "SeasonAccuracyReport",
    "group_by_season",
    "report",
]
