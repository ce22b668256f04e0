"""
Binary classifier evaluation: ROC/AUC, Youden cutoff, confusion metrics, gains.

The same evaluator is used for the training, validation and test passes.
Classification is always ``score > cutoff``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from ...errors import DegenerateLabelError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ScoreSet:
    """Predicted probabilities paired with true 0/1 labels."""

    scores: np.ndarray
    labels: np.ndarray
    name: str = ""

    def __post_init__(self):
        scores = np.array(self.scores, dtype=float, copy=True)
        labels = np.array(self.labels, copy=True)
        if scores.ndim != 1 or labels.ndim != 1:
            raise ValueError("Scores and labels must be one-dimensional")
        if len(scores) != len(labels):
            raise ValueError(
                f"Got {len(scores)} scores but {len(labels)} labels"
            )
        if len(scores) == 0:
            raise ValueError("Cannot evaluate an empty score set")
        if np.isnan(scores).any():
            raise ValueError("Scores contain NaN")
        if not np.isin(labels, (0, 1)).all():
            raise ValueError("Labels must be 0 or 1")
        labels = labels.astype(int)
        scores.setflags(write=False)
        labels.setflags(write=False)
        object.__setattr__(self, "scores", scores)
        object.__setattr__(self, "labels", labels)

    def __len__(self) -> int:
        return len(self.scores)


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts of (actual, predicted) at a cutoff."""

    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def n(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    def as_array(self) -> np.ndarray:
        """Rows are actual 0/1, columns predicted 0/1."""
        return np.array([[self.tn, self.fp], [self.fn, self.tp]])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.as_array(),
            index=pd.Index(["actual_0", "actual_1"]),
            columns=["predicted_0", "predicted_1"],
        )


@dataclass(frozen=True, eq=False)
class EvaluationReport:
    """Terminal evaluation artifact for one (model, split) pair."""

    name: str
    n: int
    n_positive: int
    n_negative: int
    thresholds: Tuple[float, ...]
    tpr: Tuple[float, ...]
    fpr: Tuple[float, ...]
    auc: float
    cutoff: float
    youden_j: float
    confusion: ConfusionMatrix
    accuracy: float
    sensitivity: float
    specificity: float
    precision: float
    gains: pd.DataFrame

    @property
    def roc_points(self) -> Tuple[Tuple[float, float], ...]:
        """(FPR, TPR) pairs from (0, 0) to (1, 1)."""
        return tuple(zip(self.fpr, self.tpr))

    def __str__(self) -> str:
        return (
            f"Evaluation [{self.name}] n={self.n}:\n"
            f"  AUC: {self.auc:.4f}\n"
            f"  Cutoff: {self.cutoff:.4f} (J={self.youden_j:.4f})\n"
            f"  Accuracy: {self.accuracy:.4f}\n"
            f"  Sensitivity: {self.sensitivity:.4f}\n"
            f"  Specificity: {self.specificity:.4f}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "n": self.n,
            "n_positive": self.n_positive,
            "n_negative": self.n_negative,
            "auc": self.auc,
            "cutoff": self.cutoff,
            "youden_j": self.youden_j,
            "confusion_matrix": {
                "tp": self.confusion.tp,
                "fp": self.confusion.fp,
                "tn": self.confusion.tn,
                "fn": self.confusion.fn,
            },
            "accuracy": self.accuracy,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "precision": None if np.isnan(self.precision) else self.precision,
            "roc": {
                "thresholds": [None if np.isinf(t) else t for t in self.thresholds],
                "tpr": list(self.tpr),
                "fpr": list(self.fpr),
            },
            "gains": self.gains.to_dict(orient="records"),
        }


# ---------------------------------------------------------------------------
# Curve and table helpers
# ---------------------------------------------------------------------------

def roc_curve(scores: ScoreSet) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    ROC points for every distinct score used as a threshold.

    Thresholds run from the highest score (nothing predicted positive,
    point (0, 0)) down to ``-inf`` (everything positive, point (1, 1)).

    Returns:
        (thresholds, tpr, fpr)
    """
    labels = scores.labels
    n_pos = int(labels.sum())
    n_neg = len(labels) - n_pos
    if n_pos == 0 or n_neg == 0:
        raise DegenerateLabelError(
            f"ROC needs both classes; got {n_pos} positive and {n_neg} negative"
        )

    order = np.argsort(-scores.scores, kind="mergesort")
    ranked = scores.scores[order]
    hits = labels[order]
    # last position of each run of equal scores
    ends = np.append(np.flatnonzero(np.diff(ranked) != 0), len(ranked) - 1)
    thresholds = np.append(ranked[ends], -np.inf)
    # predicted positive iff score > t: everything ranked before t's run
    tp = np.concatenate(([0], np.cumsum(hits)[ends]))
    fp = np.concatenate(([0], np.cumsum(1 - hits)[ends]))
    return thresholds, tp / n_pos, fp / n_neg


def auc_trapezoid(fpr: np.ndarray, tpr: np.ndarray) -> float:
    """Area under the ROC curve by the trapezoidal rule."""
    return float(np.sum(np.diff(fpr) * (tpr[1:] + tpr[:-1]) / 2.0))


def confusion_at(scores: ScoreSet, cutoff: float) -> ConfusionMatrix:
    predicted = scores.scores > cutoff
    actual = scores.labels == 1
    return ConfusionMatrix(
        tp=int(np.sum(predicted & actual)),
        fp=int(np.sum(predicted & ~actual)),
        tn=int(np.sum(~predicted & ~actual)),
        fn=int(np.sum(~predicted & actual)),
    )


def gains_table(scores: ScoreSet, n_deciles: int = 10) -> pd.DataFrame:
    """
    Cumulative gain / lift by score decile.

    Records are ranked by descending score (ties keep input order) and cut
    into ``min(n_deciles, n)`` near-equal buckets.
    """
    order = np.argsort(-scores.scores, kind="mergesort")
    ranked_scores = scores.scores[order]
    ranked_labels = scores.labels[order]
    n = len(ranked_labels)
    total_events = int(ranked_labels.sum())
    n_buckets = min(n_deciles, n)

    rows = []
    cum_events = 0
    cum_n = 0
    for decile, bucket in enumerate(np.array_split(np.arange(n), n_buckets), start=1):
        events = int(ranked_labels[bucket].sum())
        cum_events += events
        cum_n += len(bucket)
        capture = cum_events / total_events if total_events else 0.0
        rows.append({
            "decile": decile,
            "n": len(bucket),
            "events": events,
            "cum_events": cum_events,
            "event_rate": events / len(bucket),
            "cum_capture": capture,
            "cum_lift": capture / (cum_n / n),
            "min_score": float(ranked_scores[bucket].min()),
            "max_score": float(ranked_scores[bucket].max()),
        })
    return pd.DataFrame(rows)


def _safe_ratio(num: int, den: int) -> float:
    return num / den if den else float("nan")


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class ModelEvaluator:
    """Builds an EvaluationReport from a ScoreSet."""

    def __init__(self, n_deciles: int = 10):
        if n_deciles < 1:
            raise ValueError("n_deciles must be at least 1")
        self.n_deciles = n_deciles

    def evaluate(self, scores: ScoreSet) -> EvaluationReport:
        """Evaluate at the Youden-optimal cutoff."""
        return self._report(scores, cutoff=None)

    def evaluate_at(self, scores: ScoreSet, cutoff: float) -> EvaluationReport:
        """Evaluate at a cutoff chosen elsewhere (e.g. on the training split)."""
        return self._report(scores, cutoff=float(cutoff))

    def _report(self, scores: ScoreSet, cutoff: Optional[float]) -> EvaluationReport:
        thresholds, tpr, fpr = roc_curve(scores)
        auc = auc_trapezoid(fpr, tpr)

        if cutoff is None:
            # only finite thresholds are candidates; argmax keeps the first
            # (highest) threshold among ties
            j = tpr[:-1] - fpr[:-1]
            best = int(np.argmax(j))
            cutoff = float(thresholds[best])

        confusion = confusion_at(scores, cutoff)
        n_pos = confusion.tp + confusion.fn
        n_neg = confusion.tn + confusion.fp
        sensitivity = confusion.tp / n_pos
        specificity = confusion.tn / n_neg

        report = EvaluationReport(
            name=scores.name,
            n=len(scores),
            n_positive=n_pos,
            n_negative=n_neg,
            thresholds=tuple(float(t) for t in thresholds),
            tpr=tuple(float(v) for v in tpr),
            fpr=tuple(float(v) for v in fpr),
            auc=auc,
            cutoff=cutoff,
            youden_j=float(sensitivity + specificity - 1.0),
            confusion=confusion,
            accuracy=(confusion.tp + confusion.tn) / confusion.n,
            sensitivity=sensitivity,
            specificity=specificity,
            precision=_safe_ratio(confusion.tp, confusion.tp + confusion.fp),
            gains=gains_table(scores, self.n_deciles),
        )
        logger.info(
            "Evaluated %s: AUC=%.4f cutoff=%.4f accuracy=%.4f",
            scores.name or "scores", report.auc, report.cutoff, report.accuracy,
        )
        return report
