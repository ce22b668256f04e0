"""
Probability models for playoff qualification.

Both model families are thin adapters over library fitters so the pipeline
can treat them the same way: ``fit`` on a training DesignMatrix, then
``predict`` probabilities for any matrix with the same columns.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import xgboost as xgb

from ..features.design_matrix import DesignMatrix

logger = logging.getLogger(__name__)


class ProbabilityModel(ABC):
    """Abstract base class for playoff probability models."""

    def __init__(self, name: str):
        """
        Initialize model.

        Args:
            name: Name of the model
        """
        self.name = name
        self.feature_columns: Optional[Tuple[str, ...]] = None

    def fit(self, matrix: DesignMatrix) -> "ProbabilityModel":
        """
        Fit the model on a training design matrix.

        Args:
            matrix: Design matrix carrying 0/1 labels

        Returns:
            self
        """
        if matrix.labels is None:
            raise ValueError(f"{self.name}: training matrix has no labels")
        self.feature_columns = matrix.columns
        self._fit(matrix)
        logger.info("Fit %s on %d rows x %d columns", self.name, matrix.n_rows, len(matrix.columns))
        return self

    def predict(self, matrix: DesignMatrix) -> np.ndarray:
        """
        Predict playoff probabilities.

        Args:
            matrix: Design matrix reconciled to the training columns

        Returns:
            Probabilities [N]
        """
        if self.feature_columns is None:
            raise ValueError(f"{self.name}: model not trained")
        matrix.require_columns(self.feature_columns)
        if matrix.n_rows == 0:
            return np.empty(0)
        return np.asarray(self._predict(matrix), dtype=float)

    @abstractmethod
    def _fit(self, matrix: DesignMatrix) -> None:
        pass

    @abstractmethod
    def _predict(self, matrix: DesignMatrix) -> np.ndarray:
        pass


class LogisticGLM(ProbabilityModel):
    """
    Binomial GLM with logit link (statsmodels).

    ``variables`` restricts the fit to design columns derived from the named
    source features, which is how a selected variable subset is expressed.
    """

    def __init__(self, variables: Optional[Sequence[str]] = None):
        super().__init__("logit_glm")
        self.variables = list(variables) if variables else None
        self.used_columns: List[str] = []
        self.result = None

    def _select(self, matrix: DesignMatrix) -> List[str]:
        if self.variables is None:
            return list(matrix.columns)
        wanted = set(self.variables)
        return [c for c in matrix.columns if matrix.sources.get(c, c) in wanted]

    def _design(self, matrix: DesignMatrix) -> pd.DataFrame:
        frame = pd.DataFrame(
            matrix.values[:, matrix.column_index(self.used_columns)],
            columns=self.used_columns,
        )
        return sm.add_constant(frame, has_constant="add")

    def _fit(self, matrix: DesignMatrix) -> None:
        self.used_columns = self._select(matrix)
        if self.variables is not None and not self.used_columns:
            raise ValueError(f"No design columns match variables {self.variables}")
        model = sm.GLM(matrix.labels, self._design(matrix), family=sm.families.Binomial())
        self.result = model.fit()

    def _predict(self, matrix: DesignMatrix) -> np.ndarray:
        return self.result.predict(self._design(matrix))

    @property
    def aic(self) -> float:
        if self.result is None:
            raise ValueError("Model not trained")
        return float(self.result.aic)

    def coefficients(self) -> pd.DataFrame:
        """Coefficient table: estimate, standard error, z and p-value."""
        if self.result is None:
            raise ValueError("Model not trained")
        return pd.DataFrame({
            "estimate": self.result.params,
            "std_error": self.result.bse,
            "z": self.result.tvalues,
            "p_value": self.result.pvalues,
        })


@dataclass
class BoostingParams:
    """Gradient-boosted tree knobs."""

    learning_rate: float = 0.1
    max_depth: int = 3
    num_rounds: int = 100
    subsample: float = 0.8
    colsample_bytree: float = 0.8
    min_child_weight: float = 1.0
    seed: int = 123

    def to_xgb(self) -> Dict:
        return {
            "objective": "binary:logistic",
            "eval_metric": "logloss",
            "eta": self.learning_rate,
            "max_depth": self.max_depth,
            "subsample": self.subsample,
            "colsample_bytree": self.colsample_bytree,
            "min_child_weight": self.min_child_weight,
            "seed": self.seed,
            "verbosity": 0,
            "nthread": 1,
        }

    def to_dict(self) -> Dict:
        return asdict(self)


_XGB_RESERVED = re.compile(r"[\[\]<,]")


def _xgb_name(column: str) -> str:
    return _XGB_RESERVED.sub("_", column)


class GradientBoostedTrees(ProbabilityModel):
    """XGBoost binary classifier trained with ``xgb.train``."""

    def __init__(self, params: Optional[BoostingParams] = None):
        super().__init__("xgboost")
        self.params = params or BoostingParams()
        self.model = None
        self._names: List[str] = []

    def _dmatrix(self, matrix: DesignMatrix, with_labels: bool = False):
        label = matrix.labels if with_labels else None
        return xgb.DMatrix(matrix.values, label=label, feature_names=self._names)

    def _fit(self, matrix: DesignMatrix) -> None:
        self._names = [_xgb_name(c) for c in matrix.columns]
        dtrain = self._dmatrix(matrix, with_labels=True)
        self.model = xgb.train(
            self.params.to_xgb(),
            dtrain,
            num_boost_round=self.params.num_rounds,
            evals=[(dtrain, "train")],
            verbose_eval=False,
        )

    def _predict(self, matrix: DesignMatrix) -> np.ndarray:
        return self.model.predict(self._dmatrix(matrix))

    def feature_importance(self) -> Dict[str, float]:
        """Gain importance keyed by design column, highest first."""
        if self.model is None:
            return {}
        by_name = dict(zip(self._names, self.feature_columns))
        scores = self.model.get_score(importance_type="gain")
        ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
        return {by_name.get(name, name): float(score) for name, score in ranked}
