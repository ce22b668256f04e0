"""Model wrappers and evaluation."""

from .models import BoostingParams, GradientBoostedTrees, LogisticGLM, ProbabilityModel

__all__ = ["BoostingParams", "GradientBoostedTrees", "LogisticGLM", "ProbabilityModel"]
