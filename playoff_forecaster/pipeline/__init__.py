"""End-to-end pipeline."""

from .playoffs import PlayoffPipeline, PlayoffPipelineConfig, run_pipeline, run_pipeline_to_file

__all__ = ["PlayoffPipeline", "PlayoffPipelineConfig", "run_pipeline", "run_pipeline_to_file"]
