"""Keyword analysis pipeline."""

from keyword_tiers.pipeline.analysis_pipeline import AnalysisPipeline, AnalysisResult

__all__ = ["AnalysisPipeline", "AnalysisResult"]
