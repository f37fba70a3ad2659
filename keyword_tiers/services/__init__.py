"""Services for keyword tier research."""

from keyword_tiers.services.analysis import AnalysisError, AnalysisRecorder, extract_intent

__all__ = [
    "AnalysisError",
    "AnalysisRecorder",
    "extract_intent",
]
