"""Data models for keyword tier research."""

from keyword_tiers.models.keyword import (
    DeliveryKeyword,
    DeliveryPayload,
    DeliveryResponse,
    DeliveryResponseBody,
    Keyword,
    KeywordMetrics,
    Project,
    ProjectContext,
    calculate_metrics,
    split_suggestions,
    tier_key,
)

__all__ = [
    "Keyword",
    "KeywordMetrics",
    "Project",
    "ProjectContext",
    "DeliveryKeyword",
    "DeliveryPayload",
    "DeliveryResponse",
    "DeliveryResponseBody",
    "calculate_metrics",
    "split_suggestions",
    "tier_key",
]
