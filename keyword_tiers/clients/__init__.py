"""API clients for external services."""

from keyword_tiers.clients.autosuggest import AutoSuggestClient
from keyword_tiers.clients.base import APIError, BaseAPIClient, RateLimiter
from keyword_tiers.clients.record_store import RecordStoreClient
from keyword_tiers.clients.webhook import DeliveryError, WebhookClient, validate_webhook_response

__all__ = [
    "APIError",
    "BaseAPIClient",
    "RateLimiter",
    "AutoSuggestClient",
    "DeliveryError",
    "RecordStoreClient",
    "WebhookClient",
    "validate_webhook_response",
]
