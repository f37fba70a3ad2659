"""Google autocomplete client for keyword suggestions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from keyword_tiers.clients.base import BaseAPIClient, RateLimiter
from keyword_tiers.config import Settings, get_settings

logger = logging.getLogger(__name__)


def split_locale(locale: str) -> tuple[str, str | None]:
    """Split a locale tag such as ``pt-PT`` into language and region."""
    lang, _, region = locale.replace("_", "-").partition("-")
    return lang, region or None


class AutoSuggestClient(BaseAPIClient):
    """
    Client for the public Google suggestion endpoint.

    The endpoint answers ``[query, [suggestion, ...]]``. It is unofficial
    and throttles aggressively, so batches run one keyword at a time with
    a fixed pause between requests. Lookups never raise: a failed keyword
    simply has no suggestions.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        delay: float | None = None,
        rate_limiter: RateLimiter | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(
            base_url=settings.autosuggest_url,
            settings=settings,
            rate_limiter=rate_limiter,
        )
        self.delay = settings.autosuggest_delay if delay is None else delay
        self._sleep = sleep or asyncio.sleep

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": "Mozilla/5.0",
        }

    async def fetch_suggestions(self, keyword: str, locale: str | None = None) -> list[str]:
        """
        Get autocomplete suggestions for one keyword.

        Args:
            keyword: Seed keyword
            locale: Locale tag like ``en-US``; the region is optional

        Returns:
            Suggestion strings, empty on any failure
        """
        lang, country = split_locale(locale or self.settings.default_language)
        params = {"client": "firefox", "hl": lang, "q": keyword}
        if country:
            params["gl"] = country

        try:
            data = await self.get("", params=params)
        except Exception as e:
            logger.error(f"Error fetching suggestions for '{keyword}': {e}")
            return []

        if not isinstance(data, list) or len(data) < 2 or not isinstance(data[1], list):
            logger.warning(f"Unexpected suggestion response for '{keyword}': {data!r}")
            return []

        return [s for s in data[1] if isinstance(s, str)]

    async def fetch_batch(
        self,
        keywords: Iterable[str],
        locale: str | None = None,
    ) -> dict[str, list[str]]:
        """
        Get suggestions for several keywords, one request at a time.

        Args:
            keywords: Seed keywords
            locale: Locale tag shared by all lookups

        Returns:
            Mapping of keyword to its suggestions (empty list on failure)
        """
        results: dict[str, list[str]] = {}
        keywords = list(keywords)

        for i, keyword in enumerate(keywords):
            results[keyword] = await self.fetch_suggestions(keyword, locale)
            logger.debug(f"Got {len(results[keyword])} suggestions for '{keyword}'")

            if self.delay > 0 and i < len(keywords) - 1:
                await self._sleep(self.delay)

        logger.info(
            f"Fetched suggestions for {len(keywords)} keywords "
            f"({sum(1 for s in results.values() if s)} with results)"
        )
        return results
