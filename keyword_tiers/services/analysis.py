"""Forwarding of finalized keyword analyses to the hosted record store."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from keyword_tiers.clients.base import batch_items
from keyword_tiers.clients.record_store import RecordStoreClient
from keyword_tiers.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Rows per upsert request
UPSERT_BATCH_SIZE = 500


class AnalysisError(ValueError):
    """Raised when an analysis payload lacks the fields we derive from it."""

    pass


def extract_intent(analysis: dict[str, Any]) -> str:
    """Read ``keyword_analysis.search_intent.type`` from an analysis payload."""
    try:
        intent = analysis["keyword_analysis"]["search_intent"]["type"]
    except (KeyError, TypeError) as e:
        raise AnalysisError("Analysis is missing keyword_analysis.search_intent.type") from e

    if not isinstance(intent, str):
        raise AnalysisError(f"Search intent type must be a string, got {type(intent).__name__}")
    return intent


class AnalysisRecorder:
    """
    Marks keywords as analyzed in the hosted ``keywords`` table.

    Each record gets the raw analysis, the derived search intent,
    ``confirmed=True`` and an ISO ``updated_at`` timestamp. Store errors
    propagate to the caller untouched.
    """

    def __init__(
        self,
        client: RecordStoreClient | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        if client is None and not self.settings.supabase_configured:
            logger.warning("Hosted record store is not configured (SUPABASE_URL, SUPABASE_KEY)")
        self.client = client or RecordStoreClient(settings=self.settings)
        self.table = self.settings.keywords_table

    def _build_values(self, analysis: dict[str, Any]) -> dict[str, Any]:
        return {
            "analysis": analysis,
            "intent": extract_intent(analysis),
            "confirmed": True,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

    async def save_analysis(self, keyword_id: str, analysis: dict[str, Any]) -> None:
        """Update one keyword row with its analysis."""
        values = self._build_values(analysis)
        try:
            await self.client.update(self.table, keyword_id, values)
        except Exception as e:
            logger.error(
                f"Error saving analysis for keyword {keyword_id}: {e}",
                extra={"keyword_id": keyword_id},
            )
            raise

    async def batch_save_analysis(
        self, analyses: Iterable[tuple[str, dict[str, Any]]]
    ) -> int:
        """
        Upsert several analyses.

        Args:
            analyses: (keyword_id, analysis) pairs

        Returns:
            Number of rows written
        """
        rows = [
            {"id": keyword_id, **self._build_values(analysis)}
            for keyword_id, analysis in analyses
        ]
        if not rows:
            return 0

        try:
            for batch in batch_items(rows, UPSERT_BATCH_SIZE):
                await self.client.upsert(self.table, batch)
        except Exception as e:
            logger.error(f"Error saving analyses: {e}")
            raise

        logger.info(f"{len(rows)} analyses saved")
        return len(rows)
