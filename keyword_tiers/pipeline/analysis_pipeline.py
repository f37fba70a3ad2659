"""Keyword analysis flow: select, deliver to the webhook, merge and persist."""

import logging
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, Field

from keyword_tiers.clients.autosuggest import AutoSuggestClient
from keyword_tiers.clients.base import APIError
from keyword_tiers.clients.webhook import WebhookClient
from keyword_tiers.config import Settings, get_settings
from keyword_tiers.db.repository import ProjectRepository, StoreError
from keyword_tiers.models.keyword import DeliveryPayload, Keyword, calculate_metrics
from keyword_tiers.services.analysis import AnalysisRecorder

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    """Outcome of a pipeline run, with a message meant for the user."""

    level: Literal["success", "warning", "error"] = Field(description="Notification level")
    message: str = Field(description="User-facing message")
    keywords: list[Keyword] = Field(default_factory=list, description="Tier after the run")
    updated_ids: list[str] = Field(
        default_factory=list, description="Keywords that received new suggestions"
    )

    @property
    def success(self) -> bool:
        return self.level == "success"


class AnalysisPipeline:
    """
    Runs keyword analysis for one tier of one project.

    Flow of ``analyze_keywords``:
    1. Refuse an empty selection with a warning
    2. Mark selected keywords as analyzing and project their metrics
    3. Send the batch to the webhook (retries live in WebhookClient)
    4. Give the keyword addressed by the response its suggestions
    5. Save the tier

    Any failure in steps 2-5 clears the analyzing flags, leaves
    suggestions as they were and is reported as an error result. The
    webhook answers for a single keyword id per request, so other
    selected keywords get no suggestions from it.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        repository: ProjectRepository | None = None,
        webhook_client: WebhookClient | None = None,
        autosuggest_client: AutoSuggestClient | None = None,
        recorder: AnalysisRecorder | None = None,
    ):
        self.settings = settings or get_settings()

        # Collaborators (can be injected for testing)
        self.repository = repository or ProjectRepository(settings=self.settings)
        self.webhook = webhook_client or WebhookClient(settings=self.settings)
        self.autosuggest = autosuggest_client or AutoSuggestClient(settings=self.settings)
        self._recorder = recorder

        # Run state
        self.is_analyzing = False
        self.analyzed_count = 0

    @property
    def recorder(self) -> AnalysisRecorder:
        """Hosted record store access, created on first use."""
        if self._recorder is None:
            self._recorder = AnalysisRecorder(settings=self.settings)
        return self._recorder

    async def close(self) -> None:
        """Close HTTP clients."""
        await self.webhook.close()
        await self.autosuggest.close()
        if self._recorder is not None:
            await self._recorder.client.close()

    async def __aenter__(self) -> "AnalysisPipeline":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def analyze_keywords(
        self,
        project_id: str,
        tier: int,
        selected_ids: Iterable[str],
    ) -> AnalysisResult:
        """
        Analyze the selected keywords of a tier through the webhook.

        Args:
            project_id: Project to work on
            tier: Tier number (1-5)
            selected_ids: Ids of the keywords to analyze

        Returns:
            AnalysisResult describing the outcome; never raises for
            delivery or storage failures
        """
        selected = set(selected_ids)
        if not selected:
            return AnalysisResult(level="warning", message="Please select keywords to analyze")

        self.is_analyzing = True
        self.analyzed_count = 0
        original: list[Keyword] = []

        try:
            original = self.repository.load_tier(project_id, tier)
            context = self.repository.load_context(project_id)
            keywords = [kw.model_copy(deep=True) for kw in original]

            for kw in keywords:
                kw.is_analyzing = kw.id in selected
                if kw.is_analyzing:
                    kw.apply_metrics(calculate_metrics(kw.volume, context))

            chosen = [kw for kw in keywords if kw.id in selected]
            logger.info(
                f"Analyzing {len(chosen)} keywords in tier {tier} of project {project_id}",
                extra={"project_id": project_id, "tier": tier},
            )

            payload = DeliveryPayload.build(chosen, context)
            response = await self.webhook.send_keyword_data(payload)
            self.analyzed_count += 1

            addressed_id = response.body.keyword_id
            updated_ids: list[str] = []
            for kw in keywords:
                if kw.id in selected and kw.id == addressed_id:
                    kw.auto_suggestions = response.body.suggestions
                    updated_ids.append(kw.id)
                kw.is_analyzing = False

            if not updated_ids:
                logger.warning(
                    f"Webhook addressed keyword {addressed_id}, which is not in the selection"
                )

            self.repository.save_tier(project_id, tier, keywords)

            return AnalysisResult(
                level="success",
                message="Keywords analyzed successfully",
                keywords=keywords,
                updated_ids=updated_ids,
            )

        except (APIError, StoreError, ValueError) as e:
            logger.error(
                f"Error analyzing keywords: {e}",
                extra={"project_id": project_id, "tier": tier},
            )
            for kw in original:
                kw.is_analyzing = False
            return AnalysisResult(
                level="error",
                message=f"Failed to analyze keywords: {e}",
                keywords=original,
            )

        finally:
            self.is_analyzing = False
            self.analyzed_count = 0

    async def enrich_with_suggestions(
        self,
        project_id: str,
        tier: int,
        keyword_ids: Iterable[str] | None = None,
    ) -> AnalysisResult:
        """
        Add Google autocomplete suggestions to keywords of a tier.

        Keywords are looked up one at a time in the project's locale.
        Keywords whose lookup returned nothing keep their suggestions.

        Args:
            project_id: Project to work on
            tier: Tier number (1-5)
            keyword_ids: Restrict to these ids; all keywords when omitted
        """
        wanted = set(keyword_ids) if keyword_ids is not None else None

        try:
            keywords = self.repository.load_tier(project_id, tier)
            context = self.repository.load_context(project_id)

            targets = [kw for kw in keywords if wanted is None or kw.id in wanted]
            if not targets:
                return AnalysisResult(
                    level="warning",
                    message="No keywords to enrich",
                    keywords=keywords,
                )

            suggestions = await self.autosuggest.fetch_batch(
                [kw.keyword for kw in targets], context.language
            )

            updated_ids = []
            for kw in targets:
                found = suggestions.get(kw.keyword)
                if found:
                    kw.auto_suggestions = found
                    updated_ids.append(kw.id)

            self.repository.save_tier(project_id, tier, keywords)

        except (StoreError, ValueError) as e:
            logger.error(
                f"Error enriching keywords: {e}",
                extra={"project_id": project_id, "tier": tier},
            )
            return AnalysisResult(level="error", message=f"Failed to fetch suggestions: {e}")

        return AnalysisResult(
            level="success",
            message=f"Added suggestions to {len(updated_ids)} of {len(targets)} keywords",
            keywords=keywords,
            updated_ids=updated_ids,
        )

    async def record_analyses(self, analyses: Iterable[tuple[str, dict[str, Any]]]) -> int:
        """Forward finalized analyses to the hosted record store."""
        return await self.recorder.batch_save_analysis(analyses)
