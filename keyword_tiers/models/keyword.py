"""Pydantic models for tiered keyword projects and webhook payloads."""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Share of search volume expected to reach the site
TRAFFIC_SHARE = 0.32

TIERS = range(1, 6)


def tier_key(tier: int) -> str:
    """Map a tier number to its storage key (``tier{N}Keywords``)."""
    if tier not in TIERS:
        raise ValueError(f"Tier must be between {TIERS.start} and {TIERS.stop - 1}, got {tier}")
    return f"tier{tier}Keywords"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def split_suggestions(raw: str) -> list[str]:
    """Split a newline-delimited suggestion string, trimming and dropping blanks."""
    return [line.strip() for line in raw.split("\n") if line.strip()]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class KeywordMetrics(CamelModel):
    """Projected traffic, conversions and revenue for a keyword."""

    potential_traffic: int = Field(ge=0)
    potential_conversions: int = Field(ge=0)
    potential_revenue: int = Field(ge=0)


class ProjectContext(CamelModel):
    """Campaign-level assumptions used to project metrics from volume."""

    conversion_rate: float = Field(default=0.0, ge=0, description="Conversion rate in percent")
    average_order_value: float = Field(default=0.0, ge=0, description="Average order value")
    language: str = Field(default="en-US", description="Locale tag, e.g. en-US")
    category: str | None = None
    brand_name: str | None = None
    business_context: str | None = None


def calculate_metrics(volume: int, context: ProjectContext) -> KeywordMetrics:
    """
    Project traffic, conversions and revenue from search volume.

    Each value is rounded on its own from the unrounded chain, so
    revenue is not conversions * AOV after rounding.
    """
    traffic = volume * TRAFFIC_SHARE
    conversions = traffic * (context.conversion_rate / 100)
    revenue = conversions * context.average_order_value
    return KeywordMetrics(
        potential_traffic=round_half_up(traffic),
        potential_conversions=round_half_up(conversions),
        potential_revenue=round_half_up(revenue),
    )


class Keyword(CamelModel):
    """A keyword within a project tier."""

    id: str = Field(description="Identifier, unique within a tier")
    keyword: str = Field(description="Display text")
    volume: int = Field(default=0, ge=0, description="Monthly search volume")
    difficulty: float = Field(default=0.0, description="Keyword difficulty score")

    # Derived from volume and project context
    potential_traffic: int | None = None
    potential_conversions: int | None = None
    potential_revenue: int | None = None

    auto_suggestions: list[str] | None = None
    is_analyzing: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Accept numeric identifiers from older exports."""
        return str(v) if isinstance(v, int) else v

    @property
    def metrics(self) -> KeywordMetrics | None:
        """Current projected metrics, if computed."""
        if self.potential_traffic is None:
            return None
        return KeywordMetrics(
            potential_traffic=self.potential_traffic,
            potential_conversions=self.potential_conversions or 0,
            potential_revenue=self.potential_revenue or 0,
        )

    def apply_metrics(self, metrics: KeywordMetrics) -> None:
        """Store freshly computed metrics on the keyword."""
        self.potential_traffic = metrics.potential_traffic
        self.potential_conversions = metrics.potential_conversions
        self.potential_revenue = metrics.potential_revenue


class Project(CamelModel):
    """A keyword research project with up to five keyword tiers."""

    id: str
    name: str
    context: ProjectContext = Field(default_factory=ProjectContext)
    tiers: dict[int, list[Keyword]] = Field(default_factory=dict)

    def keywords(self, tier: int) -> list[Keyword]:
        """Get the keywords stored in a tier."""
        tier_key(tier)
        return self.tiers.get(tier, [])

    @classmethod
    def from_legacy(cls, record: dict[str, Any]) -> "Project":
        """Build a project from the browser store format (``data.tier{N}Keywords``)."""
        data = record.get("data") or {}
        tiers = {
            tier: [Keyword.model_validate(kw) for kw in data.get(tier_key(tier)) or []]
            for tier in TIERS
            if data.get(tier_key(tier))
        }
        return cls(
            id=str(record["id"]),
            name=record.get("name") or "",
            context=ProjectContext.model_validate(record.get("context") or {}),
            tiers=tiers,
        )

    def to_legacy(self) -> dict[str, Any]:
        """Serialize to the browser store format."""
        return {
            "id": self.id,
            "name": self.name,
            "context": self.context.model_dump(by_alias=True, exclude_none=True),
            "data": {
                tier_key(tier): [kw.model_dump(by_alias=True, exclude_none=True) for kw in kws]
                for tier, kws in sorted(self.tiers.items())
            },
        }


class DeliveryKeyword(CamelModel):
    """A selected keyword as sent to the analysis webhook."""

    id: str
    keyword: str
    volume: int
    difficulty: float
    metrics: KeywordMetrics


class DeliveryPayload(CamelModel):
    """Batch analysis request sent to the webhook."""

    keywords: list[DeliveryKeyword]
    context: ProjectContext

    @classmethod
    def build(cls, keywords: list[Keyword], context: ProjectContext) -> "DeliveryPayload":
        """Build a payload, computing metrics for each keyword."""
        return cls(
            keywords=[
                DeliveryKeyword(
                    id=kw.id,
                    keyword=kw.keyword,
                    volume=kw.volume,
                    difficulty=kw.difficulty,
                    metrics=calculate_metrics(kw.volume, context),
                )
                for kw in keywords
            ],
            context=context,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON body for the webhook request."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DeliveryResponseBody(BaseModel):
    """Body of a webhook response; addresses a single keyword."""

    model_config = ConfigDict(populate_by_name=True)

    keyword_id: str = Field(alias="ID")
    auto_suggest: str = Field(alias="Auto Suggest")

    @property
    def suggestions(self) -> list[str]:
        """Parsed suggestion list."""
        return split_suggestions(self.auto_suggest)


class DeliveryResponse(BaseModel):
    """Validated webhook response."""

    status: int | float
    body: DeliveryResponseBody
