"""Pytest configuration and fixtures."""

import pytest

from keyword_tiers.config import Settings
from keyword_tiers.db.repository import ProjectRepository
from keyword_tiers.models.keyword import Keyword, ProjectContext


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        webhook_url="https://hooks.example.test/analyze",
        webhook_max_attempts=3,
        webhook_retry_delay=1.0,
        autosuggest_url="https://suggest.example.test/complete/search",
        autosuggest_delay=0.2,
        supabase_url="https://records.example.test",
        supabase_key="test_key",
        database_url="sqlite:///:memory:",
    )


@pytest.fixture
def repository(settings) -> ProjectRepository:
    """Create a repository backed by an in-memory database."""
    repo = ProjectRepository(settings=settings)
    repo.create_tables()
    return repo


@pytest.fixture
def sample_context() -> ProjectContext:
    """Create a sample campaign context."""
    return ProjectContext(
        conversion_rate=5,
        average_order_value=50,
        language="pt-PT",
        category="footwear",
        brand_name="Acme",
    )


@pytest.fixture
def sample_keywords() -> list[Keyword]:
    """Create sample tier keywords."""
    return [
        Keyword(id="kw-1", keyword="running shoes", volume=1000, difficulty=42),
        Keyword(id="kw-2", keyword="trail shoes", volume=480, difficulty=31.5),
        Keyword(id="kw-3", keyword="shoe laces", volume=90, difficulty=12),
    ]


@pytest.fixture
def project(repository, sample_context, sample_keywords):
    """Create a project whose tier 1 holds the sample keywords."""
    created = repository.create_project("Acme shoes", sample_context, project_id="proj-1")
    repository.save_tier(created.id, 1, sample_keywords)
    return created


@pytest.fixture
def webhook_response_data() -> dict:
    """Create a valid webhook response body."""
    return {
        "status": 200,
        "body": {
            "ID": "kw-1",
            "Auto Suggest": "running shoes men\n running shoes women \n\nbest running shoes",
        },
    }


@pytest.fixture
def legacy_projects() -> list[dict]:
    """Create projects in the browser store format."""
    return [
        {
            "id": "1717171717",
            "name": "Legacy project",
            "context": {
                "conversionRate": 3,
                "averageOrderValue": 120,
                "language": "en-US",
                "businessContext": "Outdoor gear",
            },
            "data": {
                "tier1Keywords": [
                    {
                        "id": 1,
                        "keyword": "tents",
                        "volume": 5400,
                        "difficulty": 55,
                        "autoSuggestions": ["tents for camping"],
                        "isAnalyzing": False,
                    }
                ],
                "tier3Keywords": [
                    {"id": "b", "keyword": "camping stove", "volume": 880, "difficulty": 20}
                ],
            },
        }
    ]
