"""Tests for the project repository."""

import json

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from keyword_tiers.db.models import TierRecord
from keyword_tiers.db.repository import (
    DuplicateProjectError,
    NotFoundError,
    ParseError,
    ProjectNotFoundError,
    StoreError,
)
from keyword_tiers.models.keyword import Keyword, ProjectContext, calculate_metrics


class TestTiers:
    """Tests for loading and saving tiers."""

    def test_save_then_load_round_trip(self, repository, project, sample_keywords, sample_context):
        """Test a saved tier loads back equal and in order."""
        keywords = [kw.model_copy(deep=True) for kw in sample_keywords]
        keywords[0].auto_suggestions = ["running shoes men"]
        keywords[1].apply_metrics(calculate_metrics(keywords[1].volume, sample_context))

        repository.save_tier(project.id, 2, keywords)

        assert repository.load_tier(project.id, 2) == keywords

    def test_load_unknown_project(self, repository):
        with pytest.raises(NotFoundError):
            repository.load_tier("missing", 1)

    def test_save_unknown_project_writes_nothing(self, repository, sample_keywords):
        with pytest.raises(ProjectNotFoundError) as exc_info:
            repository.save_tier("missing", 1, sample_keywords)

        assert exc_info.value.project_id == "missing"
        with repository.get_session() as session:
            assert session.execute(select(TierRecord)).scalars().all() == []

    def test_unwritten_tier_is_empty(self, repository, project):
        assert repository.load_tier(project.id, 4) == []

    def test_save_replaces_collection(self, repository, project):
        replacement = [Keyword(id="kw-9", keyword="hiking boots", volume=2900)]

        repository.save_tier(project.id, 1, replacement)

        assert repository.load_tier(project.id, 1) == replacement

    def test_duplicate_ids_rejected(self, repository, project):
        keywords = [
            Keyword(id="dup", keyword="a"),
            Keyword(id="dup", keyword="b"),
        ]

        with pytest.raises(ValueError, match="Duplicate keyword id"):
            repository.save_tier(project.id, 1, keywords)

    def test_invalid_tier(self, repository, project):
        with pytest.raises(ValueError):
            repository.load_tier(project.id, 6)

    def test_tiers_are_isolated_between_projects(self, repository, project, sample_context):
        other = repository.create_project("Other", sample_context)
        repository.save_tier(other.id, 1, [Keyword(id="x", keyword="other keyword")])

        assert [kw.id for kw in repository.load_tier(project.id, 1)] == ["kw-1", "kw-2", "kw-3"]
        assert [kw.id for kw in repository.load_tier(other.id, 1)] == ["x"]

    def test_corrupted_tier_raises_parse_error(self, repository, project):
        """Test a corrupted tier fails to load and is left as stored."""
        with repository.get_session() as session:
            record = session.execute(
                select(TierRecord).where(TierRecord.project_id == project.id)
            ).scalar_one()
            record.keywords = "{not json"
            session.commit()

        with pytest.raises(ParseError):
            repository.load_tier(project.id, 1)

        with repository.get_session() as session:
            record = session.execute(
                select(TierRecord).where(TierRecord.project_id == project.id)
            ).scalar_one()
            assert record.keywords == "{not json"

    def test_invalid_keyword_record_raises_parse_error(self, repository, project):
        with repository.get_session() as session:
            record = session.execute(
                select(TierRecord).where(TierRecord.project_id == project.id)
            ).scalar_one()
            record.keywords = json.dumps([{"keyword": "no id"}])
            session.commit()

        with pytest.raises(ParseError):
            repository.load_tier(project.id, 1)


class TestProjects:
    """Tests for project records."""

    def test_load_context(self, repository, project, sample_context):
        assert repository.load_context(project.id) == sample_context

    def test_load_context_unknown_project(self, repository):
        with pytest.raises(ProjectNotFoundError):
            repository.load_context("missing")

    def test_update_context(self, repository, project):
        context = ProjectContext(conversion_rate=1.5, average_order_value=20, language="de-DE")

        repository.update_context(project.id, context)

        assert repository.load_context(project.id) == context

    def test_get_project_includes_tiers(self, repository, project, sample_keywords):
        loaded = repository.get_project(project.id)

        assert loaded.name == "Acme shoes"
        assert loaded.keywords(1) == sample_keywords

    def test_delete_project(self, repository, project):
        repository.delete_project(project.id)

        with pytest.raises(ProjectNotFoundError):
            repository.get_project(project.id)
        assert repository.list_projects() == []

    def test_generated_ids_are_unique(self, repository):
        first = repository.create_project("A")
        second = repository.create_project("B")

        assert first.id != second.id
        assert {p.id for p in repository.list_projects()} == {first.id, second.id}


class TestBrowserStoreImport:
    """Tests for importing and exporting the browser store format."""

    def test_import_projects(self, repository, legacy_projects):
        count = repository.import_projects(json.dumps(legacy_projects))

        assert count == 1
        assert [kw.keyword for kw in repository.load_tier("1717171717", 1)] == ["tents"]
        assert [kw.keyword for kw in repository.load_tier("1717171717", 3)] == ["camping stove"]
        assert repository.load_context("1717171717").conversion_rate == 3

    def test_import_replaces_existing_project(self, repository, legacy_projects):
        repository.import_projects(json.dumps(legacy_projects))
        legacy_projects[0]["data"] = {"tier2Keywords": [{"id": "z", "keyword": "tarp"}]}

        repository.import_projects(json.dumps(legacy_projects))

        assert repository.load_tier("1717171717", 1) == []
        assert [kw.id for kw in repository.load_tier("1717171717", 2)] == ["z"]

    def test_import_invalid_json(self, repository):
        with pytest.raises(ParseError):
            repository.import_projects("[{broken")

    def test_import_requires_array(self, repository):
        with pytest.raises(ParseError):
            repository.import_projects(json.dumps({"id": "1"}))

    def test_import_record_without_id(self, repository):
        with pytest.raises(ParseError):
            repository.import_projects(json.dumps([{"name": "no id"}]))

    def test_import_rejects_repeated_keyword_ids(self, repository):
        blob = [
            {
                "id": "p",
                "name": "Repeated ids",
                "data": {
                    "tier1Keywords": [
                        {"id": "a", "keyword": "tents", "volume": 10},
                        {"id": "a", "keyword": "tarps", "volume": 20},
                    ]
                },
            }
        ]

        with pytest.raises(ParseError, match="Duplicate keyword id"):
            repository.import_projects(json.dumps(blob))

        assert repository.list_projects() == []

    def test_export_round_trip(self, repository, legacy_projects):
        repository.import_projects(json.dumps(legacy_projects))

        exported = json.loads(repository.export_projects())

        assert exported[0]["id"] == "1717171717"
        assert exported[0]["data"]["tier1Keywords"][0]["keyword"] == "tents"
        assert exported[0]["data"]["tier1Keywords"][0]["id"] == "1"



class TestDatabaseFailures:
    """Tests for database errors surfacing as store errors."""

    def test_locked_database_on_save(self, repository, project, sample_keywords):
        locked = OperationalError("UPDATE", {}, Exception("database is locked"))

        with patch("sqlalchemy.orm.Session.commit", side_effect=locked):
            with pytest.raises(StoreError, match="database is locked"):
                repository.save_tier(project.id, 1, sample_keywords[:1])

        assert repository.load_tier(project.id, 1) == sample_keywords

    def test_unreachable_database_on_load(self, repository, project):
        failure = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with patch.object(repository, "get_session", side_effect=failure):
            with pytest.raises(StoreError):
                repository.load_tier(project.id, 1)

    def test_duplicate_project_id(self, repository, project):
        with pytest.raises(DuplicateProjectError):
            repository.create_project("Again", project_id=project.id)

        assert [p.name for p in repository.list_projects()] == ["Acme shoes"]
