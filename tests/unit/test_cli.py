"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from keyword_tiers.cli import cli, load_keywords_from_csv, load_keywords_from_text
from keyword_tiers.db.repository import ProjectRepository, StoreError


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("keyword_tiers.cli.setup_logging"):
        yield


def invoke(runner, database_url, *args):
    return runner.invoke(cli, ["--database-url", database_url, *args])


class TestKeywordFiles:
    """Tests for keyword file loaders."""

    def test_load_csv(self, tmp_path):
        path = tmp_path / "tier.csv"
        path.write_text("keyword,volume,difficulty\nrunning shoes,1000,42\ntrail shoes,,\n\n")

        keywords = load_keywords_from_csv(path)

        assert [kw.keyword for kw in keywords] == ["running shoes", "trail shoes"]
        assert keywords[0].volume == 1000
        assert keywords[0].difficulty == 42
        assert keywords[1].volume == 0
        assert len({kw.id for kw in keywords}) == 2

    def test_load_csv_rejects_non_numeric_volume(self, tmp_path):
        path = tmp_path / "tier.csv"
        path.write_text("keyword,volume,difficulty\nrunning shoes,lots,42\n")

        with pytest.raises(ValueError, match="line 2"):
            load_keywords_from_csv(path)

    def test_load_text(self, tmp_path):
        path = tmp_path / "tier.txt"
        path.write_text("running shoes\n\n  trail shoes  \n")

        keywords = load_keywords_from_text(path)

        assert [kw.keyword for kw in keywords] == ["running shoes", "trail shoes"]


class TestCommands:
    """Tests for CLI commands against a file database."""

    def test_create_project(self, runner, database_url):
        result = invoke(
            runner, database_url,
            "create-project", "Acme shoes", "--conversion-rate", "5", "--aov", "50",
            "--language", "pt-PT",
        )

        assert result.exit_code == 0, result.output
        assert "Created project" in result.output

        projects = ProjectRepository(database_url=database_url).list_projects()
        assert len(projects) == 1
        assert projects[0].name == "Acme shoes"
        assert projects[0].context.language == "pt-PT"

    def test_import_and_show(self, runner, database_url, tmp_path, legacy_projects):
        store = tmp_path / "projects.json"
        store.write_text(json.dumps(legacy_projects))
        keywords = tmp_path / "tier2.txt"
        keywords.write_text("sleeping bags\nhiking boots\n")

        result = invoke(runner, database_url, "import-projects", str(store))
        assert result.exit_code == 0, result.output
        assert "Imported 1 projects" in result.output

        result = invoke(runner, database_url, "import-keywords", "1717171717", "2", str(keywords))
        assert result.exit_code == 0, result.output
        assert "Tier 2 now holds 2 keywords" in result.output

        result = invoke(runner, database_url, "show", "1717171717", "--tier", "1")
        assert result.exit_code == 0, result.output
        assert "tents" in result.output

        repo = ProjectRepository(database_url=database_url)
        assert [kw.keyword for kw in repo.load_tier("1717171717", 2)] == [
            "sleeping bags",
            "hiking boots",
        ]

    def test_import_keywords_append(self, runner, database_url, tmp_path, legacy_projects):
        store = tmp_path / "projects.json"
        store.write_text(json.dumps(legacy_projects))
        keywords = tmp_path / "tier1.txt"
        keywords.write_text("tents\nfamily tents\n")

        invoke(runner, database_url, "import-projects", str(store))
        result = invoke(
            runner, database_url, "import-keywords", "1717171717", "1", str(keywords), "--append"
        )

        assert result.exit_code == 0, result.output
        repo = ProjectRepository(database_url=database_url)
        assert [kw.keyword for kw in repo.load_tier("1717171717", 1)] == ["tents", "family tents"]

    def test_import_keywords_unknown_project(self, runner, database_url, tmp_path):
        keywords = tmp_path / "tier1.txt"
        keywords.write_text("tents\n")

        result = invoke(runner, database_url, "import-keywords", "missing", "1", str(keywords))

        assert result.exit_code == 1
        assert "Project not found" in result.output

    def test_import_keywords_bad_csv(self, runner, database_url, tmp_path, legacy_projects):
        store = tmp_path / "projects.json"
        store.write_text(json.dumps(legacy_projects))
        keywords = tmp_path / "tier1.csv"
        keywords.write_text("tents,many,55\n")

        invoke(runner, database_url, "import-projects", str(store))
        result = invoke(runner, database_url, "import-keywords", "1717171717", "1", str(keywords))

        assert result.exit_code == 1
        assert "line 1" in result.output
        repo = ProjectRepository(database_url=database_url)
        assert [kw.keyword for kw in repo.load_tier("1717171717", 1)] == ["tents"]

    def test_create_project_store_failure(self, runner, database_url):
        with patch.object(
            ProjectRepository, "create_project", side_effect=StoreError("Database error: disk full")
        ):
            result = invoke(runner, database_url, "create-project", "Acme shoes")

        assert result.exit_code == 1
        assert "disk full" in result.output

    def test_invalid_tier(self, runner, database_url, tmp_path):
        keywords = tmp_path / "tier.txt"
        keywords.write_text("tents\n")

        result = invoke(runner, database_url, "import-keywords", "p", "6", str(keywords))

        assert result.exit_code == 2

    def test_import_invalid_store(self, runner, database_url, tmp_path):
        store = tmp_path / "projects.json"
        store.write_text("{not json")

        result = invoke(runner, database_url, "import-projects", str(store))

        assert result.exit_code == 1
        assert "Invalid project store" in result.output

    def test_export_projects(self, runner, database_url, tmp_path, legacy_projects):
        store = tmp_path / "projects.json"
        store.write_text(json.dumps(legacy_projects))
        output = tmp_path / "out" / "export.json"

        invoke(runner, database_url, "import-projects", str(store))
        result = invoke(runner, database_url, "export-projects", str(output))

        assert result.exit_code == 0, result.output
        exported = json.loads(output.read_text())
        assert exported[0]["id"] == "1717171717"
        assert exported[0]["data"]["tier1Keywords"][0]["keyword"] == "tents"
