"""
Command line interface for keyword tier research.

Usage:
    keyword-tiers create-project "Acme shoes" --conversion-rate 2.5 --aov 80 --language en-US
    keyword-tiers import-keywords <project_id> 1 data/tier1.csv
    keyword-tiers analyze <project_id> 1 kw-1 kw-2
    keyword-tiers suggest <project_id> 1
    keyword-tiers import-projects data/projects.json
"""

import asyncio
import csv
import logging
import uuid
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from keyword_tiers.config import get_settings
from keyword_tiers.db.repository import ProjectRepository, StoreError
from keyword_tiers.models.keyword import TIERS, Keyword, ProjectContext
from keyword_tiers.pipeline.analysis_pipeline import AnalysisPipeline, AnalysisResult
from keyword_tiers.utils.logging import setup_logging

console = Console()
logger = logging.getLogger(__name__)

RESULT_STYLES = {"success": "green", "warning": "yellow", "error": "red"}

tier_argument = click.argument("tier", type=click.IntRange(TIERS.start, TIERS.stop - 1))


def load_keywords_from_csv(file_path: Path) -> list[Keyword]:
    """
    Load keywords from a CSV file.

    Columns are keyword, volume, difficulty; a header row starting with
    ``keyword`` is skipped and missing numbers default to 0.

    Raises:
        ValueError: If a volume or difficulty is not a number
    """
    keywords = []
    with open(file_path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        for line_no, row in enumerate(reader, start=1):
            if not row or not row[0].strip():
                continue
            if row[0].strip().lower() == "keyword":
                continue
            try:
                volume = int(float(row[1])) if len(row) > 1 and row[1].strip() else 0
                difficulty = float(row[2]) if len(row) > 2 and row[2].strip() else 0.0
            except ValueError as e:
                raise ValueError(f"{file_path.name} line {line_no}: {e}") from e
            keywords.append(
                Keyword(
                    id=uuid.uuid4().hex[:12],
                    keyword=row[0].strip(),
                    volume=volume,
                    difficulty=difficulty,
                )
            )
    return keywords


def load_keywords_from_text(file_path: Path) -> list[Keyword]:
    """Load keywords from a plain text file (one per line)."""
    with open(file_path, encoding="utf-8") as f:
        return [
            Keyword(id=uuid.uuid4().hex[:12], keyword=line.strip())
            for line in f
            if line.strip()
        ]


def print_result(result: AnalysisResult) -> None:
    style = RESULT_STYLES[result.level]
    console.print(f"[{style}]{result.message}[/{style}]")


def display_tier(keywords: list[Keyword], title: str) -> None:
    """Display a tier as a table."""
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Keyword", style="cyan")
    table.add_column("Volume", justify="right")
    table.add_column("Difficulty", justify="right")
    table.add_column("Traffic", justify="right", style="green")
    table.add_column("Revenue", justify="right", style="green")
    table.add_column("Suggestions", style="magenta")

    for kw in keywords:
        table.add_row(
            kw.id,
            kw.keyword[:40],
            str(kw.volume),
            f"{kw.difficulty:g}",
            str(kw.potential_traffic) if kw.potential_traffic is not None else "-",
            str(kw.potential_revenue) if kw.potential_revenue is not None else "-",
            ", ".join((kw.auto_suggestions or [])[:3]) or "-",
        )

    console.print(table)


@click.group()
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="Database URL (defaults to DATABASE_URL setting)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, log_level: str) -> None:
    """Keyword tier research tool."""
    setup_logging(log_level)
    repository = ProjectRepository(database_url=database_url, settings=get_settings())
    repository.create_tables()
    ctx.obj = repository


@cli.command("create-project")
@click.argument("name")
@click.option("--conversion-rate", type=float, default=2.0, help="Conversion rate in percent")
@click.option("--aov", "average_order_value", type=float, default=50.0, help="Average order value")
@click.option("--language", type=str, default=None, help="Locale tag, e.g. en-US")
@click.option("--category", type=str, default=None)
@click.option("--brand", "brand_name", type=str, default=None)
@click.option("--business-context", type=str, default=None)
@click.pass_obj
def create_project(
    repository: ProjectRepository,
    name: str,
    conversion_rate: float,
    average_order_value: float,
    language: str | None,
    category: str | None,
    brand_name: str | None,
    business_context: str | None,
) -> None:
    """Create a new project."""
    context = ProjectContext(
        conversion_rate=conversion_rate,
        average_order_value=average_order_value,
        language=language or get_settings().default_language,
        category=category,
        brand_name=brand_name,
        business_context=business_context,
    )
    try:
        project = repository.create_project(name, context)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Created project {project.id}[/green]")


@cli.command("import-keywords")
@click.argument("project_id")
@tier_argument
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--append/--replace", default=False, help="Append to the tier instead of replacing it")
@click.pass_obj
def import_keywords(
    repository: ProjectRepository,
    project_id: str,
    tier: int,
    input_file: Path,
    append: bool,
) -> None:
    """Load keywords from a CSV or TXT file into a tier."""
    try:
        if input_file.suffix == ".csv":
            keywords = load_keywords_from_csv(input_file)
        else:
            keywords = load_keywords_from_text(input_file)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    try:
        if append:
            existing = repository.load_tier(project_id, tier)
            known = {kw.keyword for kw in existing}
            keywords = existing + [kw for kw in keywords if kw.keyword not in known]
        repository.save_tier(project_id, tier, keywords)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[green]✓ Tier {tier} now holds {len(keywords)} keywords[/green]")


@cli.command("import-projects")
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def import_projects(repository: ProjectRepository, input_file: Path) -> None:
    """Import projects exported from the browser store."""
    try:
        count = repository.import_projects(input_file.read_text(encoding="utf-8"))
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Imported {count} projects[/green]")


@cli.command("export-projects")
@click.argument("output_file", type=click.Path(path_type=Path))
@click.pass_obj
def export_projects(repository: ProjectRepository, output_file: Path) -> None:
    """Export all projects in the browser store format."""
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(repository.export_projects(), encoding="utf-8")
    console.print(f"[green]✓ Exported to {output_file}[/green]")


@cli.command("show")
@click.argument("project_id", required=False)
@click.option("--tier", type=click.IntRange(TIERS.start, TIERS.stop - 1), default=None)
@click.pass_obj
def show(repository: ProjectRepository, project_id: str | None, tier: int | None) -> None:
    """List projects, or show the tiers of one project."""
    try:
        if project_id is None:
            table = Table(title="Projects")
            table.add_column("ID", style="dim")
            table.add_column("Name", style="cyan")
            table.add_column("Keywords", justify="right")
            for project in repository.list_projects():
                total = sum(len(kws) for kws in project.tiers.values())
                table.add_row(project.id, project.name, str(total))
            console.print(table)
            return

        project = repository.get_project(project_id)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    tiers = [tier] if tier else list(TIERS)
    for number in tiers:
        keywords = project.keywords(number)
        if keywords or tier:
            display_tier(keywords, f"{project.name} - Tier {number}")


@cli.command("analyze")
@click.argument("project_id")
@tier_argument
@click.argument("keyword_ids", nargs=-1)
@click.option("--all", "select_all", is_flag=True, help="Analyze every keyword in the tier")
@click.pass_obj
def analyze(
    repository: ProjectRepository,
    project_id: str,
    tier: int,
    keyword_ids: tuple[str, ...],
    select_all: bool,
) -> None:
    """Send selected keywords to the analysis webhook."""
    result = asyncio.run(_analyze(repository, project_id, tier, keyword_ids, select_all))
    print_result(result)
    if result.keywords:
        display_tier(result.keywords, f"Tier {tier}")
    if result.level == "error":
        raise SystemExit(1)


async def _analyze(
    repository: ProjectRepository,
    project_id: str,
    tier: int,
    keyword_ids: tuple[str, ...],
    select_all: bool,
) -> AnalysisResult:
    async with AnalysisPipeline(repository=repository) as pipeline:
        selected: list[str] = list(keyword_ids)
        if select_all:
            try:
                selected = [kw.id for kw in repository.load_tier(project_id, tier)]
            except StoreError as e:
                return AnalysisResult(level="error", message=str(e))
        with console.status("Analyzing keywords..."):
            return await pipeline.analyze_keywords(project_id, tier, selected)


@cli.command("suggest")
@click.argument("project_id")
@tier_argument
@click.option("--keyword-id", "keyword_ids", multiple=True, help="Restrict to these keyword ids")
@click.pass_obj
def suggest(
    repository: ProjectRepository,
    project_id: str,
    tier: int,
    keyword_ids: tuple[str, ...],
) -> None:
    """Fetch Google autocomplete suggestions for a tier."""
    result = asyncio.run(_suggest(repository, project_id, tier, keyword_ids))
    print_result(result)
    if result.keywords:
        display_tier(result.keywords, f"Tier {tier}")
    if result.level == "error":
        raise SystemExit(1)


async def _suggest(
    repository: ProjectRepository,
    project_id: str,
    tier: int,
    keyword_ids: tuple[str, ...],
) -> AnalysisResult:
    async with AnalysisPipeline(repository=repository) as pipeline:
        with console.status("Fetching suggestions..."):
            return await pipeline.enrich_with_suggestions(
                project_id, tier, list(keyword_ids) or None
            )


if __name__ == "__main__":
    cli()
