"""Database repository for projects and their keyword tiers."""

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy import create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from keyword_tiers.config import Settings, get_settings
from keyword_tiers.db.models import Base, ProjectRecord, TierRecord
from keyword_tiers.models.keyword import TIERS, Keyword, Project, ProjectContext, tier_key

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for local store errors."""

    pass


class NotFoundError(StoreError):
    """Raised when a requested record does not exist."""

    pass


class ProjectNotFoundError(NotFoundError):
    """Raised when a project id does not resolve."""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class ParseError(StoreError):
    """Raised when stored data cannot be decoded."""

    pass


class DuplicateProjectError(StoreError):
    """Raised when creating a project whose id is taken."""

    def __init__(self, project_id: str):
        super().__init__(f"Project already exists: {project_id}")
        self.project_id = project_id


def find_duplicate_id(keywords: list[Keyword]) -> str | None:
    """Return the first keyword id that occurs twice, if any."""
    seen: set[str] = set()
    for kw in keywords:
        if kw.id in seen:
            return kw.id
        seen.add(kw.id)
    return None


class ProjectRepository:
    """
    Repository for projects and their tiered keyword collections.

    Each (project, tier) pair is its own row, so reading or writing a tier
    never touches other projects. ``save_tier`` replaces the whole keyword
    collection of the tier in one transaction; concurrent writers are
    last-write-wins.
    """

    def __init__(self, database_url: str | None = None, settings: Settings | None = None):
        settings = settings or get_settings()
        self.database_url = database_url or settings.database_url

        if self.database_url.startswith("postgres://"):
            self.database_url = self.database_url.replace("postgres://", "postgresql://", 1)

        self._ensure_sqlite_dir()
        self.engine = create_engine(self.database_url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def _ensure_sqlite_dir(self) -> None:
        url = make_url(self.database_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables if they don't exist."""
        Base.metadata.create_all(self.engine, checkfirst=True)
        logger.info("Database tables created/verified")

    def drop_tables(self) -> None:
        """Drop all database tables."""
        Base.metadata.drop_all(self.engine)
        logger.info("Database tables dropped")

    def get_session(self) -> Session:
        """Get a database session."""
        return self.SessionLocal()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session scope; database failures surface as StoreError."""
        try:
            with self.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise StoreError(f"Database error: {e}") from e

    # Projects

    def create_project(
        self,
        name: str,
        context: ProjectContext | None = None,
        project_id: str | None = None,
    ) -> Project:
        """
        Create an empty project.

        Args:
            name: Display name
            context: Campaign assumptions (defaults apply when omitted)
            project_id: Explicit id; a random one is generated otherwise

        Returns:
            The created Project

        Raises:
            DuplicateProjectError: If ``project_id`` is already taken
        """
        project = Project(
            id=project_id or uuid.uuid4().hex,
            name=name,
            context=context or ProjectContext(),
        )

        with self._session() as session:
            if session.get(ProjectRecord, project.id) is not None:
                raise DuplicateProjectError(project.id)
            session.add(
                ProjectRecord(
                    id=project.id,
                    name=project.name,
                    context=project.context.model_dump_json(by_alias=True, exclude_none=True),
                )
            )
            session.commit()

        logger.info(f"Created project '{project.name}' ({project.id})")
        return project

    def get_project(self, project_id: str) -> Project:
        """Load a project with all of its tiers."""
        with self._session() as session:
            record = self._get_project_record(session, project_id)
            return self._build_project(record)

    def list_projects(self) -> list[Project]:
        """Load every project, ordered by creation time."""
        with self._session() as session:
            stmt = select(ProjectRecord).order_by(ProjectRecord.created_at)
            records = session.execute(stmt).scalars().all()
            return [self._build_project(record) for record in records]

    def delete_project(self, project_id: str) -> None:
        """Delete a project and all of its tiers."""
        with self._session() as session:
            record = self._get_project_record(session, project_id)
            session.delete(record)
            session.commit()
        logger.info(f"Deleted project {project_id}")

    def update_context(self, project_id: str, context: ProjectContext) -> None:
        """Replace a project's campaign context."""
        with self._session() as session:
            record = self._get_project_record(session, project_id)
            record.context = context.model_dump_json(by_alias=True, exclude_none=True)
            session.commit()

    def load_context(self, project_id: str) -> ProjectContext:
        """
        Get the campaign context of a project.

        Raises:
            ProjectNotFoundError: If the project does not exist
            ParseError: If the stored context is corrupted
        """
        with self._session() as session:
            record = self._get_project_record(session, project_id)
            return self._decode_context(record)

    # Tiers

    def load_tier(self, project_id: str, tier: int) -> list[Keyword]:
        """
        Get the keywords of one tier, in stored order.

        A tier that was never written is empty.

        Raises:
            ProjectNotFoundError: If the project does not exist
            ParseError: If the stored collection is corrupted
        """
        tier_key(tier)

        with self._session() as session:
            self._get_project_record(session, project_id)
            stmt = select(TierRecord).where(
                TierRecord.project_id == project_id,
                TierRecord.tier == tier,
            )
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                return []
            return self._decode_keywords(record)

    def save_tier(self, project_id: str, tier: int, keywords: list[Keyword]) -> None:
        """
        Replace the keywords of one tier.

        Raises:
            ValueError: On an invalid tier or duplicate keyword ids
            ProjectNotFoundError: If the project does not exist (nothing is written)
        """
        tier_key(tier)

        duplicate = find_duplicate_id(keywords)
        if duplicate is not None:
            raise ValueError(f"Duplicate keyword id in tier {tier}: {duplicate}")

        encoded = json.dumps(
            [kw.model_dump(mode="json", by_alias=True, exclude_none=True) for kw in keywords]
        )

        with self._session() as session:
            self._get_project_record(session, project_id)
            self._write_tier(session, project_id, tier, encoded)
            session.commit()

        logger.info(f"Saved {len(keywords)} keywords to tier {tier} of project {project_id}")

    # Legacy browser store

    def import_projects(self, raw: str) -> int:
        """
        Import projects from the serialized browser store.

        The blob is a JSON array of ``{id, name, context, data}`` where
        ``data`` holds ``tier{N}Keywords`` lists. Existing projects with the
        same id are replaced.

        Returns:
            Number of imported projects

        Raises:
            ParseError: If the blob is not a valid project array or a tier
                repeats a keyword id
        """
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid project store: {e}") from e

        if not isinstance(records, list):
            raise ParseError("Invalid project store: expected a JSON array")

        try:
            projects = [Project.from_legacy(record) for record in records]
        except (ValidationError, KeyError, TypeError, AttributeError) as e:
            raise ParseError(f"Invalid project record: {e}") from e

        for project in projects:
            for tier, keywords in project.tiers.items():
                duplicate = find_duplicate_id(keywords)
                if duplicate is not None:
                    raise ParseError(
                        f"Duplicate keyword id in tier {tier} of project {project.id}: {duplicate}"
                    )

        with self._session() as session:
            for project in projects:
                existing = session.get(ProjectRecord, project.id)
                if existing is not None:
                    session.delete(existing)
                    session.flush()

                session.add(
                    ProjectRecord(
                        id=project.id,
                        name=project.name,
                        context=project.context.model_dump_json(by_alias=True, exclude_none=True),
                    )
                )
                session.flush()

                for tier, keywords in project.tiers.items():
                    encoded = json.dumps(
                        [kw.model_dump(mode="json", by_alias=True, exclude_none=True) for kw in keywords]
                    )
                    self._write_tier(session, project.id, tier, encoded)

            session.commit()

        logger.info(f"Imported {len(projects)} projects")
        return len(projects)

    def export_projects(self) -> str:
        """Serialize every project in the browser store format."""
        return json.dumps([project.to_legacy() for project in self.list_projects()])

    # Helpers

    def _get_project_record(self, session: Session, project_id: str) -> ProjectRecord:
        record = session.get(ProjectRecord, project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)
        return record

    def _write_tier(self, session: Session, project_id: str, tier: int, encoded: str) -> None:
        stmt = select(TierRecord).where(
            TierRecord.project_id == project_id,
            TierRecord.tier == tier,
        )
        record = session.execute(stmt).scalar_one_or_none()

        if record is None:
            session.add(TierRecord(project_id=project_id, tier=tier, keywords=encoded))
        else:
            record.keywords = encoded

    def _decode_keywords(self, record: TierRecord) -> list[Keyword]:
        try:
            items = json.loads(record.keywords)
            if not isinstance(items, list):
                raise ParseError(f"Tier {record.tier} of project {record.project_id} is not a list")
            return [Keyword.model_validate(item) for item in items]
        except (json.JSONDecodeError, ValidationError) as e:
            raise ParseError(
                f"Corrupted keywords in tier {record.tier} of project {record.project_id}: {e}"
            ) from e

    def _decode_context(self, record: ProjectRecord) -> ProjectContext:
        if not record.context:
            return ProjectContext()
        try:
            return ProjectContext.model_validate_json(record.context)
        except ValidationError as e:
            raise ParseError(f"Corrupted context for project {record.id}: {e}") from e

    def _build_project(self, record: ProjectRecord) -> Project:
        return Project(
            id=record.id,
            name=record.name,
            context=self._decode_context(record),
            tiers={
                tier_record.tier: self._decode_keywords(tier_record)
                for tier_record in sorted(record.tiers, key=lambda r: r.tier)
                if tier_record.tier in TIERS
            },
        )
