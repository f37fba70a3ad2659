"""Database layer for keyword tier projects."""

from keyword_tiers.db.models import Base, ProjectRecord, TierRecord
from keyword_tiers.db.repository import (
    DuplicateProjectError,
    NotFoundError,
    ParseError,
    ProjectNotFoundError,
    ProjectRepository,
    StoreError,
)

__all__ = [
    "Base",
    "ProjectRecord",
    "TierRecord",
    "ProjectRepository",
    "StoreError",
    "DuplicateProjectError",
    "NotFoundError",
    "ProjectNotFoundError",
    "ParseError",
]
