"""SQLAlchemy database models."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ProjectRecord(Base):
    """Projects table - one row per keyword research project."""

    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    context = Column(Text, nullable=True)  # JSON-encoded ProjectContext
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    tiers = relationship("TierRecord", back_populates="project_rel", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<ProjectRecord(id='{self.id}', name='{self.name}')>"


class TierRecord(Base):
    """Tier table - the keyword collection of one tier of one project."""

    __tablename__ = "project_tiers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    tier = Column(Integer, nullable=False)  # 1..5
    keywords = Column(Text, nullable=False, default="[]")  # JSON-encoded list of keywords
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    project_rel = relationship("ProjectRecord", back_populates="tiers")

    __table_args__ = (
        Index("idx_project_tiers_unique", "project_id", "tier", unique=True),
    )

    def __repr__(self) -> str:
        return f"<TierRecord(project_id='{self.project_id}', tier={self.tier})>"
