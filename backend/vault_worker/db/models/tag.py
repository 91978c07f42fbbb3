"""Team-scoped tag model."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from vault_worker.db.base import Base


class Tag(Base):
    """Tag private to a team, keyed by its slug."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_tags_team_slug"),)
