"""Global tag embedding cache keyed by slug."""
from datetime import datetime, timezone

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, String

from vault_worker.core.config import settings
from vault_worker.db.base import Base


class TagEmbedding(Base):
    """One embedding per distinct slug, shared by every team."""

    __tablename__ = "tag_embeddings"

    slug = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    embedding = Column(Vector(settings.EMBEDDING_DIMENSION), nullable=False)
    model = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
