"""Document model owned by the vault and mutated by the pipeline."""
import uuid as uuid_pkg
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import ARRAY

from vault_worker.db.base import Base


class ProcessingStatus:
    """Lifecycle values for ``Document.processing_status``."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Document(Base):
    """Uploaded file located by (team_id, path_tokens)."""

    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid_pkg.uuid4()))
    team_id = Column(String(36), nullable=False, index=True)
    path_tokens = Column(ARRAY(Text), nullable=False)
    name = Column(Text)

    # Classification
    title = Column(Text)
    summary = Column(Text)
    content = Column(Text)
    date = Column(Date)
    language = Column(String(32))

    processing_status = Column(String(20), default=ProcessingStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_documents_team_path", "team_id", "path_tokens", unique=True),
        Index("idx_documents_status_created", "processing_status", "created_at"),
    )
