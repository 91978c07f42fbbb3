"""Document repository with narrow, status-guarded updates."""
from datetime import datetime
from typing import Any, List, Sequence

from sqlalchemy import and_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from vault_worker.db.models.document import Document, ProcessingStatus
from vault_worker.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Repository for Document rows addressed by (team_id, path_tokens)."""

    def __init__(self, session: AsyncSession):
        """Initialize document repository.

        Args:
            session: Async database session
        """
        super().__init__(Document, session)

    async def update_by_path(self, team_id: str, path_tokens: Sequence[str], **fields: Any) -> List[Row]:
        """Update the document stored at ``path_tokens`` for a team.

        Args:
            team_id: Team that owns the document
            path_tokens: Path segments of the stored blob
            **fields: Column values to set

        Returns:
            Updated rows (``id``, ``processing_status``); empty if nothing matched
        """
        stmt = (
            update(Document)
            .where(
                and_(
                    Document.team_id == team_id,
                    Document.path_tokens == list(path_tokens),
                )
            )
            .values(**fields)
            .returning(Document.id, Document.processing_status)
        )
        result = await self.session.execute(stmt)
        rows = list(result.all())
        await self.session.commit()
        return rows

    async def update_by_id(self, document_id: str, team_id: str, **fields: Any) -> List[Row]:
        """Update a document by id within its team.

        Args:
            document_id: Document ID
            team_id: Team that owns the document
            **fields: Column values to set

        Returns:
            Updated rows; empty if nothing matched
        """
        stmt = (
            update(Document)
            .where(and_(Document.id == document_id, Document.team_id == team_id))
            .values(**fields)
            .returning(Document.id, Document.processing_status)
        )
        result = await self.session.execute(stmt)
        rows = list(result.all())
        await self.session.commit()
        return rows

    async def mark_failed_by_path(self, team_id: str, path_tokens: Sequence[str]) -> List[Row]:
        """Move a document to the ``failed`` state."""
        return await self.update_by_path(
            team_id, path_tokens, processing_status=ProcessingStatus.FAILED
        )

    async def find_stale_pending(self, older_than: datetime, limit: int) -> List[str]:
        """Find documents still pending that were created before ``older_than``.

        Args:
            older_than: Creation cutoff
            limit: Maximum number of ids returned in one sweep

        Returns:
            Document ids, oldest first
        """
        stmt = (
            select(Document.id)
            .where(
                and_(
                    Document.processing_status == ProcessingStatus.PENDING,
                    Document.created_at < older_than,
                )
            )
            .order_by(Document.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_failed_if_pending(self, document_ids: Sequence[str]) -> int:
        """Fail the given documents, skipping any that left ``pending`` meanwhile.

        Args:
            document_ids: Candidate ids from ``find_stale_pending``

        Returns:
            Number of documents moved to ``failed``
        """
        if not document_ids:
            return 0

        stmt = (
            update(Document)
            .where(
                and_(
                    Document.id.in_(list(document_ids)),
                    Document.processing_status == ProcessingStatus.PENDING,
                )
            )
            .values(processing_status=ProcessingStatus.FAILED)
            .returning(Document.id)
        )
        result = await self.session.execute(stmt)
        updated = list(result.scalars().all())
        await self.session.commit()
        return len(updated)
