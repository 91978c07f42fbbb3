"""Tag, tag embedding and assignment repository."""
from typing import Dict, List, Sequence, Set, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from vault_worker.db.models.document_tag import DocumentTagAssignment
from vault_worker.db.models.tag import Tag
from vault_worker.db.models.tag_embedding import TagEmbedding
from vault_worker.repositories.base_repository import BaseRepository


class TagRepository(BaseRepository[Tag]):
    """Repository for team tags and the global embedding cache."""

    def __init__(self, session: AsyncSession):
        """Initialize tag repository.

        Args:
            session: Async database session
        """
        super().__init__(Tag, session)

    async def get_embedded_slugs(self, slugs: Sequence[str]) -> Set[str]:
        """Return the subset of ``slugs`` that already have a stored embedding.

        Args:
            slugs: Candidate slugs

        Returns:
            Slugs present in the embedding cache
        """
        if not slugs:
            return set()

        result = await self.session.execute(
            select(TagEmbedding.slug).where(TagEmbedding.slug.in_(list(slugs)))
        )
        return set(result.scalars().all())

    async def upsert_embeddings(self, rows: List[Dict]) -> None:
        """Insert embeddings keyed by slug; existing slugs are left untouched.

        Args:
            rows: Dicts with ``slug``, ``name``, ``embedding`` and ``model``
        """
        if not rows:
            return

        stmt = insert(TagEmbedding).values(rows).on_conflict_do_nothing(
            index_elements=[TagEmbedding.slug]
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def upsert_tags(self, team_id: str, tags: List[Tuple[str, str]]) -> List[int]:
        """Create or refresh team tags keyed by (team_id, slug).

        Args:
            team_id: Team UUID
            tags: (name, slug) pairs

        Returns:
            IDs of every tag in ``tags``, existing or new
        """
        if not tags:
            return []

        stmt = insert(Tag).values(
            [{"team_id": team_id, "name": name, "slug": slug} for name, slug in tags]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Tag.team_id, Tag.slug],
            set_={"name": stmt.excluded.name},
        ).returning(Tag.id)

        result = await self.session.execute(stmt)
        await self.session.flush()
        return list(result.scalars().all())

    async def upsert_assignments(self, document_id: str, team_id: str, tag_ids: Sequence[int]) -> int:
        """Link a document to tags; pairs that already exist are skipped.

        Args:
            document_id: Document ID
            team_id: Team UUID
            tag_ids: Tag IDs to assign

        Returns:
            Number of new assignments
        """
        if not tag_ids:
            return 0

        stmt = (
            insert(DocumentTagAssignment)
            .values(
                [
                    {"document_id": document_id, "tag_id": tag_id, "team_id": team_id}
                    for tag_id in tag_ids
                ]
            )
            .on_conflict_do_nothing(
                index_elements=[DocumentTagAssignment.document_id, DocumentTagAssignment.tag_id]
            )
            .returning(DocumentTagAssignment.tag_id)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return len(result.scalars().all())
