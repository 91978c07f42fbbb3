"""
Tag Embedding Processor

Embeds a document's tags through a global slug-keyed cache, upserts the
team's tags and assigns them to the document, then completes the document.
"""

import logging
from typing import Dict, List, Optional

from vault_worker.core.config import settings
from vault_worker.core.errors import DocumentNotFoundError, EmbeddingMismatchError, PersistenceError
from vault_worker.core.timeout import with_timeout
from vault_worker.db.models.document import ProcessingStatus
from vault_worker.processors.base import BaseProcessor, ProgressCallback, ProgressMilestones
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.repositories.tag_repository import TagRepository
from vault_worker.services.embedding_service import EmbeddingService
from vault_worker.services.tag_slug import MAX_TAG_NAME_LENGTH, slugify

logger = logging.getLogger(__name__)


def slug_tags(tags: List[str]) -> Dict[str, str]:
    """
    Map slug -> tag name for a raw tag list.

    Tags that slugify to nothing are dropped; tags sharing a slug collapse
    to the first name seen. Names are cut to the stored column length.
    """
    slugged: Dict[str, str] = {}
    for name in tags:
        name = (name or "").strip()
        slug = slugify(name)
        if not slug:
            logger.warning(f"Dropping tag {name!r}: empty slug")
            continue
        slugged.setdefault(slug, name[:MAX_TAG_NAME_LENGTH])
    return slugged


class EmbedDocumentTagsProcessor(BaseProcessor):
    """Persist embeddings, tags and assignments for one document."""

    def __init__(
        self,
        documents: DocumentRepository,
        tags: TagRepository,
        embedder: EmbeddingService,
        progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(documents, progress)
        self.tags = tags
        self.embedder = embedder

    async def process(self, document_id: str, team_id: str, tags: List[str]) -> Dict[str, int]:
        """
        Embed and assign tags, then mark the document completed.

        Args:
            document_id: Document ID
            team_id: Owning team
            tags: Raw tag names from classification

        Returns:
            Counts of embedded, assigned and total tags

        Raises:
            EmbeddingMismatchError: Embedder returned the wrong number of vectors
            PersistenceError: Embeddings could not be stored
            DocumentNotFoundError: The document vanished before completion
        """
        logger.info(f"Embedding {len(tags)} tags for document {document_id} (team {team_id})")
        try:
            slugged = slug_tags(tags)
            slugs = list(slugged)

            existing = await self.tags.get_embedded_slugs(slugs)
            missing = [slug for slug in slugs if slug not in existing]
            if missing:
                await self._embed_missing(missing, slugged)
            self.report_progress(ProgressMilestones.HALFWAY, "Tag embeddings stored")

            tag_ids = await self.tags.upsert_tags(team_id, [(slugged[slug], slug) for slug in slugs])

            assigned = 0
            if tag_ids:
                assigned = await self.tags.upsert_assignments(document_id, team_id, tag_ids)
            elif slugs:
                logger.warning(f"Tag upsert returned no ids for document {document_id}; skipping assignment")

            await self.tags.commit()

            rows = await self.documents.update_by_id(
                document_id, team_id, processing_status=ProcessingStatus.COMPLETED
            )
            if not rows:
                raise DocumentNotFoundError(f"Document {document_id} not found for team {team_id}")

            self.report_progress(ProgressMilestones.COMPLETED, "Tags assigned")
            logger.info(
                f"Tags done for document {document_id}: {len(missing)} embedded, "
                f"{len(existing)} cached, {assigned} newly assigned"
            )
            return {"embedded": len(missing), "assigned": assigned, "tags": len(slugs)}

        except Exception as e:
            logger.error(f"Tag embedding failed for document {document_id} (team {team_id}): {e}")
            await self._mark_failed_by_id(document_id, team_id)
            raise

    async def _embed_missing(self, missing: List[str], slugged: Dict[str, str]) -> None:
        names = [slugged[slug] for slug in missing]
        batch = await with_timeout(
            self.embedder.embed_many(names),
            settings.EMBEDDING_TIMEOUT,
            f"Embedding timed out after {settings.EMBEDDING_TIMEOUT}s",
        )
        if len(batch.embeddings) != len(names):
            raise EmbeddingMismatchError(
                f"Requested {len(names)} embeddings, received {len(batch.embeddings)}"
            )

        await self.tags.upsert_embeddings(
            [
                {"slug": slug, "name": slugged[slug], "embedding": embedding, "model": batch.model}
                for slug, embedding in zip(missing, batch.embeddings)
            ]
        )

        # DO NOTHING inserts return no rows for concurrent winners, so confirm by reading back
        stored = await self.tags.get_embedded_slugs(missing)
        absent = [slug for slug in missing if slug not in stored]
        if absent:
            raise PersistenceError(f"Failed to store embeddings for tags: {', '.join(absent)}")

    async def _mark_failed_by_id(self, document_id: str, team_id: str) -> None:
        try:
            await self.tags.rollback()
            await self.documents.update_by_id(
                document_id, team_id, processing_status=ProcessingStatus.FAILED
            )
        except Exception as e:
            logger.error(f"Could not mark document {document_id} as failed: {e}")
