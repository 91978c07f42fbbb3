"""Pytest configuration and fixtures."""
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from vault_worker.db.models.document import ProcessingStatus
from vault_worker.services.job_dispatcher import JobDispatcher


class FakeStorage:
    """In-memory bucket with the StorageService interface."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects = dict(objects or {})
        self.downloads: List[str] = []
        self.uploads: List[tuple] = []

    async def download(self, path: str) -> Optional[bytes]:
        self.downloads.append(path)
        return self.objects.get(path)

    async def upload(self, path: str, content: bytes, content_type: str, upsert: bool = False) -> Optional[str]:
        self.uploads.append((path, content, content_type, upsert))
        self.objects[path] = content
        return path

    async def aclose(self) -> None:
        pass


class FakeDocumentRepository:
    """Document rows kept in a dict, keyed by id."""

    def __init__(self):
        self.docs: Dict[str, SimpleNamespace] = {}
        self.rollbacks = 0

    def add(
        self,
        doc_id: str,
        team_id: str,
        path_tokens: List[str],
        status: str = ProcessingStatus.PENDING,
        created_at: Optional[datetime] = None,
    ) -> SimpleNamespace:
        doc = SimpleNamespace(
            id=doc_id,
            team_id=team_id,
            path_tokens=list(path_tokens),
            processing_status=status,
            created_at=created_at or datetime.now(timezone.utc),
            title=None,
            summary=None,
            content=None,
            date=None,
            language=None,
        )
        self.docs[doc_id] = doc
        return doc

    def _update(self, docs, fields) -> List[SimpleNamespace]:
        rows = []
        for doc in docs:
            for key, value in fields.items():
                setattr(doc, key, value)
            rows.append(SimpleNamespace(id=doc.id, processing_status=doc.processing_status))
        return rows

    async def update_by_path(self, team_id, path_tokens, **fields):
        matches = [
            doc for doc in self.docs.values()
            if doc.team_id == team_id and doc.path_tokens == list(path_tokens)
        ]
        return self._update(matches, fields)

    async def update_by_id(self, document_id, team_id, **fields):
        matches = [
            doc for doc in self.docs.values()
            if doc.id == document_id and doc.team_id == team_id
        ]
        return self._update(matches, fields)

    async def mark_failed_by_path(self, team_id, path_tokens):
        return await self.update_by_path(team_id, path_tokens, processing_status=ProcessingStatus.FAILED)

    async def find_stale_pending(self, older_than, limit):
        stale = sorted(
            (
                doc for doc in self.docs.values()
                if doc.processing_status == ProcessingStatus.PENDING and doc.created_at < older_than
            ),
            key=lambda doc: doc.created_at,
        )
        return [doc.id for doc in stale[:limit]]

    async def mark_failed_if_pending(self, document_ids):
        count = 0
        for doc_id in document_ids:
            doc = self.docs.get(doc_id)
            if doc is not None and doc.processing_status == ProcessingStatus.PENDING:
                doc.processing_status = ProcessingStatus.FAILED
                count += 1
        return count

    async def commit(self):
        pass

    async def rollback(self):
        self.rollbacks += 1


class FakeTagRepository:
    """Tags, embeddings and assignments with the same conflict rules as the database."""

    def __init__(self):
        self.embeddings: Dict[str, dict] = {}
        self.tags: Dict[tuple, SimpleNamespace] = {}
        self.assignments: set = set()
        self.commits = 0
        self.rollbacks = 0
        self.drop_embedding_writes = False

    async def get_embedded_slugs(self, slugs):
        return {slug for slug in slugs if slug in self.embeddings}

    async def upsert_embeddings(self, rows):
        if self.drop_embedding_writes:
            return
        for row in rows:
            self.embeddings.setdefault(row["slug"], row)

    async def upsert_tags(self, team_id, tags):
        ids = []
        for name, slug in tags:
            key = (team_id, slug)
            if key in self.tags:
                self.tags[key].name = name
            else:
                self.tags[key] = SimpleNamespace(id=len(self.tags) + 1, name=name, slug=slug)
            ids.append(self.tags[key].id)
        return ids

    async def upsert_assignments(self, document_id, team_id, tag_ids):
        new = {(document_id, tag_id) for tag_id in tag_ids} - self.assignments
        self.assignments |= new
        return len(new)

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


def _sent_jobs(app: MagicMock) -> List[tuple]:
    jobs = []
    for call in app.send_task.call_args_list:
        name = call.args[0]
        if name != "notification":
            jobs.append((name, call.kwargs["kwargs"], call.kwargs["queue"]))
    return jobs


def _sent_notifications(app: MagicMock) -> List[dict]:
    return [
        call.kwargs["kwargs"]
        for call in app.send_task.call_args_list
        if call.args[0] == "notification"
    ]


@pytest.fixture
def celery_mock() -> MagicMock:
    app = MagicMock()
    app.send_task.return_value = SimpleNamespace(id="job-1")
    return app


@pytest.fixture
def dispatcher(celery_mock) -> JobDispatcher:
    return JobDispatcher(app=celery_mock)


@pytest.fixture
def documents() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture
def tag_repo() -> FakeTagRepository:
    return FakeTagRepository()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def sent_jobs(celery_mock):
    """Callable returning (name, kwargs, queue) for every non-notification job sent."""
    return lambda: _sent_jobs(celery_mock)


@pytest.fixture
def sent_notifications(celery_mock):
    """Callable returning the payload of every notification sent."""
    return lambda: _sent_notifications(celery_mock)
