"""
Object Storage Service

Downloads and uploads vault blobs through the storage REST API.

Usage:
    storage = StorageService()
    content = await storage.download("team1/invoice.pdf")
    await storage.upload("team1/photo.heic", jpeg_bytes, content_type="image/jpeg", upsert=True)
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from vault_worker.core.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    """
    Service for reading and writing blobs in one storage bucket.

    Missing objects are reported as ``None`` rather than raised, so callers
    can decide whether absence is fatal.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the storage service.

        Args:
            base_url: Storage API root (defaults to settings.STORAGE_URL)
            service_key: Service role key (defaults to settings.STORAGE_SERVICE_KEY)
            bucket: Bucket name (defaults to settings.STORAGE_BUCKET)
            client: Optional pre-built httpx client
        """
        self.base_url = (base_url or settings.STORAGE_URL).rstrip("/")
        self.bucket = bucket or settings.STORAGE_BUCKET
        key = service_key if service_key is not None else settings.STORAGE_SERVICE_KEY
        self.headers = {"Authorization": f"Bearer {key}", "apikey": key}
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self.headers, timeout=None)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/object/{self.bucket}/{quote(path)}"

    async def download(self, path: str) -> Optional[bytes]:
        """
        Download a blob.

        Args:
            path: Object path inside the bucket (path tokens joined with '/')

        Returns:
            Blob bytes, or None if the object does not exist
        """
        response = await self.client.get(self._object_url(path))

        if response.status_code in (400, 404):
            logger.warning(f"Object not found in {self.bucket}: {path} (status {response.status_code})")
            return None

        response.raise_for_status()
        logger.info(f"Downloaded {path} ({len(response.content)} bytes)")
        return response.content

    async def upload(
        self, path: str, content: bytes, content_type: str, upsert: bool = False
    ) -> Optional[str]:
        """
        Upload a blob, optionally overwriting an existing object.

        Args:
            path: Object path inside the bucket
            content: Bytes to store
            content_type: MIME type recorded with the object
            upsert: Overwrite the object if it already exists

        Returns:
            The stored path, or None if the storage API rejected the upload
        """
        response = await self.client.post(
            self._object_url(path),
            content=content,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )

        if response.is_error:
            logger.error(
                f"Upload of {path} rejected with status {response.status_code}: {response.text[:200]}"
            )
            return None

        logger.info(f"Uploaded {path} ({len(content)} bytes, {content_type})")
        return path
