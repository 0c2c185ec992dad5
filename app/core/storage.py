# app/core/storage.py

import uuid
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Optional

from loguru import logger
from supabase import create_client, Client

from app.core.config import settings
from app.core.exceptions import StorageError


class StorageService:
    """
    Private bucket holding submitted PDFs.

    Keys are generated here (`<prefix><uuid><ext>`); the caller's filename is
    never used as a path. Every failure surfaces as StorageError.
    """

    def __init__(self, client: Optional[Client], bucket: str):
        self.client = client
        self.bucket = bucket

    def _bucket(self):
        if self.client is None:
            logger.error("Storage credentials missing (SUPABASE_URL / SUPABASE_KEY).")
            raise StorageError("Storage service unavailable.")
        return self.client.storage.from_(self.bucket)

    async def store(
        self,
        content: bytes,
        filename: str,
        path_prefix: str,
        content_type: str = "application/pdf",
    ) -> str:
        extension = PurePosixPath(filename or "").suffix.lower()
        key = f"{path_prefix}{uuid.uuid4()}{extension}"

        bucket = self._bucket()
        try:
            bucket.upload(
                path=key,
                file=content,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            logger.error(f"Storage upload failed for {key}: {e}")
            raise StorageError("Failed to upload document to storage.") from e

        logger.info(f"Stored object {key} ({len(content)} bytes)")
        return key

    async def signed_url(self, key: str, ttl_minutes: int) -> str:
        bucket = self._bucket()
        try:
            response = bucket.create_signed_url(key, ttl_minutes * 60)
        except Exception as e:
            logger.error(f"Failed to sign URL for {key}: {e}")
            raise StorageError("Document is temporarily unavailable.") from e

        # Response shape differs across supabase SDK versions
        if isinstance(response, dict):
            url = response.get("signedURL") or response.get("signedUrl")
        else:
            url = getattr(response, "signedURL", None) or getattr(response, "signed_url", None)
        if not url:
            raise StorageError("Storage returned no signed URL.")
        return url

    async def delete(self, key: str) -> None:
        bucket = self._bucket()
        try:
            bucket.remove([key])
        except Exception as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise StorageError("Failed to delete document from storage.") from e
        logger.info(f"Deleted object {key}")


@lru_cache
def get_storage_service() -> StorageService:
    client = None
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    else:
        logger.warning("Supabase storage not configured; uploads will fail.")
    return StorageService(client, settings.STORAGE_BUCKET)
