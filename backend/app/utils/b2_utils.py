# app/utils/b2_utils.py
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from b2sdk.v2 import B2Api, InMemoryAccountInfo
from b2sdk.v2.exception import B2Error
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from skillconnect.core.config import settings
from skillconnect.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 3600


def is_image(file: UploadFile) -> bool:
    return bool(file.content_type) and file.content_type.startswith("image/")


class B2AssetStore:
    """Backblaze B2 bucket holding profile pictures, valid ids and certificates.

    The account is authorized on first use so importing the app never needs
    credentials.
    """

    def __init__(self, upload_dir: str = settings.UPLOAD_TEMP_DIR):
        self.upload_dir = Path(upload_dir)
        self._api: Optional[B2Api] = None
        self._bucket = None

    def _get_bucket(self):
        if self._bucket is None:
            api = B2Api(InMemoryAccountInfo())
            api.authorize_account("production", settings.B2_KEY_ID, settings.B2_APPLICATION_KEY)
            self._api = api
            self._bucket = api.get_bucket_by_name(settings.B2_BUCKET_NAME)
        return self._bucket

    def _upload_local(self, local_path: Path, file_name: str, content_type: str) -> str:
        bucket = self._get_bucket()
        bucket.upload_local_file(local_file=str(local_path), file_name=file_name, content_type=content_type)
        if settings.B2_BUCKET_PUBLIC:
            return f"{self._api.account_info.get_download_url()}/file/{settings.B2_BUCKET_NAME}/{file_name}"
        # Private bucket: keep the file name, signed URLs are issued on demand
        return file_name

    async def upload(self, file: UploadFile, folder: str, images_only: bool = False) -> str:
        if images_only and not is_image(file):
            raise ValidationError(f"{file.filename or 'File'} must be an image")

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_name = f"{folder}/{uuid.uuid4()}{Path(file.filename or '').suffix}"
        local_file_path = self.upload_dir / file_name.replace("/", "_")
        try:
            with local_file_path.open("wb") as f:
                f.write(await file.read())
            return await run_in_threadpool(
                self._upload_local, local_file_path, file_name, file.content_type or "application/octet-stream"
            )
        except B2Error as exc:
            logger.error("Upload of %s to B2 failed: %s", file_name, exc)
            raise UpstreamError("File upload failed")
        finally:
            local_file_path.unlink(missing_ok=True)

    async def upload_many(self, files: List[UploadFile], folder: str) -> List[str]:
        return [await self.upload(file, folder) for file in files if file and file.filename]

    def _signed_url(self, file_name: str, ttl_seconds: int) -> str:
        bucket = self._get_bucket()
        token = bucket.get_download_authorization(file_name, ttl_seconds)
        return f"{self._api.account_info.get_download_url()}/file/{settings.B2_BUCKET_NAME}/{file_name}?Authorization={token}"

    async def signed_url(self, file_name: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS) -> str:
        """Time-limited download URL for a private file."""
        if file_name.startswith("http"):
            return file_name
        try:
            return await run_in_threadpool(self._signed_url, file_name, ttl_seconds)
        except B2Error as exc:
            logger.error("Could not sign %s: %s", file_name, exc)
            raise UpstreamError("Could not generate file URL")


asset_store = B2AssetStore()


def get_asset_store() -> B2AssetStore:
    return asset_store
