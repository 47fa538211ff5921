"""Blob storage for generated audio.

Two backends share one interface:

- LocalBlobStorage writes under a directory and serves from a URL prefix
- HTTPBlobStorage talks to a Supabase-style storage REST API over httpx

Deleting an object that is already gone is not an error; ``delete`` returns
False in that case so repeated cleanup runs stay idempotent.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote, unquote, urlparse

import httpx

from .config import PipelineConfig
from .errors import StorageError

logger = logging.getLogger(__name__)


def build_audio_path(
    content_type: str,
    block_id: str,
    voice: str,
    when: datetime,
    extension: str = "mp3",
) -> str:
    """Object path for a block's audio.

    Content type, block id, voice and a timestamp make the path unique per
    synthesis attempt, so concurrent writers never share an object.
    """
    stamp = when.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"{content_type}/{block_id}_{voice}_{stamp}.{extension}"


class BlobStorage(Protocol):
    def upload(self, path: str, data: bytes, content_type: str) -> None: ...

    def public_url(self, path: str) -> str: ...

    def delete(self, path: str) -> bool: ...

    def path_from_url(self, url: str) -> Optional[str]: ...


class LocalBlobStorage:
    """Filesystem-backed storage rooted at ``root``."""

    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str = "audio/mpeg") -> None:
        target = self._resolve(path)
        if target.exists():
            raise StorageError(f"Object already exists: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Storage upload failed for {path}: {e}") from e
        logger.info(f"Stored {len(data)} bytes at {target}")

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{quote(path)}"

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"File already missing (deleted elsewhere?): {target}")
            return False
        except OSError as e:
            raise StorageError(f"Storage deletion failed for {path}: {e}") from e
        logger.info(f"Deleted file: {target}")
        return True

    def path_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            return None
        return unquote(url[len(prefix):]) or None


class HTTPBlobStorage:
    """Storage REST API client.

    URL layout:
        upload/delete: {base_url}/storage/v1/object/{bucket}/{path}
        public:        {base_url}/storage/v1/object/public/{bucket}/{path}
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "apikey": api_key,
            },
        )

    def close(self) -> None:
        self.client.close()

    def upload(self, path: str, data: bytes, content_type: str = "audio/mpeg") -> None:
        try:
            response = self.client.post(
                f"/storage/v1/object/{self.bucket}/{quote(path)}",
                content=data,
                headers={
                    "Content-Type": content_type,
                    "Cache-Control": "3600",
                    "x-upsert": "false",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Storage upload failed for {path}: {e}") from e

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    def delete(self, path: str) -> bool:
        try:
            response = self.client.delete(f"/storage/v1/object/{self.bucket}/{quote(path)}")
        except httpx.HTTPError as e:
            raise StorageError(f"Storage deletion failed for {path}: {e}") from e

        if response.status_code == 404:
            logger.warning(f"Object already missing (deleted elsewhere?): {path}")
            return False
        if response.is_error:
            raise StorageError(
                f"Storage deletion failed for {path}: HTTP {response.status_code} {response.text}"
            )
        return True

    def path_from_url(self, url: str) -> Optional[str]:
        marker = f"/storage/v1/object/public/{self.bucket}/"
        parsed_path = urlparse(url).path
        if marker not in parsed_path:
            return None
        return unquote(parsed_path.split(marker, 1)[1]) or None


def create_blob_storage(config: PipelineConfig) -> BlobStorage:
    """Build the storage backend selected by configuration."""
    storage = config.storage
    if storage.storage_backend == "http":
        if not storage.storage_url or config.api_keys.storage_api_key is None:
            raise ValueError("DAYSTART_STORAGE_URL and DAYSTART_STORAGE_API_KEY required for http storage")
        return HTTPBlobStorage(
            base_url=storage.storage_url,
            bucket=storage.storage_bucket,
            api_key=config.api_keys.storage_api_key.get_secret_value(),
            timeout=storage.storage_timeout_seconds,
        )
    return LocalBlobStorage(config.paths.audio_path, storage.public_base_url)
