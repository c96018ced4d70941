"""Object storage for order photos.

Keys:
    {owner_id}/{token}-{sequence}.{ext}   multi-image uploads (order wizard)
    {timestamp_ms}.{ext}                  single-image contexts

The token is chosen once per submit attempt, so two submits by the same
user (or concurrent submits by different users) never share a key.

LocalAssetStorage writes under MEDIA_ROOT/<bucket>/ and relies on the
static mount in main.py to make every stored object publicly resolvable.
"""

import asyncio
import logging
import time
from pathlib import Path, PurePosixPath

from cartdrop.middleware.exceptions import UploadError
from cartdrop.services.imaging import NormalizedImage

logger = logging.getLogger(__name__)


def file_extension(filename: str, default: str = "bin") -> str:
    """Extension of a client-supplied filename, without the dot."""
    suffix = PurePosixPath(filename).suffix.lstrip(".")
    return suffix.lower() or default


def build_object_key(
    extension: str,
    owner_id: str | None = None,
    token: str | None = None,
    sequence: int | None = None,
) -> str:
    if owner_id is None:
        return f"{int(time.time() * 1000)}.{extension}"
    if token is None or sequence is None:
        raise ValueError("owner-scoped keys need both a token and a sequence")
    return f"{owner_id}/{token}-{sequence}.{extension}"


class AssetStorage:
    """Interface for a bucket of publicly readable objects."""

    bucket: str

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store data under key and return its public address.

        Backends may raise their client library's own errors; upload_image
        turns any of them into UploadError for the file being sent.
        """
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError


class LocalAssetStorage(AssetStorage):
    """Filesystem-backed bucket served by a static files mount."""

    def __init__(self, root: str | Path, bucket: str, base_url: str):
        self.root = Path(root)
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        bucket_dir = (self.root / self.bucket).resolve()
        path = (bucket_dir / key).resolve()
        if bucket_dir not in path.parents:
            raise ValueError(f"Key escapes bucket: {key}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)
        await asyncio.to_thread(self._write, path, data)
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type)
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{self.bucket}/{key}"


async def upload_image(
    storage: AssetStorage,
    image: NormalizedImage,
    key: str,
    source_filename: str,
) -> str:
    """Upload one processed image, naming the source file on failure."""
    try:
        return await storage.upload(key, image.data, image.content_type)
    except Exception as exc:
        logger.warning("Upload of %s to %s failed: %s", source_filename, key, exc)
        raise UploadError(source_filename, str(exc)) from exc
