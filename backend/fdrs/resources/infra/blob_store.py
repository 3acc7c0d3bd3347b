"""Local filesystem blob store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os
import ulid

from fdrs.obs import metrics as obs_metrics
from fdrs.resources.domain.exceptions import NotFoundError
from fdrs.resources.domain.models import BlobKind

logger = logging.getLogger(__name__)

_SUBDIRS = {
    BlobKind.DOCUMENT: "documents",
    BlobKind.COVER: "covers",
}


class LocalBlobStore:
    """Stores blobs under ``root`` and hands out root-relative references."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if path != self.root and self.root not in path.parents:
            raise NotFoundError("blob_not_found")
        return path

    async def put(self, data: bytes, *, kind: BlobKind, suffix: str = "") -> str:
        subdir = _SUBDIRS[kind]
        directory = self.root / subdir
        await aiofiles.os.makedirs(directory, exist_ok=True)
        filename = f"{ulid.new().str}{suffix.lower()}"
        async with aiofiles.open(directory / filename, "wb") as handle:
            await handle.write(data)
        obs_metrics.observe_upload(kind.value, len(data))
        reference = f"{subdir}/{filename}"
        logger.debug("blob stored", extra={"reference": reference, "size_bytes": len(data)})
        return reference

    async def delete(self, reference: str) -> bool:
        path = self._resolve(reference)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning("blob already missing", extra={"reference": reference})
            return False
        return True

    async def exists(self, reference: str) -> bool:
        try:
            path = self._resolve(reference)
        except NotFoundError:
            return False
        return await aiofiles.os.path.isfile(path)

    async def stream(self, reference: str, *, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
        path = self._resolve(reference)
        async with aiofiles.open(path, "rb") as handle:
            while True:
                chunk = await handle.read(chunk_size)
                if not chunk:
                    break
                yield chunk
