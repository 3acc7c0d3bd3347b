"""Blob storage contract for uploaded documents and cover images."""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from fdrs.resources.domain.models import BlobKind


class BlobStore(Protocol):
    """Opaque byte storage addressed by reference strings.

    ``delete`` is idempotent: a missing reference returns ``False`` instead of
    raising, so cascade cleanup can run more than once.
    """

    async def put(self, data: bytes, *, kind: BlobKind, suffix: str = "") -> str:
        ...

    async def delete(self, reference: str) -> bool:
        ...

    async def exists(self, reference: str) -> bool:
        ...

    def stream(self, reference: str, *, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
        ...
