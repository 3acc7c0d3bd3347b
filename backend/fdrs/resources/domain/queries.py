"""Read side for resources: listings, detail, search, pending queue and downloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Literal, Optional, Sequence
from uuid import UUID

from fdrs.obs import metrics as obs_metrics
from fdrs.resources.domain.blobs import BlobStore
from fdrs.resources.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from fdrs.resources.domain.models import BlobKind, Comment, Resource
from fdrs.resources.domain.repository import ResourceRepository

logger = logging.getLogger(__name__)

SearchStatus = Literal["match", "no_match"]

_MAX_TERM_LENGTH = 200


@dataclass(slots=True)
class ResourceDetail:
    resource: Resource
    comments: Sequence[Comment]
    comment_count: int


@dataclass(slots=True)
class SearchOutcome:
    term: str
    results: Sequence[Resource]

    @property
    def outcome(self) -> SearchStatus:
        return "match" if self.results else "no_match"


@dataclass(slots=True)
class Download:
    resource: Resource
    kind: BlobKind
    reference: str
    chunks: AsyncIterator[bytes]

    @property
    def filename(self) -> str:
        return self.reference.rsplit("/", 1)[-1]


@dataclass
class QueryService:
    repository: ResourceRepository
    blobs: BlobStore

    async def _require_faculty(self, faculty_id: UUID) -> None:
        if await self.repository.get_faculty(faculty_id) is None:
            raise NotFoundError("faculty_not_found")

    async def list_resources(self, faculty_id: UUID) -> Sequence[Resource]:
        await self._require_faculty(faculty_id)
        return await self.repository.list_resources(faculty_id=faculty_id, authorized=True, order_by="title")

    async def detail(self, resource_id: UUID) -> ResourceDetail:
        resource = await self.repository.get_resource(resource_id)
        if resource is None:
            raise NotFoundError("resource_not_found")
        comments = await self.repository.list_comments(resource_id)
        count = await self.repository.count_comments(resource_id)
        return ResourceDetail(resource=resource, comments=comments, comment_count=count)

    async def search(self, faculty_id: UUID, term: Optional[str]) -> SearchOutcome:
        needle = (term or "").strip()
        if not needle:
            raise ValidationError("term_required")
        if len(needle) > _MAX_TERM_LENGTH:
            raise ValidationError("term_too_long")
        await self._require_faculty(faculty_id)
        results = await self.repository.list_resources(
            faculty_id=faculty_id,
            authorized=True,
            term=needle,
            order_by="title",
        )
        outcome = SearchOutcome(term=needle, results=results)
        obs_metrics.inc_search(outcome.outcome)
        return outcome

    async def list_pending(self, *, requester_is_admin: bool) -> Sequence[Resource]:
        if not requester_is_admin:
            raise ForbiddenError("insufficient_role")
        return await self.repository.list_resources(authorized=False, order_by="created_at")

    async def open_download(
        self,
        resource_id: UUID,
        kind: BlobKind,
        *,
        requester_id: Optional[UUID] = None,
        requester_is_admin: bool = False,
    ) -> Download:
        resource = await self.repository.get_resource(resource_id)
        if resource is None:
            raise NotFoundError("resource_not_found")
        if not resource.is_authorized and not requester_is_admin and resource.owner_id != requester_id:
            raise ForbiddenError("resource_not_authorized")
        reference = resource.blob_reference(kind)
        if not await self.blobs.exists(reference):
            logger.warning(
                "blob missing for resource",
                extra={"resource_id": str(resource_id), "kind": kind.value, "reference": reference},
            )
            raise NotFoundError(f"{kind.value}_not_found")
        return Download(
            resource=resource,
            kind=kind,
            reference=reference,
            chunks=self.blobs.stream(reference),
        )
