"""Resource lifecycle: submission, moderation decisions and removal."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Literal, Optional, Sequence
from uuid import UUID, uuid4

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fdrs.obs import metrics as obs_metrics
from fdrs.obs.logging import mask_email
from fdrs.resources.domain.blobs import BlobStore
from fdrs.resources.domain.exceptions import (
    ConflictError,
    DependencyError,
    ForbiddenError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from fdrs.resources.domain.models import BlobKind, Resource, ResourceMetadata, ResourceState, utcnow
from fdrs.resources.domain.notifier import Message, Notifier, approved_message, declined_message
from fdrs.resources.domain.repository import ResourceRepository

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["complete", "partial"]

_LINK = TypeAdapter(HttpUrl)


@dataclass(slots=True)
class BlobUpload:
    """An uploaded file as received from the transport layer."""

    data: bytes
    filename: str = ""
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def suffix(self) -> str:
        return PurePath(self.filename).suffix if self.filename else ""


@dataclass(slots=True)
class UploadPolicy:
    max_document_bytes: int = 50 * 1024 * 1024
    max_cover_bytes: int = 5 * 1024 * 1024
    document_types: Sequence[str] = ("application/pdf",)
    cover_types: Sequence[str] = ("image/jpeg", "image/png", "image/webp")

    def limit_for(self, kind: BlobKind) -> int:
        return self.max_document_bytes if kind is BlobKind.DOCUMENT else self.max_cover_bytes

    def types_for(self, kind: BlobKind) -> Sequence[str]:
        return self.document_types if kind is BlobKind.DOCUMENT else self.cover_types


@dataclass(slots=True)
class ModerationOutcome:
    resource: Resource
    transition: str
    favorites_deleted: int = 0
    comments_deleted: int = 0
    notified: bool = False
    warnings: list[DependencyError] = field(default_factory=list)

    @property
    def state(self) -> ResourceState:
        """State after the transition; decline and delete leave nothing stored."""
        if self.transition in ("decline", "delete"):
            return ResourceState.REMOVED
        return self.resource.state

    @property
    def status(self) -> OutcomeStatus:
        return "partial" if self.warnings else "complete"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def normalize_metadata(metadata: ResourceMetadata) -> ResourceMetadata:
    """Trim every field and reject blanks in the required ones."""
    cleaned = ResourceMetadata(
        title=_clean(metadata.title),
        author_first_name=_clean(metadata.author_first_name),
        author_last_name=_clean(metadata.author_last_name),
        description=_clean(metadata.description),
        related_link=_clean(metadata.related_link) or None,
    )
    for name in ("title", "author_first_name", "author_last_name", "description"):
        if not getattr(cleaned, name):
            raise ValidationError(f"{name}_required")
    if cleaned.related_link is not None:
        try:
            _LINK.validate_python(cleaned.related_link)
        except PydanticValidationError as exc:
            raise ValidationError("related_link_invalid") from exc
    return cleaned


@dataclass
class ModerationEngine:
    repository: ResourceRepository
    blobs: BlobStore
    notifier: Notifier
    notify_timeout: float = 10.0
    uploads: UploadPolicy = field(default_factory=UploadPolicy)

    def _check_upload(self, upload: Optional[BlobUpload], kind: BlobKind) -> BlobUpload:
        if upload is None or upload.size == 0:
            raise UploadError(f"{kind.value}_missing")
        allowed = self.uploads.types_for(kind)
        if upload.size > self.uploads.limit_for(kind):
            raise ValidationError(f"{kind.value}_too_large")
        if upload.content_type and allowed and upload.content_type not in allowed:
            raise ValidationError(f"{kind.value}_type_unsupported")
        return upload

    async def submit(
        self,
        *,
        owner_id: UUID,
        faculty_id: UUID,
        metadata: ResourceMetadata,
        document: Optional[BlobUpload],
        cover: Optional[BlobUpload],
        privileged: bool = False,
    ) -> Resource:
        cleaned = normalize_metadata(metadata)
        if await self.repository.get_faculty(faculty_id) is None:
            raise NotFoundError("faculty_not_found")
        owner = await self.repository.get_user(owner_id)
        if owner is None:
            raise NotFoundError("user_not_found")
        document = self._check_upload(document, BlobKind.DOCUMENT)
        cover = self._check_upload(cover, BlobKind.COVER)
        # Cheap pre-check; the unique index still decides under concurrency.
        if await self.repository.title_exists(cleaned.title):
            raise ConflictError("title_exists")

        written: list[str] = []
        try:
            for upload, kind in ((document, BlobKind.DOCUMENT), (cover, BlobKind.COVER)):
                written.append(await self.blobs.put(upload.data, kind=kind, suffix=upload.suffix))
        except OSError as exc:
            logger.error("blob write failed during submit", extra={"error": str(exc)})
            await self._discard(written)
            raise UploadError("upload_failed") from exc

        resource = Resource(
            id=uuid4(),
            owner_id=owner_id,
            faculty_id=faculty_id,
            title=cleaned.title,
            author_first_name=cleaned.author_first_name,
            author_last_name=cleaned.author_last_name,
            description=cleaned.description,
            related_link=cleaned.related_link,
            file_path=written[0],
            file_size=document.size,
            cover_path=written[1],
            is_authorized=privileged or owner.is_admin,
            created_at=utcnow(),
        )
        try:
            created = await self.repository.create_resource(resource)
        except Exception:
            await self._discard(written)
            raise
        transition = "submit_authorized" if created.is_authorized else "submit_pending"
        obs_metrics.inc_transition(transition)
        logger.info(
            "resource submitted",
            extra={"resource_id": str(created.id), "state": created.state.value},
        )
        return created

    async def approve(self, resource_id: UUID) -> ModerationOutcome:
        resource = await self._require(resource_id)
        if resource.is_authorized:
            raise ConflictError("resource_not_pending")
        approved = await self.repository.approve_resource(resource_id)
        if approved is None:
            # Lost a race with another decision on the same resource.
            await self._require(resource_id)
            raise ConflictError("resource_not_pending")
        obs_metrics.inc_transition("approve")
        logger.info("resource approved", extra={"resource_id": str(resource_id)})
        outcome = ModerationOutcome(resource=approved, transition="approve")
        await self._notify_owner(approved, approved_message(approved.title), outcome)
        return outcome

    async def decline(self, resource_id: UUID) -> ModerationOutcome:
        resource = await self._require(resource_id)
        if resource.is_authorized:
            raise ConflictError("resource_not_pending")
        result = await self.repository.delete_resource_cascade(resource_id, only_pending=True)
        if result is None:
            await self._require(resource_id)
            raise ConflictError("resource_not_pending")
        obs_metrics.inc_transition("decline")
        obs_metrics.inc_cascade(result.favorites_deleted, result.comments_deleted)
        logger.info(
            "resource declined",
            extra={
                "resource_id": str(resource_id),
                "favorites_deleted": result.favorites_deleted,
                "comments_deleted": result.comments_deleted,
            },
        )
        outcome = ModerationOutcome(
            resource=result.resource,
            transition="decline",
            favorites_deleted=result.favorites_deleted,
            comments_deleted=result.comments_deleted,
        )
        await self._remove_blobs(result.resource, outcome)
        await self._notify_owner(result.resource, declined_message(result.resource.title), outcome)
        return outcome

    async def delete(
        self,
        resource_id: UUID,
        *,
        requester_id: UUID,
        requester_is_admin: bool = False,
    ) -> ModerationOutcome:
        resource = await self._require(resource_id)
        if not requester_is_admin and resource.owner_id != requester_id:
            raise ForbiddenError("not_resource_owner")
        result = await self.repository.delete_resource_cascade(resource_id)
        if result is None:
            raise NotFoundError("resource_not_found")
        obs_metrics.inc_transition("delete")
        obs_metrics.inc_cascade(result.favorites_deleted, result.comments_deleted)
        logger.info(
            "resource deleted",
            extra={
                "resource_id": str(resource_id),
                "requester_id": str(requester_id),
                "favorites_deleted": result.favorites_deleted,
                "comments_deleted": result.comments_deleted,
            },
        )
        outcome = ModerationOutcome(
            resource=result.resource,
            transition="delete",
            favorites_deleted=result.favorites_deleted,
            comments_deleted=result.comments_deleted,
        )
        await self._remove_blobs(result.resource, outcome)
        return outcome

    async def _require(self, resource_id: UUID) -> Resource:
        resource = await self.repository.get_resource(resource_id)
        if resource is None:
            raise NotFoundError("resource_not_found")
        return resource

    async def _discard(self, references: Sequence[str]) -> None:
        for reference in references:
            try:
                await self.blobs.delete(reference)
            except OSError:
                logger.warning("failed to discard blob", extra={"reference": reference}, exc_info=True)

    def _warn(self, outcome: ModerationOutcome, error: DependencyError) -> None:
        outcome.warnings.append(error)
        obs_metrics.inc_cleanup_warning(error.step)
        logger.warning(
            "resource side effect failed",
            extra={
                "resource_id": str(outcome.resource.id),
                "step": error.step,
                "detail": error.detail,
            },
        )

    async def _remove_blobs(self, resource: Resource, outcome: ModerationOutcome) -> None:
        for kind in BlobKind:
            reference = resource.blob_reference(kind)
            try:
                await self.blobs.delete(reference)
            except (OSError, NotFoundError) as exc:
                self._warn(outcome, DependencyError(f"{kind.value}_delete_failed: {exc}", step=f"blob_{kind.value}"))

    async def _notify_owner(self, resource: Resource, message: Message, outcome: ModerationOutcome) -> None:
        owner = await self.repository.get_user(resource.owner_id)
        if owner is None:
            self._warn(outcome, DependencyError("owner_not_found", step="notify"))
            obs_metrics.inc_notification(message.template, False)
            return
        try:
            delivered = await asyncio.wait_for(
                self.notifier.send(owner.email, message.subject, message.body),
                timeout=self.notify_timeout,
            )
        except asyncio.TimeoutError:
            delivered = False
            self._warn(outcome, DependencyError("notify_timeout", step="notify"))
        except Exception as exc:  # notifier backends raise arbitrary transport errors
            delivered = False
            self._warn(outcome, DependencyError(f"notify_failed: {exc}", step="notify"))
        else:
            if not delivered:
                self._warn(outcome, DependencyError("notify_failed", step="notify"))
        obs_metrics.inc_notification(message.template, delivered)
        outcome.notified = delivered
        logger.info(
            "owner notification",
            extra={
                "resource_id": str(resource.id),
                "recipient": mask_email(owner.email),
                "template": message.template,
                "delivered": delivered,
            },
        )
