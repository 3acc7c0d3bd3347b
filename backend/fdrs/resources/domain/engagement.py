"""Favorites and comments on authorized resources."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fdrs.resources.domain.exceptions import NotFoundError, ValidationError
from fdrs.resources.domain.models import Comment, Favorite, Resource
from fdrs.resources.domain.repository import ResourceRepository

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


@dataclass
class EngagementService:
    repository: ResourceRepository

    async def _require_visible(self, resource_id: UUID) -> Resource:
        resource = await self.repository.get_resource(resource_id)
        if resource is None or not resource.is_authorized:
            raise NotFoundError("resource_not_found")
        return resource

    async def add_favorite(self, user_id: UUID, resource_id: UUID) -> Favorite:
        await self._require_visible(resource_id)
        favorite = await self.repository.add_favorite(user_id, resource_id)
        logger.info("favorite added", extra={"resource_id": str(resource_id)})
        return favorite

    async def remove_favorite(self, user_id: UUID, resource_id: UUID) -> None:
        if not await self.repository.remove_favorite(user_id, resource_id):
            raise NotFoundError("favorite_not_found")

    async def add_comment(self, user_id: UUID, resource_id: UUID, text: str) -> Comment:
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError("comment_required")
        if len(cleaned) > MAX_COMMENT_LENGTH:
            raise ValidationError("comment_too_long")
        await self._require_visible(resource_id)
        comment = await self.repository.add_comment(user_id, resource_id, cleaned)
        logger.info("comment added", extra={"resource_id": str(resource_id)})
        return comment
