"""User profile view: own resources, favorites and account field updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fdrs.resources.domain.exceptions import ConflictError, NotFoundError, ValidationError
from fdrs.resources.domain.models import Favorite, Resource, User
from fdrs.resources.domain.repository import ResourceRepository

logger = logging.getLogger(__name__)

_EMAIL = TypeAdapter(EmailStr)


@dataclass(slots=True)
class FavoriteEntry:
    favorite: Favorite
    resource: Resource


@dataclass(slots=True)
class Profile:
    user: User
    resources: Sequence[Resource]
    favorites: Sequence[FavoriteEntry]


@dataclass
class ProfileService:
    repository: ResourceRepository

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.repository.get_user(user_id)
        if user is None:
            raise NotFoundError("user_not_found")
        return user

    async def profile(self, user_id: UUID) -> Profile:
        user = await self._require_user(user_id)
        # Owners see their own pending submissions too.
        resources = await self.repository.list_resources(owner_id=user_id, order_by="created_at")
        entries: list[FavoriteEntry] = []
        for favorite in await self.repository.list_favorites(user_id=user_id):
            resource = await self.repository.get_resource(favorite.resource_id)
            if resource is not None and resource.is_authorized:
                entries.append(FavoriteEntry(favorite=favorite, resource=resource))
        return Profile(user=user, resources=resources, favorites=entries)

    async def update_profile(
        self,
        user_id: UUID,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        await self._require_user(user_id)
        if username is not None:
            username = username.strip()
            if not username:
                raise ValidationError("username_required")
        if email is not None:
            try:
                email = _EMAIL.validate_python(email.strip()).lower()
            except PydanticValidationError as exc:
                raise ValidationError("email_invalid") from exc
        if username is None and email is None:
            raise ValidationError("nothing_to_update")
        try:
            user = await self.repository.update_user(user_id, username=username, email=email)
        except ConflictError:
            logger.info("profile update rejected", extra={"user_id": str(user_id)})
            raise
        logger.info("profile updated", extra={"user_id": str(user_id)})
        return user

