"""Storage contract for resources plus an in-memory implementation."""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, Optional, Protocol, Sequence
from uuid import UUID, uuid4

from fdrs.resources.domain.exceptions import ConflictError, NotFoundError
from fdrs.resources.domain.models import (
    CascadeResult,
    Comment,
    Faculty,
    Favorite,
    Resource,
    User,
    utcnow,
)

ResourceOrder = Literal["title", "created_at"]


class ResourceRepository(Protocol):
    """Persistence operations used by the moderation engine and query services.

    Implementations enforce storage-level uniqueness (resource title, user
    email and username, one favorite per user/resource pair) by raising
    ``ConflictError``. Business rules live in the services.
    """

    async def get_faculty(self, faculty_id: UUID) -> Faculty | None:
        ...

    async def get_user(self, user_id: UUID) -> User | None:
        ...

    async def update_user(
        self,
        user_id: UUID,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        ...

    async def title_exists(self, title: str) -> bool:
        ...

    async def create_resource(self, resource: Resource) -> Resource:
        ...

    async def get_resource(self, resource_id: UUID) -> Resource | None:
        ...

    async def list_resources(
        self,
        *,
        faculty_id: Optional[UUID] = None,
        owner_id: Optional[UUID] = None,
        authorized: Optional[bool] = None,
        term: Optional[str] = None,
        order_by: ResourceOrder = "title",
    ) -> Sequence[Resource]:
        ...

    async def approve_resource(self, resource_id: UUID) -> Resource | None:
        """Flip a pending resource to authorized; ``None`` when no pending row matched."""
        ...

    async def delete_resource_cascade(
        self,
        resource_id: UUID,
        *,
        only_pending: bool = False,
    ) -> CascadeResult | None:
        """Delete the resource with its favorites and comments atomically.

        Returns ``None`` when nothing matched (missing, or not pending while
        ``only_pending`` is set).
        """
        ...

    async def add_favorite(self, user_id: UUID, resource_id: UUID) -> Favorite:
        ...

    async def remove_favorite(self, user_id: UUID, resource_id: UUID) -> bool:
        ...

    async def list_favorites(
        self,
        *,
        user_id: Optional[UUID] = None,
        resource_id: Optional[UUID] = None,
    ) -> Sequence[Favorite]:
        ...

    async def add_comment(self, user_id: UUID, resource_id: UUID, body: str) -> Comment:
        ...

    async def list_comments(self, resource_id: UUID) -> Sequence[Comment]:
        ...

    async def count_comments(self, resource_id: UUID) -> int:
        ...


class InMemoryResourceRepository(ResourceRepository):
    """Simple repository implementation for development and tests."""

    def __init__(self) -> None:
        self.faculties: dict[UUID, Faculty] = {}
        self.users: dict[UUID, User] = {}
        self.resources: dict[UUID, Resource] = {}
        self.favorites: dict[UUID, Favorite] = {}
        self.comments: dict[UUID, Comment] = {}

    # Seeding helpers; faculties and users are owned by other services.

    def add_faculty(self, name: str, *, faculty_id: UUID | None = None) -> Faculty:
        faculty = Faculty(id=faculty_id or uuid4(), name=name)
        self.faculties[faculty.id] = faculty
        return faculty

    def add_user(
        self,
        email: str,
        username: str,
        *,
        is_admin: bool = False,
        user_id: UUID | None = None,
    ) -> User:
        user = User(id=user_id or uuid4(), email=email, username=username, is_admin=is_admin)
        self.users[user.id] = user
        return user

    def _joined(self, resource: Resource) -> Resource:
        faculty = self.faculties.get(resource.faculty_id)
        owner = self.users.get(resource.owner_id)
        resource.faculty_name = faculty.name if faculty else None
        resource.owner_username = owner.username if owner else None
        return resource

    def _with_author(self, comment: Comment) -> Comment:
        user = self.users.get(comment.user_id)
        comment.username = user.username if user else None
        return comment

    async def get_faculty(self, faculty_id: UUID) -> Faculty | None:
        return self.faculties.get(faculty_id)

    async def get_user(self, user_id: UUID) -> User | None:
        return self.users.get(user_id)

    async def update_user(
        self,
        user_id: UUID,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("user_not_found")
        for other in self.users.values():
            if other.id == user_id:
                continue
            if username is not None and other.username == username:
                raise ConflictError("username_exists")
            if email is not None and other.email == email:
                raise ConflictError("email_exists")
        updated = replace(
            user,
            username=username if username is not None else user.username,
            email=email if email is not None else user.email,
        )
        self.users[user_id] = updated
        return updated

    async def title_exists(self, title: str) -> bool:
        return any(item.title == title for item in self.resources.values())

    async def create_resource(self, resource: Resource) -> Resource:
        if any(item.title == resource.title for item in self.resources.values()):
            raise ConflictError("title_exists")
        self.resources[resource.id] = resource
        return self._joined(resource)

    async def get_resource(self, resource_id: UUID) -> Resource | None:
        resource = self.resources.get(resource_id)
        return self._joined(resource) if resource else None

    async def list_resources(
        self,
        *,
        faculty_id: Optional[UUID] = None,
        owner_id: Optional[UUID] = None,
        authorized: Optional[bool] = None,
        term: Optional[str] = None,
        order_by: ResourceOrder = "title",
    ) -> Sequence[Resource]:
        items = [
            self._joined(item)
            for item in self.resources.values()
            if (faculty_id is None or item.faculty_id == faculty_id)
            and (owner_id is None or item.owner_id == owner_id)
            and (authorized is None or item.is_authorized is authorized)
            and (term is None or item.matches(term))
        ]
        if order_by == "created_at":
            return sorted(items, key=lambda item: (item.created_at, str(item.id)))
        return sorted(items, key=lambda item: (item.title, str(item.id)))

    async def approve_resource(self, resource_id: UUID) -> Resource | None:
        resource = self.resources.get(resource_id)
        if resource is None or resource.is_authorized:
            return None
        resource.is_authorized = True
        return self._joined(resource)

    async def delete_resource_cascade(
        self,
        resource_id: UUID,
        *,
        only_pending: bool = False,
    ) -> CascadeResult | None:
        resource = self.resources.get(resource_id)
        if resource is None or (only_pending and resource.is_authorized):
            return None
        favorite_ids = [key for key, fav in self.favorites.items() if fav.resource_id == resource_id]
        comment_ids = [key for key, com in self.comments.items() if com.resource_id == resource_id]
        for key in favorite_ids:
            del self.favorites[key]
        for key in comment_ids:
            del self.comments[key]
        del self.resources[resource_id]
        return CascadeResult(
            resource=self._joined(resource),
            favorites_deleted=len(favorite_ids),
            comments_deleted=len(comment_ids),
        )

    async def add_favorite(self, user_id: UUID, resource_id: UUID) -> Favorite:
        if resource_id not in self.resources:
            raise NotFoundError("resource_not_found")
        for fav in self.favorites.values():
            if fav.user_id == user_id and fav.resource_id == resource_id:
                raise ConflictError("favorite_exists")
        favorite = Favorite(id=uuid4(), user_id=user_id, resource_id=resource_id, created_at=utcnow())
        self.favorites[favorite.id] = favorite
        return favorite

    async def remove_favorite(self, user_id: UUID, resource_id: UUID) -> bool:
        for key, fav in list(self.favorites.items()):
            if fav.user_id == user_id and fav.resource_id == resource_id:
                del self.favorites[key]
                return True
        return False

    async def list_favorites(
        self,
        *,
        user_id: Optional[UUID] = None,
        resource_id: Optional[UUID] = None,
    ) -> Sequence[Favorite]:
        items = [
            fav
            for fav in self.favorites.values()
            if (user_id is None or fav.user_id == user_id)
            and (resource_id is None or fav.resource_id == resource_id)
        ]
        return sorted(items, key=lambda fav: fav.created_at)

    async def add_comment(self, user_id: UUID, resource_id: UUID, body: str) -> Comment:
        if resource_id not in self.resources:
            raise NotFoundError("resource_not_found")
        comment = Comment(id=uuid4(), user_id=user_id, resource_id=resource_id, body=body, created_at=utcnow())
        self.comments[comment.id] = comment
        return self._with_author(comment)

    async def list_comments(self, resource_id: UUID) -> Sequence[Comment]:
        items = [com for com in self.comments.values() if com.resource_id == resource_id]
        return [self._with_author(com) for com in sorted(items, key=lambda com: com.created_at)]

    async def count_comments(self, resource_id: UUID) -> int:
        return sum(1 for com in self.comments.values() if com.resource_id == resource_id)
