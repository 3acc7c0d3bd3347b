"""Pydantic request and response models for the resources API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from fdrs.resources.domain.engagement import MAX_COMMENT_LENGTH
from fdrs.resources.domain.models import Comment, Favorite, Resource, ResourceState, User
from fdrs.resources.domain.moderation import ModerationOutcome
from fdrs.resources.domain.profile import FavoriteEntry, Profile
from fdrs.resources.domain.queries import ResourceDetail, SearchOutcome


class ResourceOut(BaseModel):
    id: UUID
    owner_id: UUID
    owner_username: Optional[str] = None
    faculty_id: UUID
    faculty_name: Optional[str] = None
    title: str
    author_first_name: str
    author_last_name: str
    description: str
    related_link: Optional[str] = None
    file_size: int
    state: ResourceState
    is_authorized: bool
    created_at: datetime

    @classmethod
    def from_model(cls, resource: Resource) -> "ResourceOut":
        return cls(
            id=resource.id,
            owner_id=resource.owner_id,
            owner_username=resource.owner_username,
            faculty_id=resource.faculty_id,
            faculty_name=resource.faculty_name,
            title=resource.title,
            author_first_name=resource.author_first_name,
            author_last_name=resource.author_last_name,
            description=resource.description,
            related_link=resource.related_link,
            file_size=resource.file_size,
            state=resource.state,
            is_authorized=resource.is_authorized,
            created_at=resource.created_at,
        )


class ResourceListOut(BaseModel):
    items: list[ResourceOut]
    total: int

    @classmethod
    def from_models(cls, resources) -> "ResourceListOut":
        items = [ResourceOut.from_model(resource) for resource in resources]
        return cls(items=items, total=len(items))


class CommentIn(BaseModel):
    body: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)


class CommentOut(BaseModel):
    id: UUID
    user_id: UUID
    username: Optional[str] = None
    resource_id: UUID
    body: str
    created_at: datetime

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentOut":
        return cls(
            id=comment.id,
            user_id=comment.user_id,
            username=comment.username,
            resource_id=comment.resource_id,
            body=comment.body,
            created_at=comment.created_at,
        )


class ResourceDetailOut(BaseModel):
    resource: ResourceOut
    comments: list[CommentOut]
    comment_count: int

    @classmethod
    def from_model(cls, detail: ResourceDetail) -> "ResourceDetailOut":
        return cls(
            resource=ResourceOut.from_model(detail.resource),
            comments=[CommentOut.from_model(comment) for comment in detail.comments],
            comment_count=detail.comment_count,
        )


class SearchOut(BaseModel):
    term: str
    outcome: Literal["match", "no_match"]
    items: list[ResourceOut]

    @classmethod
    def from_model(cls, outcome: SearchOutcome) -> "SearchOut":
        return cls(
            term=outcome.term,
            outcome=outcome.outcome,
            items=[ResourceOut.from_model(resource) for resource in outcome.results],
        )


class WarningOut(BaseModel):
    step: str
    detail: str


class ModerationOutcomeOut(BaseModel):
    resource: ResourceOut
    transition: str
    state: ResourceState
    status: Literal["complete", "partial"]
    favorites_deleted: int
    comments_deleted: int
    notified: bool
    warnings: list[WarningOut]

    @classmethod
    def from_model(cls, outcome: ModerationOutcome) -> "ModerationOutcomeOut":
        return cls(
            resource=ResourceOut.from_model(outcome.resource),
            transition=outcome.transition,
            state=outcome.state,
            status=outcome.status,
            favorites_deleted=outcome.favorites_deleted,
            comments_deleted=outcome.comments_deleted,
            notified=outcome.notified,
            warnings=[WarningOut(step=warning.step, detail=warning.detail) for warning in outcome.warnings],
        )


class FavoriteOut(BaseModel):
    id: UUID
    resource_id: UUID
    created_at: datetime

    @classmethod
    def from_model(cls, favorite: Favorite) -> "FavoriteOut":
        return cls(id=favorite.id, resource_id=favorite.resource_id, created_at=favorite.created_at)


class FavoriteEntryOut(BaseModel):
    favorite: FavoriteOut
    resource: ResourceOut

    @classmethod
    def from_model(cls, entry: FavoriteEntry) -> "FavoriteEntryOut":
        return cls(favorite=FavoriteOut.from_model(entry.favorite), resource=ResourceOut.from_model(entry.resource))


class UserOut(BaseModel):
    id: UUID
    email: str
    username: str
    is_admin: bool

    @classmethod
    def from_model(cls, user: User) -> "UserOut":
        return cls(id=user.id, email=user.email, username=user.username, is_admin=user.is_admin)


class ProfileOut(BaseModel):
    user: UserOut
    resources: list[ResourceOut]
    favorites: list[FavoriteEntryOut]

    @classmethod
    def from_model(cls, profile: Profile) -> "ProfileOut":
        return cls(
            user=UserOut.from_model(profile.user),
            resources=[ResourceOut.from_model(resource) for resource in profile.resources],
            favorites=[FavoriteEntryOut.from_model(entry) for entry in profile.favorites],
        )


class ProfileUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    email: Optional[EmailStr] = None
