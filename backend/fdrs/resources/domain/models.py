"""Domain models for shared resources and their dependents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceState(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    REMOVED = "removed"


class BlobKind(str, Enum):
    DOCUMENT = "document"
    COVER = "cover"


@dataclass(slots=True)
class Faculty:
    id: UUID
    name: str


@dataclass(slots=True)
class User:
    id: UUID
    email: str
    username: str
    is_admin: bool = False


@dataclass(slots=True)
class ResourceMetadata:
    """Submitter-provided fields, already trimmed by the caller or the engine."""

    title: str
    author_first_name: str
    author_last_name: str
    description: str
    related_link: Optional[str] = None


@dataclass(slots=True)
class Resource:
    id: UUID
    owner_id: UUID
    faculty_id: UUID
    title: str
    author_first_name: str
    author_last_name: str
    description: str
    related_link: Optional[str]
    file_path: str
    file_size: int
    cover_path: str
    is_authorized: bool = False
    created_at: datetime = field(default_factory=utcnow)
    # Read-side joins; unset on rows built before they are stored.
    faculty_name: Optional[str] = None
    owner_username: Optional[str] = None

    @property
    def state(self) -> ResourceState:
        return ResourceState.AUTHORIZED if self.is_authorized else ResourceState.PENDING

    @property
    def author_full_name(self) -> str:
        return f"{self.author_first_name} {self.author_last_name}"

    def blob_reference(self, kind: BlobKind) -> str:
        return self.file_path if kind is BlobKind.DOCUMENT else self.cover_path

    def matches(self, term: str) -> bool:
        """Case-insensitive literal substring match on title or author full name."""
        needle = term.lower()
        return needle in self.title.lower() or needle in self.author_full_name.lower()


@dataclass(slots=True)
class Favorite:
    id: UUID
    user_id: UUID
    resource_id: UUID
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Comment:
    id: UUID
    user_id: UUID
    resource_id: UUID
    body: str
    created_at: datetime = field(default_factory=utcnow)
    username: Optional[str] = None


@dataclass(slots=True)
class CascadeResult:
    """What a cascading delete removed from storage in one transaction."""

    resource: Resource
    favorites_deleted: int = 0
    comments_deleted: int = 0
