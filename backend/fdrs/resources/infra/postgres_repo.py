"""PostgreSQL-backed repository for resources and their dependents."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence
from uuid import UUID, uuid4

import asyncpg

from fdrs.resources.domain.exceptions import ConflictError, NotFoundError
from fdrs.resources.domain.models import (
    CascadeResult,
    Comment,
    Faculty,
    Favorite,
    Resource,
    User,
)
from fdrs.resources.domain.repository import ResourceOrder, ResourceRepository

_RESOURCE_COLUMNS = """
    id, owner_id, faculty_id, title, author_first_name, author_last_name, description,
    related_link, file_path, file_size, cover_path, is_authorized, created_at
"""

# Reads join the faculty name and owner username; "r" is the resources row or CTE.
_RESOURCE_SELECT = """
    r.id, r.owner_id, r.faculty_id, r.title, r.author_first_name, r.author_last_name,
    r.description, r.related_link, r.file_path, r.file_size, r.cover_path, r.is_authorized,
    r.created_at, f.name AS faculty_name, u.username AS owner_username
"""

_RESOURCE_JOINS = """
    JOIN faculties f ON f.id = r.faculty_id
    JOIN users u ON u.id = r.owner_id
"""

_COMMENT_SELECT = """
    c.id, c.user_id, c.resource_id, c.body, c.created_at, u.username
"""

_ORDER_SQL = {
    "title": "r.title ASC, r.id ASC",
    "created_at": "r.created_at ASC, r.id ASC",
}

_USER_CONFLICTS = {
    "users_username_key": "username_exists",
    "users_email_key": "email_exists",
}


def _resource_from_record(record: asyncpg.Record) -> Resource:
    return Resource(
        id=record["id"],
        owner_id=record["owner_id"],
        faculty_id=record["faculty_id"],
        title=record["title"],
        author_first_name=record["author_first_name"],
        author_last_name=record["author_last_name"],
        description=record["description"],
        related_link=record["related_link"],
        file_path=record["file_path"],
        file_size=record["file_size"],
        cover_path=record["cover_path"],
        is_authorized=record["is_authorized"],
        created_at=record["created_at"],
        faculty_name=record.get("faculty_name"),
        owner_username=record.get("owner_username"),
    )


def _user_from_record(record: asyncpg.Record) -> User:
    return User(
        id=record["id"],
        email=record["email"],
        username=record["username"],
        is_admin=record["is_admin"],
    )


def _affected(status: str) -> int:
    # asyncpg returns command tags such as "DELETE 3".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


class PostgresResourceRepository(ResourceRepository):
    """Persists resources using asyncpg."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_faculty(self, faculty_id: UUID) -> Faculty | None:
        record = await self.pool.fetchrow("SELECT id, name FROM faculties WHERE id = $1", faculty_id)
        if record is None:
            return None
        return Faculty(id=record["id"], name=record["name"])

    async def get_user(self, user_id: UUID) -> User | None:
        record = await self.pool.fetchrow(
            "SELECT id, email, username, is_admin FROM users WHERE id = $1",
            user_id,
        )
        return _user_from_record(record) if record else None

    async def update_user(
        self,
        user_id: UUID,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        query = """
        UPDATE users
        SET username = COALESCE($2, username),
            email = COALESCE($3, email)
        WHERE id = $1
        RETURNING id, email, username, is_admin
        """
        try:
            record = await self.pool.fetchrow(query, user_id, username, email)
        except asyncpg.UniqueViolationError as exc:
            constraint = getattr(exc, "constraint_name", None) or ""
            raise ConflictError(_USER_CONFLICTS.get(constraint, "user_exists")) from exc
        if record is None:
            raise NotFoundError("user_not_found")
        return _user_from_record(record)

    async def title_exists(self, title: str) -> bool:
        row = await self.pool.fetchrow("SELECT 1 FROM resources WHERE title = $1 LIMIT 1", title)
        return row is not None

    async def create_resource(self, resource: Resource) -> Resource:
        query = f"""
        WITH r AS (
            INSERT INTO resources (
                id, owner_id, faculty_id, title, author_first_name, author_last_name, description,
                related_link, file_path, file_size, cover_path, is_authorized, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            RETURNING {_RESOURCE_COLUMNS}
        )
        SELECT {_RESOURCE_SELECT} FROM r {_RESOURCE_JOINS}
        """
        try:
            record = await self.pool.fetchrow(
                query,
                resource.id,
                resource.owner_id,
                resource.faculty_id,
                resource.title,
                resource.author_first_name,
                resource.author_last_name,
                resource.description,
                resource.related_link,
                resource.file_path,
                resource.file_size,
                resource.cover_path,
                resource.is_authorized,
                resource.created_at,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError("title_exists") from exc
        except asyncpg.ForeignKeyViolationError as exc:
            raise NotFoundError("faculty_or_owner_not_found") from exc
        assert record is not None
        return _resource_from_record(record)

    async def get_resource(self, resource_id: UUID) -> Resource | None:
        record = await self.pool.fetchrow(
            f"SELECT {_RESOURCE_SELECT} FROM resources r {_RESOURCE_JOINS} WHERE r.id = $1",
            resource_id,
        )
        return _resource_from_record(record) if record else None

    async def list_resources(
        self,
        *,
        faculty_id: Optional[UUID] = None,
        owner_id: Optional[UUID] = None,
        authorized: Optional[bool] = None,
        term: Optional[str] = None,
        order_by: ResourceOrder = "title",
    ) -> Sequence[Resource]:
        clauses: List[str] = []
        params: List[Any] = []
        if faculty_id is not None:
            params.append(faculty_id)
            clauses.append(f"r.faculty_id = ${len(params)}")
        if owner_id is not None:
            params.append(owner_id)
            clauses.append(f"r.owner_id = ${len(params)}")
        if authorized is not None:
            params.append(authorized)
            clauses.append(f"r.is_authorized = ${len(params)}")
        if term is not None:
            # strpos keeps the match literal; LIKE would treat % and _ as wildcards.
            params.append(term.lower())
            idx = len(params)
            clauses.append(
                f"(strpos(lower(r.title), ${idx}) > 0"
                f" OR strpos(lower(r.author_first_name || ' ' || r.author_last_name), ${idx}) > 0)"
            )
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = (
            f"SELECT {_RESOURCE_SELECT} FROM resources r {_RESOURCE_JOINS} "
            f"{where} ORDER BY {_ORDER_SQL[order_by]}"
        )
        records = await self.pool.fetch(query, *params)
        return [_resource_from_record(record) for record in records]

    async def approve_resource(self, resource_id: UUID) -> Resource | None:
        record = await self.pool.fetchrow(
            f"""
            WITH r AS (
                UPDATE resources SET is_authorized = TRUE
                WHERE id = $1 AND is_authorized = FALSE
                RETURNING {_RESOURCE_COLUMNS}
            )
            SELECT {_RESOURCE_SELECT} FROM r {_RESOURCE_JOINS}
            """,
            resource_id,
        )
        return _resource_from_record(record) if record else None

    async def delete_resource_cascade(
        self,
        resource_id: UUID,
        *,
        only_pending: bool = False,
    ) -> CascadeResult | None:
        pending_clause = " AND r.is_authorized = FALSE" if only_pending else ""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                locked = await conn.fetchrow(
                    f"""
                    SELECT r.id, f.name AS faculty_name, u.username AS owner_username
                    FROM resources r {_RESOURCE_JOINS}
                    WHERE r.id = $1{pending_clause}
                    FOR UPDATE OF r
                    """,
                    resource_id,
                )
                if locked is None:
                    return None
                favorites = await conn.execute(
                    "DELETE FROM resource_favorites WHERE resource_id = $1",
                    resource_id,
                )
                comments = await conn.execute(
                    "DELETE FROM resource_comments WHERE resource_id = $1",
                    resource_id,
                )
                record = await conn.fetchrow(
                    f"DELETE FROM resources WHERE id = $1 RETURNING {_RESOURCE_COLUMNS}",
                    resource_id,
                )
        assert record is not None
        resource = _resource_from_record(record)
        resource.faculty_name = locked["faculty_name"]
        resource.owner_username = locked["owner_username"]
        return CascadeResult(
            resource=resource,
            favorites_deleted=_affected(favorites),
            comments_deleted=_affected(comments),
        )

    async def add_favorite(self, user_id: UUID, resource_id: UUID) -> Favorite:
        query = """
        INSERT INTO resource_favorites (id, user_id, resource_id)
        VALUES ($1, $2, $3)
        RETURNING id, user_id, resource_id, created_at
        """
        try:
            record = await self.pool.fetchrow(query, uuid4(), user_id, resource_id)
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError("favorite_exists") from exc
        except asyncpg.ForeignKeyViolationError as exc:
            raise NotFoundError("resource_not_found") from exc
        assert record is not None
        return Favorite(
            id=record["id"],
            user_id=record["user_id"],
            resource_id=record["resource_id"],
            created_at=record["created_at"],
        )

    async def remove_favorite(self, user_id: UUID, resource_id: UUID) -> bool:
        status = await self.pool.execute(
            "DELETE FROM resource_favorites WHERE user_id = $1 AND resource_id = $2",
            user_id,
            resource_id,
        )
        return _affected(status) > 0

    async def list_favorites(
        self,
        *,
        user_id: Optional[UUID] = None,
        resource_id: Optional[UUID] = None,
    ) -> Sequence[Favorite]:
        records = await self.pool.fetch(
            """
            SELECT id, user_id, resource_id, created_at
            FROM resource_favorites
            WHERE ($1::uuid IS NULL OR user_id = $1)
              AND ($2::uuid IS NULL OR resource_id = $2)
            ORDER BY created_at ASC
            """,
            user_id,
            resource_id,
        )
        return [
            Favorite(
                id=record["id"],
                user_id=record["user_id"],
                resource_id=record["resource_id"],
                created_at=record["created_at"],
            )
            for record in records
        ]

    async def add_comment(self, user_id: UUID, resource_id: UUID, body: str) -> Comment:
        query = f"""
        WITH c AS (
            INSERT INTO resource_comments (id, user_id, resource_id, body)
            VALUES ($1, $2, $3, $4)
            RETURNING id, user_id, resource_id, body, created_at
        )
        SELECT {_COMMENT_SELECT} FROM c JOIN users u ON u.id = c.user_id
        """
        try:
            record = await self.pool.fetchrow(query, uuid4(), user_id, resource_id, body)
        except asyncpg.ForeignKeyViolationError as exc:
            raise NotFoundError("resource_not_found") from exc
        assert record is not None
        return _comment_from_record(record)

    async def list_comments(self, resource_id: UUID) -> Sequence[Comment]:
        records = await self.pool.fetch(
            f"""
            SELECT {_COMMENT_SELECT}
            FROM resource_comments c
            JOIN users u ON u.id = c.user_id
            WHERE c.resource_id = $1
            ORDER BY c.created_at ASC, c.id ASC
            """,
            resource_id,
        )
        return [_comment_from_record(record) for record in records]

    async def count_comments(self, resource_id: UUID) -> int:
        value = await self.pool.fetchval(
            "SELECT COUNT(*) FROM resource_comments WHERE resource_id = $1",
            resource_id,
        )
        return int(value or 0)


def _comment_from_record(record: asyncpg.Record) -> Comment:
    return Comment(
        id=record["id"],
        user_id=record["user_id"],
        resource_id=record["resource_id"],
        body=record["body"],
        created_at=record["created_at"],
        username=record.get("username"),
    )
