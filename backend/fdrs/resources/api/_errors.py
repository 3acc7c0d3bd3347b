"""Error translation helpers for the resources API."""

from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status

from fdrs.infra.auth import AuthenticatedUser
from fdrs.resources.domain import exceptions


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, exceptions.ResourceError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def caller_id(user: AuthenticatedUser) -> UUID:
	try:
		return UUID(str(user.id))
	except ValueError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
