"""Custom exceptions for the resource lifecycle."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ResourceError(Exception):
	"""Base class for resource related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "resource_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class ValidationError(ResourceError):
	"""Raised for malformed or missing input not caught by request schemas."""

	status_code = _HTTP_422
	detail = "validation_error"


class NotFoundError(ResourceError):
	"""Raised when a referenced entity does not exist."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(ResourceError):
	"""Raised when the caller lacks privilege for a mutation."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class ConflictError(ResourceError):
	"""Raised on uniqueness violations and illegal state transitions."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class UploadError(ResourceError):
	"""Raised when a blob is missing or cannot be persisted during submission."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "upload_failed"


class DependencyError(ResourceError):
	"""A best-effort side effect failed after the storage mutation committed.

	Never raised to API callers; collected on the operation outcome instead.
	"""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "dependency_failed"

	def __init__(self, detail: str | None = None, *, step: str = "unknown") -> None:
		super().__init__(detail)
		self.step = step
