"""Moderation queue endpoints for administrators."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from fdrs.infra.auth import AuthenticatedUser, get_admin_user
from fdrs.resources import schemas
from fdrs.resources.api._errors import to_http_error
from fdrs.resources.domain import exceptions
from fdrs.resources.domain.container import get_moderation_engine, get_query_service

router = APIRouter(prefix="/api/v1/admin/resources", tags=["resources-admin"])


@router.get("/pending", response_model=schemas.ResourceListOut)
async def list_pending(admin: AuthenticatedUser = Depends(get_admin_user)) -> schemas.ResourceListOut:
	try:
		resources = await get_query_service().list_pending(requester_is_admin=admin.is_admin)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ResourceListOut.from_models(resources)


@router.post("/{resource_id}/approve", response_model=schemas.ModerationOutcomeOut)
async def approve_resource(
	resource_id: UUID,
	admin: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ModerationOutcomeOut:
	try:
		outcome = await get_moderation_engine().approve(resource_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ModerationOutcomeOut.from_model(outcome)


@router.post("/{resource_id}/decline", response_model=schemas.ModerationOutcomeOut)
async def decline_resource(
	resource_id: UUID,
	admin: AuthenticatedUser = Depends(get_admin_user),
) -> schemas.ModerationOutcomeOut:
	try:
		outcome = await get_moderation_engine().decline(resource_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ModerationOutcomeOut.from_model(outcome)
