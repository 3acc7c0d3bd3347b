"""Profile endpoints: own submissions, favorites and account updates."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fdrs.infra.auth import AuthenticatedUser, get_current_user
from fdrs.resources import schemas
from fdrs.resources.api._errors import caller_id, to_http_error
from fdrs.resources.domain import exceptions
from fdrs.resources.domain.container import get_profile_service

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


@router.get("", response_model=schemas.ProfileOut)
async def get_profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> schemas.ProfileOut:
	try:
		profile = await get_profile_service().profile(caller_id(auth_user))
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ProfileOut.from_model(profile)


@router.patch("", response_model=schemas.UserOut)
async def update_profile(
	payload: schemas.ProfileUpdateIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.UserOut:
	try:
		user = await get_profile_service().update_profile(
			caller_id(auth_user),
			username=payload.username,
			email=payload.email,
		)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.UserOut.from_model(user)
