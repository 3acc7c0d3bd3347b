"""Resource submission, browsing, download and engagement endpoints."""

from __future__ import annotations

import mimetypes
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from fdrs.infra.auth import AuthenticatedUser, get_current_user
from fdrs.resources import schemas
from fdrs.resources.api._errors import caller_id, to_http_error
from fdrs.resources.domain import exceptions
from fdrs.resources.domain.container import (
	get_engagement_service,
	get_moderation_engine,
	get_query_service,
)
from fdrs.resources.domain.models import BlobKind, ResourceMetadata
from fdrs.resources.domain.moderation import BlobUpload

router = APIRouter(prefix="/api/v1", tags=["resources"])

_CHUNK_SIZE = 1024 * 1024


async def _read_upload(upload: Optional[UploadFile], kind: BlobKind, limit: int) -> Optional[BlobUpload]:
	"""Buffer an upload, stopping as soon as it exceeds ``limit`` bytes."""
	if upload is None:
		return None
	if upload.size is not None and upload.size > limit:
		raise exceptions.ValidationError(f"{kind.value}_too_large")
	buffer = bytearray()
	while chunk := await upload.read(_CHUNK_SIZE):
		buffer.extend(chunk)
		if len(buffer) > limit:
			raise exceptions.ValidationError(f"{kind.value}_too_large")
	return BlobUpload(data=bytes(buffer), filename=upload.filename or "", content_type=upload.content_type)


@router.post(
	"/faculties/{faculty_id}/resources",
	response_model=schemas.ResourceOut,
	status_code=status.HTTP_201_CREATED,
)
async def submit_resource(
	faculty_id: UUID,
	title: str = Form(default=""),
	firstname: str = Form(default=""),
	lastname: str = Form(default=""),
	description: str = Form(default=""),
	related_link: Optional[str] = Form(default=None),
	file: Optional[UploadFile] = File(default=None),
	img: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ResourceOut:
	metadata = ResourceMetadata(
		title=title,
		author_first_name=firstname,
		author_last_name=lastname,
		description=description,
		related_link=related_link,
	)
	engine = get_moderation_engine()
	try:
		document = await _read_upload(file, BlobKind.DOCUMENT, engine.uploads.limit_for(BlobKind.DOCUMENT))
		cover = await _read_upload(img, BlobKind.COVER, engine.uploads.limit_for(BlobKind.COVER))
		resource = await engine.submit(
			owner_id=caller_id(auth_user),
			faculty_id=faculty_id,
			metadata=metadata,
			document=document,
			cover=cover,
			privileged=auth_user.is_admin,
		)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ResourceOut.from_model(resource)


@router.get("/faculties/{faculty_id}/resources", response_model=schemas.ResourceListOut)
async def list_resources(
	faculty_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ResourceListOut:
	try:
		resources = await get_query_service().list_resources(faculty_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ResourceListOut.from_models(resources)


@router.get("/faculties/{faculty_id}/resources/search", response_model=schemas.SearchOut)
async def search_resources(
	faculty_id: UUID,
	term: str = Query(default=""),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.SearchOut:
	try:
		outcome = await get_query_service().search(faculty_id, term)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.SearchOut.from_model(outcome)


@router.get("/resources/{resource_id}", response_model=schemas.ResourceDetailOut)
async def resource_detail(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ResourceDetailOut:
	try:
		detail = await get_query_service().detail(resource_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ResourceDetailOut.from_model(detail)


async def _download(resource_id: UUID, kind: BlobKind, auth_user: AuthenticatedUser) -> StreamingResponse:
	try:
		download = await get_query_service().open_download(
			resource_id,
			kind,
			requester_id=caller_id(auth_user),
			requester_is_admin=auth_user.is_admin,
		)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	media_type, _ = mimetypes.guess_type(download.filename)
	return StreamingResponse(
		download.chunks,
		media_type=media_type or "application/octet-stream",
		headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
	)


@router.get("/resources/{resource_id}/file")
async def download_document(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StreamingResponse:
	return await _download(resource_id, BlobKind.DOCUMENT, auth_user)


@router.get("/resources/{resource_id}/cover")
async def download_cover(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StreamingResponse:
	return await _download(resource_id, BlobKind.COVER, auth_user)


@router.delete("/resources/{resource_id}", response_model=schemas.ModerationOutcomeOut)
async def delete_resource(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ModerationOutcomeOut:
	try:
		outcome = await get_moderation_engine().delete(
			resource_id,
			requester_id=caller_id(auth_user),
			requester_is_admin=auth_user.is_admin,
		)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.ModerationOutcomeOut.from_model(outcome)


@router.post(
	"/resources/{resource_id}/comments",
	response_model=schemas.CommentOut,
	status_code=status.HTTP_201_CREATED,
)
async def add_comment(
	resource_id: UUID,
	payload: schemas.CommentIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.CommentOut:
	try:
		comment = await get_engagement_service().add_comment(caller_id(auth_user), resource_id, payload.body)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.CommentOut.from_model(comment)


@router.put("/resources/{resource_id}/favorite", response_model=schemas.FavoriteOut)
async def add_favorite(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.FavoriteOut:
	try:
		favorite = await get_engagement_service().add_favorite(caller_id(auth_user), resource_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
	return schemas.FavoriteOut.from_model(favorite)


@router.delete("/resources/{resource_id}/favorite", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
	resource_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await get_engagement_service().remove_favorite(caller_id(auth_user), resource_id)
	except exceptions.ResourceError as exc:
		raise to_http_error(exc) from exc
