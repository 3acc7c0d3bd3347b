"""Lightweight service container shared by resource modules."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import asyncpg

from fdrs.obs.logging import mask_email
from fdrs.resources.domain.blobs import BlobStore
from fdrs.resources.domain.engagement import EngagementService
from fdrs.resources.domain.moderation import ModerationEngine, UploadPolicy
from fdrs.resources.domain.notifier import Notifier
from fdrs.resources.domain.profile import ProfileService
from fdrs.resources.domain.queries import QueryService
from fdrs.resources.domain.repository import InMemoryResourceRepository, ResourceRepository
from fdrs.resources.infra.blob_store import LocalBlobStore
from fdrs.resources.infra.mailer import MailerConfig, SmtpNotifier
from fdrs.resources.infra.postgres_repo import PostgresResourceRepository
from fdrs.settings import settings

logger = logging.getLogger(__name__)


class LoggingNotifier:
	"""Notifier used when no SMTP relay is wired; logs the message and succeeds."""

	async def send(self, recipient: str, subject: str, body: str) -> bool:
		logger.info("notification captured", extra={"subject": subject, "recipient": mask_email(recipient)})
		return True


def _upload_policy() -> UploadPolicy:
	return UploadPolicy(
		max_document_bytes=settings.max_document_bytes,
		max_cover_bytes=settings.max_cover_bytes,
		document_types=tuple(settings.document_mime_types),
		cover_types=tuple(settings.cover_mime_types),
	)


_repository: ResourceRepository = InMemoryResourceRepository()
_blobs: BlobStore = LocalBlobStore(settings.upload_dir)
_notifier: Notifier = LoggingNotifier()
_notify_timeout: float = settings.notify_timeout_seconds
_uploads: UploadPolicy = _upload_policy()
_engine: ModerationEngine
_queries: QueryService
_profiles: ProfileService
_engagement: EngagementService


def _rebuild() -> None:
	global _engine, _queries, _profiles, _engagement
	_engine = ModerationEngine(
		repository=_repository,
		blobs=_blobs,
		notifier=_notifier,
		notify_timeout=_notify_timeout,
		uploads=_uploads,
	)
	_queries = QueryService(repository=_repository, blobs=_blobs)
	_profiles = ProfileService(repository=_repository)
	_engagement = EngagementService(repository=_repository)


_rebuild()


def configure(
	*,
	repository: Optional[ResourceRepository] = None,
	blobs: Optional[BlobStore] = None,
	notifier: Optional[Notifier] = None,
	notify_timeout: Optional[float] = None,
	uploads: Optional[UploadPolicy] = None,
) -> None:
	global _repository, _blobs, _notifier, _notify_timeout, _uploads
	if repository is not None:
		_repository = repository
	if blobs is not None:
		_blobs = blobs
	if notifier is not None:
		_notifier = notifier
	if notify_timeout is not None:
		_notify_timeout = notify_timeout
	if uploads is not None:
		_uploads = uploads
	_rebuild()


def configure_postgres(
	pool: asyncpg.Pool,
	*,
	upload_dir: Optional[Path] = None,
	mailer: Optional[MailerConfig] = None,
) -> None:
	"""Wire production collaborators: asyncpg repository, disk blobs and SMTP."""
	configure(
		repository=PostgresResourceRepository(pool),
		blobs=LocalBlobStore(upload_dir or settings.upload_dir),
		notifier=SmtpNotifier(mailer or MailerConfig.from_settings(settings)),
		notify_timeout=settings.notify_timeout_seconds,
		uploads=_upload_policy(),
	)


def get_repository() -> ResourceRepository:
	return _repository


def get_blob_store() -> BlobStore:
	return _blobs


def get_notifier() -> Notifier:
	return _notifier


def get_moderation_engine() -> ModerationEngine:
	return _engine


def get_query_service() -> QueryService:
	return _queries


def get_profile_service() -> ProfileService:
	return _profiles


def get_engagement_service() -> EngagementService:
	return _engagement
