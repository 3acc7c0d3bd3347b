import asyncio
import sys
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from fdrs.main import app
from fdrs.resources.domain import container
from fdrs.resources.domain.models import ResourceMetadata
from fdrs.resources.domain.moderation import BlobUpload, ModerationEngine, UploadPolicy
from fdrs.resources.domain.repository import InMemoryResourceRepository
from fdrs.resources.infra.blob_store import LocalBlobStore
from fdrs.settings import settings

PDF_BYTES = b"%PDF-1.4\n% test document\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class RecordingNotifier:
	"""Captures messages; can be told to fail, raise or hang."""

	def __init__(self, *, ok: bool = True, error: Optional[Exception] = None, delay: float = 0.0) -> None:
		self.ok = ok
		self.error = error
		self.delay = delay
		self.sent: list[tuple[str, str, str]] = []

	async def send(self, recipient: str, subject: str, body: str) -> bool:
		if self.delay:
			await asyncio.sleep(self.delay)
		if self.error is not None:
			raise self.error
		if self.ok:
			self.sent.append((recipient, subject, body))
		return self.ok


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate via X-User-Id/X-User-Roles headers, which are only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture
def repository() -> InMemoryResourceRepository:
	return InMemoryResourceRepository()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
	return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture
def notifier() -> RecordingNotifier:
	return RecordingNotifier()


@pytest.fixture
def make_notifier():
	return RecordingNotifier


@pytest.fixture
def engine(repository, blob_store, notifier) -> ModerationEngine:
	return ModerationEngine(repository=repository, blobs=blob_store, notifier=notifier, notify_timeout=0.5)


@pytest.fixture(autouse=True)
def resources_container(repository, blob_store, notifier):
	original = (container.get_repository(), container.get_blob_store(), container.get_notifier())
	original_uploads = container.get_moderation_engine().uploads
	container.configure(
		repository=repository,
		blobs=blob_store,
		notifier=notifier,
		notify_timeout=0.5,
		uploads=UploadPolicy(),
	)
	try:
		yield
	finally:
		container.configure(
			repository=original[0],
			blobs=original[1],
			notifier=original[2],
			notify_timeout=settings.notify_timeout_seconds,
			uploads=original_uploads,
		)


@pytest.fixture
def faculty(repository):
	return repository.add_faculty("Computer Science")


@pytest.fixture
def owner(repository):
	return repository.add_user("owner@uni.example", "owner")


@pytest.fixture
def admin(repository):
	return repository.add_user("admin@uni.example", "admin", is_admin=True)


@pytest.fixture
def stranger(repository):
	return repository.add_user("stranger@uni.example", "stranger")


def _metadata(title: str, first: str = "Ada", last: str = "Lovelace") -> ResourceMetadata:
	return ResourceMetadata(
		title=title,
		author_first_name=first,
		author_last_name=last,
		description=f"Notes for {title}",
	)


@pytest.fixture
def submit(engine, faculty, owner):
	"""Factory submitting a resource with valid uploads; keyword overrides pass through."""

	async def _submit(title: str, **overrides):
		params = {
			"owner_id": owner.id,
			"faculty_id": faculty.id,
			"metadata": _metadata(title, overrides.pop("first", "Ada"), overrides.pop("last", "Lovelace")),
			"document": BlobUpload(PDF_BYTES, "notes.pdf", "application/pdf"),
			"cover": BlobUpload(PNG_BYTES, "cover.png", "image/png"),
		}
		params.update(overrides)
		return await engine.submit(**params)

	return _submit


@pytest.fixture
def make_metadata():
	return _metadata


@pytest.fixture
def auth_headers():
	"""Dev-mode identity headers for a seeded user."""

	def _headers(user, *, admin: bool = False) -> dict[str, str]:
		headers = {"X-User-Id": str(user.id)}
		if admin:
			headers["X-User-Roles"] = "admin"
		return headers

	return _headers


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
