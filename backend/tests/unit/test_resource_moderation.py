import asyncio
from uuid import uuid4

import pytest

from fdrs.resources.domain.exceptions import (
	ConflictError,
	ForbiddenError,
	NotFoundError,
	UploadError,
	ValidationError,
)
from fdrs.resources.domain.models import BlobKind, ResourceMetadata, ResourceState
from fdrs.resources.domain.moderation import BlobUpload, ModerationEngine
from fdrs.resources.domain.repository import InMemoryResourceRepository


class FlakyBlobStore:
	"""Wraps a real store and fails selected operations."""

	def __init__(self, inner, *, fail_put_kind=None, fail_delete=False) -> None:
		self.inner = inner
		self.fail_put_kind = fail_put_kind
		self.fail_delete = fail_delete

	async def put(self, data, *, kind, suffix=""):
		if kind is self.fail_put_kind:
			raise OSError("disk full")
		return await self.inner.put(data, kind=kind, suffix=suffix)

	async def delete(self, reference):
		if self.fail_delete:
			raise OSError("permission denied")
		return await self.inner.delete(reference)

	async def exists(self, reference):
		return await self.inner.exists(reference)

	def stream(self, reference, *, chunk_size=64 * 1024):
		return self.inner.stream(reference, chunk_size=chunk_size)


class RacingRepository(InMemoryResourceRepository):
	"""Reports titles as free so the unique constraint is what rejects the insert."""

	async def title_exists(self, title: str) -> bool:
		return False


def _blob_files(blob_store):
	if not blob_store.root.exists():
		return []
	return sorted(path for path in blob_store.root.rglob("*") if path.is_file())


@pytest.mark.asyncio
async def test_submit_by_member_starts_pending(submit, blob_store):
	resource = await submit("Algorithms 101")

	assert resource.state is ResourceState.PENDING
	assert resource.file_size > 0
	assert await blob_store.exists(resource.file_path)
	assert await blob_store.exists(resource.cover_path)
	assert resource.file_path.startswith("documents/") and resource.file_path.endswith(".pdf")
	assert resource.cover_path.startswith("covers/")


@pytest.mark.asyncio
async def test_submit_by_admin_is_authorized(submit, admin):
	resource = await submit("Admin Notes", owner_id=admin.id)
	assert resource.is_authorized is True


@pytest.mark.asyncio
async def test_submit_privileged_flag_authorizes(submit):
	resource = await submit("Staff Notes", privileged=True)
	assert resource.state is ResourceState.AUTHORIZED


@pytest.mark.asyncio
async def test_submit_trims_and_rejects_blank_fields(submit, make_metadata):
	resource = await submit("  Padded Title  ")
	assert resource.title == "Padded Title"

	with pytest.raises(ValidationError) as exc:
		await submit("   ")
	assert exc.value.detail == "title_required"

	blank_description = ResourceMetadata(
		title="No Description",
		author_first_name="Ada",
		author_last_name="Lovelace",
		description="  ",
	)
	with pytest.raises(ValidationError):
		await submit("ignored", metadata=blank_description)


@pytest.mark.asyncio
@pytest.mark.parametrize("link", ["javascript:alert(1)", "http://", "ftp://example.org"])
async def test_submit_rejects_bad_related_link(submit, repository, link):
	metadata = ResourceMetadata(
		title="Linked",
		author_first_name="Ada",
		author_last_name="Lovelace",
		description="d",
		related_link=link,
	)
	with pytest.raises(ValidationError) as exc:
		await submit("ignored", metadata=metadata)
	assert exc.value.detail == "related_link_invalid"
	assert repository.resources == {}


@pytest.mark.asyncio
async def test_submit_unknown_faculty(submit, repository):
	with pytest.raises(NotFoundError):
		await submit("Orphan", faculty_id=uuid4())
	assert repository.resources == {}


@pytest.mark.asyncio
async def test_submit_duplicate_title_conflicts_without_writing_blobs(submit, blob_store):
	await submit("Algorithms 101")
	before = _blob_files(blob_store)

	with pytest.raises(ConflictError) as exc:
		await submit("Algorithms 101")

	assert exc.value.detail == "title_exists"
	assert _blob_files(blob_store) == before


@pytest.mark.asyncio
async def test_submit_missing_upload(submit, repository):
	with pytest.raises(UploadError) as exc:
		await submit("No Cover", cover=None)
	assert exc.value.detail == "cover_missing"

	with pytest.raises(UploadError):
		await submit("Empty Doc", document=BlobUpload(b"", "empty.pdf", "application/pdf"))
	assert repository.resources == {}


@pytest.mark.asyncio
async def test_submit_rejects_unsupported_document_type(submit):
	with pytest.raises(ValidationError) as exc:
		await submit("Word Doc", document=BlobUpload(b"data", "notes.docx", "application/msword"))
	assert exc.value.detail == "document_type_unsupported"


@pytest.mark.asyncio
async def test_blob_write_failure_leaves_no_record_and_no_stray_blob(repository, blob_store, notifier, faculty, owner, make_metadata):
	flaky = FlakyBlobStore(blob_store, fail_put_kind=BlobKind.COVER)
	engine = ModerationEngine(repository=repository, blobs=flaky, notifier=notifier)

	with pytest.raises(UploadError):
		await engine.submit(
			owner_id=owner.id,
			faculty_id=faculty.id,
			metadata=make_metadata("Doomed"),
			document=BlobUpload(b"%PDF", "a.pdf", "application/pdf"),
			cover=BlobUpload(b"png", "c.png", "image/png"),
		)

	assert repository.resources == {}
	assert _blob_files(blob_store) == []


@pytest.mark.asyncio
async def test_insert_conflict_removes_written_blobs(blob_store, notifier, make_metadata):
	repository = RacingRepository()
	faculty = repository.add_faculty("Physics")
	owner = repository.add_user("p@uni.example", "p")
	engine = ModerationEngine(repository=repository, blobs=blob_store, notifier=notifier)
	kwargs = dict(
		owner_id=owner.id,
		faculty_id=faculty.id,
		document=BlobUpload(b"%PDF", "a.pdf", "application/pdf"),
		cover=BlobUpload(b"png", "c.png", "image/png"),
	)
	await engine.submit(metadata=make_metadata("Quantum"), **kwargs)
	before = _blob_files(blob_store)

	with pytest.raises(ConflictError):
		await engine.submit(metadata=make_metadata("Quantum"), **kwargs)

	assert len(repository.resources) == 1
	assert _blob_files(blob_store) == before


@pytest.mark.asyncio
async def test_concurrent_submissions_of_same_title_yield_one_conflict(blob_store, notifier, make_metadata):
	repository = RacingRepository()
	faculty = repository.add_faculty("Maths")
	owner = repository.add_user("m@uni.example", "m")
	engine = ModerationEngine(repository=repository, blobs=blob_store, notifier=notifier)

	async def _attempt():
		return await engine.submit(
			owner_id=owner.id,
			faculty_id=faculty.id,
			metadata=make_metadata("Topology"),
			document=BlobUpload(b"%PDF", "a.pdf", "application/pdf"),
			cover=BlobUpload(b"png", "c.png", "image/png"),
		)

	results = await asyncio.gather(_attempt(), _attempt(), return_exceptions=True)

	assert sum(1 for item in results if isinstance(item, ConflictError)) == 1
	assert len(repository.resources) == 1
	assert len(_blob_files(blob_store)) == 2


@pytest.mark.asyncio
async def test_approve_authorizes_and_notifies_owner(engine, submit, notifier, owner):
	resource = await submit("Algorithms 101")

	outcome = await engine.approve(resource.id)

	assert outcome.resource.is_authorized is True
	assert outcome.status == "complete"
	assert outcome.state is ResourceState.AUTHORIZED
	assert outcome.notified is True
	recipient, subject, body = notifier.sent[-1]
	assert recipient == owner.email
	assert subject == "Resource Approval Status"
	assert "approved" in body


@pytest.mark.asyncio
async def test_approve_missing_resource(engine):
	with pytest.raises(NotFoundError):
		await engine.approve(uuid4())


@pytest.mark.asyncio
async def test_approve_twice_conflicts(engine, submit):
	resource = await submit("Once Only")
	await engine.approve(resource.id)

	with pytest.raises(ConflictError) as exc:
		await engine.approve(resource.id)
	assert exc.value.detail == "resource_not_pending"


@pytest.mark.asyncio
async def test_decline_after_approve_conflicts(engine, submit, repository):
	resource = await submit("Settled")
	await engine.approve(resource.id)

	with pytest.raises(ConflictError) as exc:
		await engine.decline(resource.id)

	assert exc.value.detail == "resource_not_pending"
	assert resource.id in repository.resources


@pytest.mark.asyncio
async def test_decline_cascades_dependents_and_blobs(engine, submit, repository, blob_store, notifier, stranger):
	resource = await submit("Data Structures")
	await repository.add_comment(stranger.id, resource.id, "first")
	await repository.add_comment(stranger.id, resource.id, "second")
	await repository.add_favorite(stranger.id, resource.id)

	outcome = await engine.decline(resource.id)

	assert outcome.status == "complete"
	assert outcome.state is ResourceState.REMOVED
	assert outcome.favorites_deleted == 1
	assert outcome.comments_deleted == 2
	assert repository.resources == {}
	assert repository.comments == {}
	assert repository.favorites == {}
	assert not await blob_store.exists(resource.file_path)
	assert not await blob_store.exists(resource.cover_path)
	assert "declined" in notifier.sent[-1][2]


@pytest.mark.asyncio
async def test_decline_missing_resource(engine):
	with pytest.raises(NotFoundError):
		await engine.decline(uuid4())


@pytest.mark.asyncio
async def test_delete_by_stranger_is_forbidden_and_untouched(engine, submit, repository, blob_store, stranger):
	resource = await submit("Private Notes")
	await repository.add_comment(stranger.id, resource.id, "nice")

	with pytest.raises(ForbiddenError):
		await engine.delete(resource.id, requester_id=stranger.id)

	assert resource.id in repository.resources
	assert len(repository.comments) == 1
	assert await blob_store.exists(resource.file_path)
	assert await blob_store.exists(resource.cover_path)


@pytest.mark.asyncio
async def test_owner_deletes_own_resource_without_notification(engine, submit, repository, notifier, owner):
	resource = await submit("Mine")

	outcome = await engine.delete(resource.id, requester_id=owner.id)

	assert outcome.transition == "delete"
	assert outcome.state is ResourceState.REMOVED
	assert outcome.notified is False
	assert repository.resources == {}
	assert notifier.sent == []


@pytest.mark.asyncio
async def test_admin_deletes_authorized_resource(engine, submit, repository, admin, stranger):
	resource = await submit("Published")
	await engine.approve(resource.id)
	await repository.add_favorite(stranger.id, resource.id)

	outcome = await engine.delete(resource.id, requester_id=admin.id, requester_is_admin=True)

	assert outcome.favorites_deleted == 1
	assert repository.favorites == {}


@pytest.mark.asyncio
async def test_notifier_failure_keeps_approval(repository, blob_store, submit, make_notifier):
	resource = await submit("Algorithms 101")
	failing = ModerationEngine(repository=repository, blobs=blob_store, notifier=make_notifier(ok=False))

	outcome = await failing.approve(resource.id)

	assert outcome.status == "partial"
	assert outcome.notified is False
	assert [warning.step for warning in outcome.warnings] == ["notify"]
	assert repository.resources[resource.id].is_authorized is True


@pytest.mark.asyncio
async def test_notifier_exception_and_timeout_become_warnings(repository, blob_store, submit, make_notifier):
	first = await submit("Raises")
	second = await submit("Hangs")
	raising = ModerationEngine(
		repository=repository,
		blobs=blob_store,
		notifier=make_notifier(error=ConnectionRefusedError("smtp down")),
	)
	hanging = ModerationEngine(
		repository=repository,
		blobs=blob_store,
		notifier=make_notifier(delay=1.0),
		notify_timeout=0.01,
	)

	raised = await raising.approve(first.id)
	timed_out = await hanging.approve(second.id)

	assert raised.status == "partial"
	assert timed_out.status == "partial"
	assert timed_out.warnings[0].detail == "notify_timeout"
	assert repository.resources[first.id].is_authorized
	assert repository.resources[second.id].is_authorized


@pytest.mark.asyncio
async def test_blob_cleanup_failure_is_partial_but_record_stays_deleted(repository, blob_store, notifier, submit, owner):
	resource = await submit("Sticky Files")
	engine = ModerationEngine(
		repository=repository,
		blobs=FlakyBlobStore(blob_store, fail_delete=True),
		notifier=notifier,
	)

	outcome = await engine.delete(resource.id, requester_id=owner.id)

	assert outcome.status == "partial"
	assert {warning.step for warning in outcome.warnings} == {"blob_document", "blob_cover"}
	assert resource.id not in repository.resources


@pytest.mark.asyncio
async def test_cleanup_tolerates_already_missing_blobs(engine, submit, blob_store, owner):
	resource = await submit("Half Gone")
	await blob_store.delete(resource.cover_path)

	outcome = await engine.delete(resource.id, requester_id=owner.id)

	assert outcome.status == "complete"
