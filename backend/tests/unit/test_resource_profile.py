from uuid import uuid4

import pytest

from fdrs.resources.domain.engagement import EngagementService
from fdrs.resources.domain.exceptions import ConflictError, NotFoundError, ValidationError
from fdrs.resources.domain.profile import ProfileService


@pytest.fixture
def profiles(repository) -> ProfileService:
	return ProfileService(repository=repository)


@pytest.fixture
def engagement(repository) -> EngagementService:
	return EngagementService(repository=repository)


@pytest.mark.asyncio
async def test_profile_lists_own_resources_and_visible_favorites(profiles, engagement, engine, submit, owner, admin):
	mine_pending = await submit("My Draft")
	published = await submit("Published Work", owner_id=admin.id)
	await engagement.add_favorite(owner.id, published.id)

	profile = await profiles.profile(owner.id)

	assert profile.user.id == owner.id
	assert [item.id for item in profile.resources] == [mine_pending.id]
	assert [entry.resource.id for entry in profile.favorites] == [published.id]


@pytest.mark.asyncio
async def test_profile_unknown_user(profiles):
	with pytest.raises(NotFoundError):
		await profiles.profile(uuid4())


@pytest.mark.asyncio
async def test_update_profile_changes_fields(profiles, owner):
	user = await profiles.update_profile(owner.id, username="  renamed ", email="New@Uni.Example")

	assert user.username == "renamed"
	assert user.email == "new@uni.example"


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_username_and_email(profiles, owner, stranger):
	with pytest.raises(ConflictError) as exc:
		await profiles.update_profile(owner.id, username=stranger.username)
	assert exc.value.detail == "username_exists"

	with pytest.raises(ConflictError) as exc:
		await profiles.update_profile(owner.id, email=stranger.email)
	assert exc.value.detail == "email_exists"


@pytest.mark.asyncio
async def test_update_profile_validation(profiles, owner):
	with pytest.raises(ValidationError):
		await profiles.update_profile(owner.id)
	with pytest.raises(ValidationError):
		await profiles.update_profile(owner.id, email="not-an-email")
	with pytest.raises(ValidationError) as exc:
		await profiles.update_profile(owner.id, email="a@b..c")
	assert exc.value.detail == "email_invalid"
	assert owner.email == "owner@uni.example"
	with pytest.raises(ValidationError):
		await profiles.update_profile(owner.id, username="   ")


@pytest.mark.asyncio
async def test_favorite_once_per_user(engagement, engine, submit, stranger):
	resource = await submit("Bookmarked")
	await engine.approve(resource.id)

	await engagement.add_favorite(stranger.id, resource.id)
	with pytest.raises(ConflictError):
		await engagement.add_favorite(stranger.id, resource.id)

	await engagement.remove_favorite(stranger.id, resource.id)
	with pytest.raises(NotFoundError):
		await engagement.remove_favorite(stranger.id, resource.id)


@pytest.mark.asyncio
async def test_pending_resources_cannot_be_favorited_or_commented(engagement, submit, stranger):
	resource = await submit("Hidden")

	with pytest.raises(NotFoundError):
		await engagement.add_favorite(stranger.id, resource.id)
	with pytest.raises(NotFoundError):
		await engagement.add_comment(stranger.id, resource.id, "hello")


@pytest.mark.asyncio
async def test_comment_is_trimmed_and_required(engagement, engine, submit, stranger):
	resource = await submit("Open")
	await engine.approve(resource.id)

	comment = await engagement.add_comment(stranger.id, resource.id, "  great notes  ")
	assert comment.body == "great notes"

	with pytest.raises(ValidationError):
		await engagement.add_comment(stranger.id, resource.id, "  ")
