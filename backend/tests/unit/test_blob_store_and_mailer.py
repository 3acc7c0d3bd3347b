import logging

import pytest
import aiosmtplib

from fdrs.obs.logging import mask_email
from fdrs.resources.domain.container import LoggingNotifier
from fdrs.resources.domain.exceptions import NotFoundError
from fdrs.resources.domain.models import BlobKind
from fdrs.resources.domain.notifier import approved_message, declined_message
from fdrs.resources.infra import mailer as mailer_module
from fdrs.resources.infra.blob_store import LocalBlobStore
from fdrs.resources.infra.mailer import MailerConfig, SmtpNotifier


@pytest.mark.asyncio
async def test_local_blob_store_roundtrip(tmp_path):
	store = LocalBlobStore(tmp_path)

	reference = await store.put(b"hello world", kind=BlobKind.DOCUMENT, suffix=".PDF")

	assert reference.startswith("documents/") and reference.endswith(".pdf")
	assert await store.exists(reference)
	chunks = [chunk async for chunk in store.stream(reference, chunk_size=4)]
	assert b"".join(chunks) == b"hello world"
	assert len(chunks) == 3

	assert await store.delete(reference) is True
	assert await store.delete(reference) is False
	assert not await store.exists(reference)


@pytest.mark.asyncio
async def test_local_blob_store_rejects_escaping_references(tmp_path):
	store = LocalBlobStore(tmp_path / "root")
	outside = tmp_path / "secret.txt"
	outside.write_text("nope")

	assert not await store.exists("../secret.txt")
	with pytest.raises(NotFoundError):
		await store.delete("../secret.txt")
	assert outside.exists()


def test_templates_share_subject_and_name_the_decision():
	approved = approved_message("Algorithms 101")
	declined = declined_message("Algorithms 101")

	assert approved.subject == declined.subject == "Resource Approval Status"
	assert approved.body.startswith("Your resource has been approved.")
	assert declined.body.startswith("Your resource has been declined.")
	assert "Algorithms 101" in approved.body


@pytest.mark.asyncio
async def test_smtp_notifier_builds_message_with_inline_logo(tmp_path):
	logo = tmp_path / "logo.png"
	logo.write_bytes(b"\x89PNG\r\n\x1a\n")
	notifier = SmtpNotifier(MailerConfig(host="smtp.test", port=25, from_email="portal@uni.example", logo_path=logo))

	message = await notifier.build_message("owner@uni.example", "Resource Approval Status", "Your resource has been approved.")

	assert message["To"] == "owner@uni.example"
	assert message["Subject"] == "Resource Approval Status"
	parts = list(message.walk())
	assert any(part.get("Content-ID") == "<logo>" for part in parts)


@pytest.mark.asyncio
async def test_smtp_notifier_reports_failure(monkeypatch):
	async def _boom(*args, **kwargs):
		raise aiosmtplib.SMTPException("relay refused")

	monkeypatch.setattr(mailer_module.aiosmtplib, "send", _boom)
	notifier = SmtpNotifier(MailerConfig(host="smtp.test", port=25, from_email="portal@uni.example"))

	assert await notifier.send("owner@uni.example", "s", "b") is False


@pytest.mark.asyncio
async def test_smtp_notifier_passes_explicit_config(monkeypatch):
	captured = {}

	async def _send(message, **kwargs):
		captured.update(kwargs)
		return ({}, "OK")

	monkeypatch.setattr(mailer_module.aiosmtplib, "send", _send)
	config = MailerConfig(
		host="smtp.test",
		port=587,
		from_email="portal@uni.example",
		username="mailer",
		password="pw",
		tls=True,
	)

	assert await SmtpNotifier(config).send("owner@uni.example", "s", "b") is True
	assert captured["hostname"] == "smtp.test"
	assert captured["start_tls"] is True
	assert captured["use_tls"] is False
	assert captured["username"] == "mailer"


@pytest.mark.asyncio
async def test_logging_notifier_keeps_no_history(caplog):
	notifier = LoggingNotifier()

	with caplog.at_level(logging.INFO, logger="fdrs.resources.domain.container"):
		for _ in range(3):
			assert await notifier.send("owner@uni.example", "Resource Approval Status", "body") is True

	records = [record for record in caplog.records if record.getMessage() == "notification captured"]
	assert len(records) == 3
	assert records[0].recipient == mask_email("owner@uni.example")
	assert not hasattr(notifier, "sent")
