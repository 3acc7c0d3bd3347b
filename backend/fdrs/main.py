"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fdrs.api import ops
from fdrs.api.errors import install_error_handlers
from fdrs.infra import postgres
from fdrs.obs import init as obs_init
from fdrs.resources import configure_postgres as configure_resources
from fdrs.resources import router as resources_router
from fdrs.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	use_postgres = settings.storage_backend == "postgres"
	if use_postgres:
		pool = await postgres.init_pool()
		configure_resources(pool)
	else:
		logger.warning("running with in-memory resource storage", extra={"backend": settings.storage_backend})
	settings.upload_dir.mkdir(parents=True, exist_ok=True)
	try:
		yield
	finally:
		if use_postgres:
			await postgres.close_pool()


app = FastAPI(title="FDRS Resource Sharing", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(ops.router, tags=["ops"])
app.include_router(resources_router)
