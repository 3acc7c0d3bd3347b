"""Resources package integration helpers exposed to the application."""

from fdrs.resources.api import router
from fdrs.resources.domain.container import configure, configure_postgres

__all__ = ["router", "configure", "configure_postgres"]
