"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary

REQUEST_COUNTER = Counter(
	"fdrs_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"fdrs_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

RESOURCE_TRANSITIONS_TOTAL = Counter(
	"fdrs_resource_transitions_total",
	"Resource lifecycle transitions",
	["transition"],
)

RESOURCE_CLEANUP_WARNINGS = Counter(
	"fdrs_resource_cleanup_warnings_total",
	"Best-effort side effects that failed after a committed mutation",
	["step"],
)

RESOURCE_CASCADE_DELETED = Counter(
	"fdrs_resource_cascade_deleted_total",
	"Dependent records removed together with a resource",
	["kind"],
)

NOTIFICATIONS_TOTAL = Counter(
	"fdrs_notifications_total",
	"Owner notifications by template and outcome",
	["template", "outcome"],
)

UPLOAD_BYTES = Summary(
	"fdrs_upload_bytes",
	"Size of stored blobs",
	["kind"],
)

SEARCH_QUERIES = Counter(
	"fdrs_search_queries_total",
	"Resource searches by outcome",
	["outcome"],
)

POSTGRES_UP = Gauge("fdrs_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("fdrs_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_transition(transition: str) -> None:
	RESOURCE_TRANSITIONS_TOTAL.labels(transition=transition).inc()


def inc_cleanup_warning(step: str) -> None:
	RESOURCE_CLEANUP_WARNINGS.labels(step=step).inc()


def inc_cascade(favorites: int, comments: int) -> None:
	if favorites:
		RESOURCE_CASCADE_DELETED.labels(kind="favorite").inc(favorites)
	if comments:
		RESOURCE_CASCADE_DELETED.labels(kind="comment").inc(comments)


def inc_notification(template: str, ok: bool) -> None:
	NOTIFICATIONS_TOTAL.labels(template=template, outcome="sent" if ok else "failed").inc()


def observe_upload(kind: str, size_bytes: int) -> None:
	UPLOAD_BYTES.labels(kind=kind).observe(size_bytes)


def inc_search(outcome: str) -> None:
	SEARCH_QUERIES.labels(outcome=outcome).inc()


def mark_postgres(up: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if up else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
