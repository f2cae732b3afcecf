"""Central registry for Prometheus metrics used across the service."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"inventory_sync_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"inventory_sync_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

INDEX_WRITES = Counter(
	"inventory_sync_index_writes_total",
	"Single-document index writes by operation and result",
	["operation", "result"],
)

CHANGE_EVENTS = Counter(
	"inventory_sync_change_events_total",
	"Change events processed by operation and outcome",
	["operation", "result"],
)

REBUILD_DOCUMENTS = Counter(
	"inventory_sync_rebuild_documents_total",
	"Documents submitted by full rebuilds",
	["index", "result"],
)

BACKGROUND_RUNS = Counter(
	"inventory_sync_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"inventory_sync_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0, 300.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def record_index_write(operation: str, result: str) -> None:
	INDEX_WRITES.labels(operation=operation, result=result).inc()


def record_change_event(operation: str, result: str) -> None:
	CHANGE_EVENTS.labels(operation=operation, result=result).inc()


def record_rebuild_documents(index: str, *, written: int, failed: int) -> None:
	if written:
		REBUILD_DOCUMENTS.labels(index=index, result="ok").inc(written)
	if failed:
		REBUILD_DOCUMENTS.labels(index=index, result="error").inc(failed)


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)
