"""Operations endpoints providing health checks, metrics, and index controls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from inventory_sync.api._errors import to_http_error
from inventory_sync.api.deps import get_components, require_admin, require_metrics_access
from inventory_sync.bootstrap import Components
from inventory_sync.domain import exceptions

_LOG = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(components: Components = Depends(get_components)) -> Response:
	index = components.descriptor.name
	try:
		exists = await asyncio.wait_for(components.document_store.exists(index), timeout=1.0)
	except (exceptions.StoreUnavailableError, asyncio.TimeoutError) as exc:
		_LOG.warning("health.document_store_unavailable", extra={"index": index, "detail": str(exc)})
		return JSONResponse(
			{"status": "unavailable", "index": index},
			status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
		)
	return JSONResponse({"status": "ok", "index": index, "index_exists": exists})


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


@router.get("/ops/index")
async def index_status(
	_: None = Depends(require_admin),
	components: Components = Depends(get_components),
) -> dict[str, object]:
	try:
		current = await components.synchronizer.status()
	except exceptions.SyncError as exc:
		raise to_http_error(exc) from exc
	return asdict(current)


@router.post("/ops/index/ensure")
async def ensure_index(
	_: None = Depends(require_admin),
	components: Components = Depends(get_components),
) -> dict[str, object]:
	try:
		created = await components.synchronizer.ensure_index_exists()
	except exceptions.SyncError as exc:
		raise to_http_error(exc) from exc
	return {"index": components.descriptor.name, "created": created}


@router.post("/ops/reindex")
async def trigger_reindex(
	_: None = Depends(require_admin),
	components: Components = Depends(get_components),
) -> Response:
	summary = await components.refresh_processor.run()
	status_code = status.HTTP_200_OK if summary.ok else status.HTTP_502_BAD_GATEWAY
	return JSONResponse(content=summary.to_dict(), status_code=status_code)
