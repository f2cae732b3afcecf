"""Error translation helpers for the ops API."""

from __future__ import annotations

from fastapi import HTTPException, status

from inventory_sync.domain import exceptions

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY

_STATUS_BY_KIND = {
	exceptions.ConfigurationError.kind: status.HTTP_500_INTERNAL_SERVER_ERROR,
	exceptions.IndexProvisioningError.kind: status.HTTP_502_BAD_GATEWAY,
	exceptions.StoreUnavailableError.kind: status.HTTP_503_SERVICE_UNAVAILABLE,
	exceptions.NotFoundError.kind: status.HTTP_404_NOT_FOUND,
	exceptions.ValidationError.kind: _HTTP_422,
	exceptions.EventDecodeError.kind: status.HTTP_400_BAD_REQUEST,
}


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate synchronization errors to FastAPI HTTP errors."""
	if isinstance(exc, exceptions.SyncError):
		status_code = _STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
		return HTTPException(status_code=status_code, detail={"kind": exc.kind, "detail": exc.describe()})
	return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
