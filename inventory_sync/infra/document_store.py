"""Document store adapters wrapping the search engine."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError as ESNotFoundError, TransportError

from inventory_sync.domain import exceptions
from inventory_sync.domain.models import BulkItemResult, BulkOperation, BulkResult, WriteResult

_LOG = logging.getLogger(__name__)

_UNAVAILABLE_STATUSES = {429, 502, 503, 504}


class DocumentStore(Protocol):
	"""Operations the synchronizer needs from a search engine."""

	async def exists(self, index: str) -> bool:
		...

	async def create(self, index: str) -> WriteResult:
		...

	async def delete(self, index: str) -> WriteResult:
		...

	async def bulk_write(self, index: str, operations: Sequence[BulkOperation]) -> BulkResult:
		...

	async def get(self, index: str, document_id: str) -> dict[str, Any] | None:
		...

	async def put(self, index: str, document_id: str, document: dict[str, Any]) -> WriteResult:
		...

	async def delete_doc(self, index: str, document_id: str) -> WriteResult:
		...

	async def count(self, index: str) -> int:
		...

	async def close(self) -> None:
		...


def _diagnostic(exc: ApiError) -> str:
	status = getattr(getattr(exc, "meta", None), "status", None)
	return f"status={status} {exc.message}: {exc.body}"


def _body(response: Any) -> dict[str, Any]:
	return dict(getattr(response, "body", response) or {})


def _raise_if_unavailable(exc: ApiError) -> None:
	status = getattr(getattr(exc, "meta", None), "status", None)
	if status in _UNAVAILABLE_STATUSES:
		raise exceptions.StoreUnavailableError(_diagnostic(exc)) from exc


class ElasticsearchDocumentStore:
	"""Async adapter around the official Elasticsearch client.

	Transport failures and failed reads are raised as ``StoreUnavailableError``.
	Writes the cluster rejects come back as ``WriteResult(ok=False)`` carrying
	the cluster's diagnostic. Reads and deletes of missing documents are
	reported as not found.
	"""

	def __init__(
		self,
		*,
		client: AsyncElasticsearch | None = None,
		url: str = "http://localhost:9200",
		request_timeout: float = 30.0,
		refresh: bool | str = False,
	) -> None:
		self._client = client or AsyncElasticsearch(hosts=[url], request_timeout=request_timeout)
		self._refresh = refresh

	async def exists(self, index: str) -> bool:
		try:
			response = await self._client.indices.exists(index=index)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			# Reads have no rejection result to carry.
			raise exceptions.StoreUnavailableError(_diagnostic(exc)) from exc
		return bool(response)

	async def create(self, index: str) -> WriteResult:
		try:
			response = await self._client.indices.create(index=index)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			_raise_if_unavailable(exc)
			return WriteResult(ok=False, diagnostic=_diagnostic(exc))
		acknowledged = bool(_body(response).get("acknowledged"))
		return WriteResult(
			ok=acknowledged,
			result="created" if acknowledged else None,
			diagnostic=None if acknowledged else "create_not_acknowledged",
		)

	async def delete(self, index: str) -> WriteResult:
		try:
			response = await self._client.indices.delete(index=index)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			_raise_if_unavailable(exc)
			return WriteResult(ok=False, diagnostic=_diagnostic(exc))
		acknowledged = bool(_body(response).get("acknowledged"))
		return WriteResult(
			ok=acknowledged,
			result="deleted" if acknowledged else None,
			diagnostic=None if acknowledged else "delete_not_acknowledged",
		)

	async def bulk_write(self, index: str, operations: Sequence[BulkOperation]) -> BulkResult:
		if not operations:
			# The bulk API refuses an empty body.
			return BulkResult(errors=False, items=[])
		payload: list[dict[str, Any]] = []
		for operation in operations:
			payload.append({operation.action: {"_index": index, "_id": operation.document_id}})
			payload.append(operation.document)
		try:
			response = await self._client.bulk(operations=payload, index=index, refresh=self._refresh)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			_raise_if_unavailable(exc)
			raise exceptions.ValidationError(_diagnostic(exc)) from exc
		items = [self._parse_bulk_item(entry) for entry in _body(response).get("items", [])]
		_LOG.info("es_store.bulk_write", extra={"index": index, "count": len(items)})
		return BulkResult(errors=bool(_body(response).get("errors")), items=items)

	async def get(self, index: str, document_id: str) -> dict[str, Any] | None:
		try:
			response = await self._client.get(index=index, id=document_id)
		except ESNotFoundError:
			return None
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			raise exceptions.StoreUnavailableError(_diagnostic(exc)) from exc
		if not _body(response).get("found", True):
			return None
		return dict(_body(response).get("_source") or {})

	async def put(self, index: str, document_id: str, document: dict[str, Any]) -> WriteResult:
		try:
			response = await self._client.index(index=index, id=document_id, document=document, refresh=self._refresh)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			_raise_if_unavailable(exc)
			return WriteResult(ok=False, diagnostic=_diagnostic(exc), document_id=document_id)
		return WriteResult(ok=True, result=_body(response).get("result"), document_id=document_id)

	async def delete_doc(self, index: str, document_id: str) -> WriteResult:
		try:
			response = await self._client.delete(index=index, id=document_id, refresh=self._refresh)
		except ESNotFoundError:
			return WriteResult(ok=True, result="not_found", document_id=document_id)
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			_raise_if_unavailable(exc)
			return WriteResult(ok=False, diagnostic=_diagnostic(exc), document_id=document_id)
		return WriteResult(ok=True, result=_body(response).get("result"), document_id=document_id)

	async def count(self, index: str) -> int:
		try:
			response = await self._client.count(index=index)
		except ESNotFoundError:
			return 0
		except TransportError as exc:
			raise exceptions.StoreUnavailableError(str(exc)) from exc
		except ApiError as exc:
			raise exceptions.StoreUnavailableError(_diagnostic(exc)) from exc
		return int(_body(response).get("count", 0))

	async def close(self) -> None:
		await self._client.close()

	@staticmethod
	def _parse_bulk_item(entry: dict[str, Any]) -> BulkItemResult:
		_action, detail = next(iter(entry.items()))
		status = detail.get("status")
		error = detail.get("error")
		ok = error is None and (status is None or status < 300)
		diagnostic = None
		if error is not None:
			if isinstance(error, dict):
				diagnostic = f"{error.get('type')}: {error.get('reason')}"
			else:
				diagnostic = str(error)
		return BulkItemResult(document_id=detail.get("_id"), ok=ok, status=status, diagnostic=diagnostic)


__all__ = ["DocumentStore", "ElasticsearchDocumentStore"]
