"""In-memory store simulations used by tests and local runs."""

from __future__ import annotations

import copy
import logging
from typing import Any, AsyncIterator, Callable, Iterable, Optional, Sequence

from inventory_sync.domain.models import BulkItemResult, BulkOperation, BulkResult, WriteResult

_LOG = logging.getLogger(__name__)

DocumentValidator = Callable[[dict[str, Any]], Optional[str]]


class InMemoryDocumentStore:
	"""Simulate the document store with dictionaries.

	``validator`` returns a diagnostic string for documents the simulated
	engine should reject, or ``None`` to accept them.
	"""

	def __init__(self, *, validator: DocumentValidator | None = None) -> None:
		self._indices: dict[str, dict[str, dict[str, Any]]] = {}
		self._validator = validator

	async def exists(self, index: str) -> bool:
		return index in self._indices

	async def create(self, index: str) -> WriteResult:
		if index in self._indices:
			return WriteResult(ok=False, diagnostic=f"resource_already_exists_exception: index [{index}] already exists")
		self._indices[index] = {}
		_LOG.info("memory_store.create_index", extra={"index": index})
		return WriteResult(ok=True, result="created")

	async def delete(self, index: str) -> WriteResult:
		if index not in self._indices:
			return WriteResult(ok=False, diagnostic=f"index_not_found_exception: no such index [{index}]")
		del self._indices[index]
		_LOG.info("memory_store.delete_index", extra={"index": index})
		return WriteResult(ok=True, result="deleted")

	async def bulk_write(self, index: str, operations: Sequence[BulkOperation]) -> BulkResult:
		items: list[BulkItemResult] = []
		for operation in operations:
			result = self._write(index, operation.document_id, operation.document)
			items.append(
				BulkItemResult(
					document_id=operation.document_id,
					ok=result.ok,
					status=201 if result.ok else 400,
					diagnostic=result.diagnostic,
				)
			)
		_LOG.info("memory_store.bulk_write", extra={"index": index, "count": len(items)})
		return BulkResult.from_items(items)

	async def get(self, index: str, document_id: str) -> dict[str, Any] | None:
		document = self._indices.get(index, {}).get(document_id)
		return copy.deepcopy(document) if document is not None else None

	async def put(self, index: str, document_id: str, document: dict[str, Any]) -> WriteResult:
		return self._write(index, document_id, document)

	async def delete_doc(self, index: str, document_id: str) -> WriteResult:
		documents = self._indices.get(index, {})
		if documents.pop(document_id, None) is None:
			return WriteResult(ok=True, result="not_found", document_id=document_id)
		return WriteResult(ok=True, result="deleted", document_id=document_id)

	async def count(self, index: str) -> int:
		return len(self._indices.get(index, {}))

	async def close(self) -> None:
		return None

	def documents(self, index: str) -> dict[str, dict[str, Any]]:
		"""Snapshot of an index (test helper)."""
		return copy.deepcopy(self._indices.get(index, {}))

	def _write(self, index: str, document_id: str, document: dict[str, Any]) -> WriteResult:
		if self._validator is not None:
			diagnostic = self._validator(document)
			if diagnostic:
				return WriteResult(ok=False, diagnostic=diagnostic, document_id=document_id)
		# Writing to a missing index creates it, as the real engine does.
		documents = self._indices.setdefault(index, {})
		result = "updated" if document_id in documents else "created"
		documents[document_id] = copy.deepcopy(document)
		return WriteResult(ok=True, result=result, document_id=document_id)


class InMemoryRecordStore:
	"""List-backed record store that pages like a table scan."""

	def __init__(self, records: Iterable[Any] = (), *, page_size: int = 100, key_attribute: str = "client_identifier") -> None:
		self._records = list(records)
		self._page_size = max(1, page_size)
		self._key_attribute = key_attribute

	def add(self, record: Any) -> None:
		self._records.append(record)

	async def scan_all(self) -> AsyncIterator[list[Any]]:
		if not self._records:
			yield []
			return
		for start in range(0, len(self._records), self._page_size):
			yield list(self._records[start : start + self._page_size])

	async def fetch_by_id(self, record_id: str) -> Optional[Any]:
		for record in self._records:
			if getattr(record, self._key_attribute, None) == record_id:
				return record
		return None

	async def close(self) -> None:
		return None


__all__ = ["InMemoryDocumentStore", "InMemoryRecordStore"]
