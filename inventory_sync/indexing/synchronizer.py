"""Index lifecycle and per-record mutations for one entity kind."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from inventory_sync.domain import exceptions
from inventory_sync.domain.models import BulkOperation, BulkResult, IndexedEntity, IndexStatus, WriteResult
from inventory_sync.indexing.descriptor import IndexDescriptor
from inventory_sync.infra.document_store import DocumentStore
from inventory_sync.infra.record_store import RecordStore
from inventory_sync.obs import metrics

_LOG = logging.getLogger(__name__)


class IndexSynchronizer:
	"""Maintains the search index of one entity kind.

	The synchronizer owns its descriptor; both stores are injected and shared
	with the rest of the process, so it never closes them.

	Index lifecycle::

		Absent --ensure_index_exists--> Present
		Present --rebuild (delete)--> Absent --rebuild (create)--> Present
	"""

	def __init__(
		self,
		descriptor: IndexDescriptor,
		*,
		document_store: DocumentStore,
		record_store: RecordStore,
	) -> None:
		self._descriptor = descriptor
		self._documents = document_store
		self._records = record_store
		self._rebuild_phase: str | None = None

	@property
	def descriptor(self) -> IndexDescriptor:
		return self._descriptor

	@property
	def index_name(self) -> str:
		return self._descriptor.name

	@property
	def rebuild_phase(self) -> str | None:
		"""Phase the current or last failed rebuild is in; ``None`` once one completes."""
		return self._rebuild_phase

	@contextmanager
	def _phase(self, name: str) -> Iterator[None]:
		self._rebuild_phase = name
		try:
			yield
		except exceptions.SyncError as exc:
			if exc.phase is None:
				exc.phase = name
			raise

	async def ensure_index_exists(self) -> bool:
		"""Create the index when it is absent. Returns True if it was created."""
		if await self._documents.exists(self.index_name):
			return False
		response = await self._documents.create(self.index_name)
		if not response.ok:
			raise exceptions.IndexProvisioningError(
				f"could not create index {self.index_name}: {response.diagnostic}",
				phase="create",
			)
		_LOG.info("index_sync.index_created", extra={"index": self.index_name})
		return True

	async def rebuild(self) -> BulkResult:
		"""Drop the index and repopulate it from a full table scan.

		Not atomic: a failure after the delete phase leaves the index absent or
		partially populated. Errors are tagged with the phase they escaped from
		(delete, create, scan or bulk).
		"""
		index = self.index_name
		start = time.perf_counter()
		with self._phase("delete"):
			if await self._documents.exists(index):
				response = await self._documents.delete(index)
				if not response.ok:
					raise exceptions.IndexProvisioningError(
						f"could not delete index {index} to start re-index: {response.diagnostic}",
						phase="delete",
					)
				_LOG.info("index_sync.index_deleted", extra={"index": index})
		with self._phase("create"):
			await self.ensure_index_exists()

		operations: list[BulkOperation] = []
		pages = 0
		with self._phase("scan"):
			async for page in self._records.scan_all():
				pages += 1
				for record in page:
					operations.append(BulkOperation(document_id=record.document_id(), document=record.to_document()))

		with self._phase("bulk"):
			result = await self._documents.bulk_write(index, operations)

		failed = len(result.failed_items)
		metrics.record_rebuild_documents(index, written=len(result.items) - failed, failed=failed)
		_LOG.info(
			"index_sync.rebuild.bulk",
			extra={
				"index": index,
				"pages": pages,
				"count": len(operations),
				"failed": failed,
				"latency_ms": round((time.perf_counter() - start) * 1000, 3),
			},
		)
		self._rebuild_phase = None
		return result

	async def insert(self, entity: IndexedEntity) -> WriteResult:
		document_id = entity.document_id()
		response = await self._documents.put(self.index_name, document_id, entity.to_document())
		metrics.record_index_write("insert", _result_label(response))
		return response

	async def update(self, entity: IndexedEntity, document_id: str) -> WriteResult:
		"""Replace the document at ``document_id`` with ``entity``.

		The whole document is replaced; fields missing from ``entity`` are not
		carried over from the indexed version.
		"""
		existing = await self._documents.get(self.index_name, document_id)
		if existing is None:
			metrics.record_index_write("update", "not_found")
			raise exceptions.NotFoundError(f"document {document_id} not found in {self.index_name}")
		response = await self._documents.put(self.index_name, document_id, entity.to_document())
		metrics.record_index_write("update", _result_label(response))
		return response

	async def delete(self, document_id: str) -> WriteResult:
		response = await self._documents.delete_doc(self.index_name, document_id)
		metrics.record_index_write("delete", _result_label(response))
		if response.result == "not_found":
			_LOG.info("index_sync.delete_missing", extra={"index": self.index_name, "document_id": document_id})
		return response

	async def fetch_indexed(self, document_id: str) -> dict[str, Any] | None:
		return await self._documents.get(self.index_name, document_id)

	async def status(self) -> IndexStatus:
		exists = await self._documents.exists(self.index_name)
		count = await self._documents.count(self.index_name) if exists else 0
		return IndexStatus(index=self.index_name, exists=exists, document_count=count)


def _result_label(response: WriteResult) -> str:
	if not response.ok:
		return "rejected"
	return response.result or "ok"


__all__ = ["IndexSynchronizer"]
