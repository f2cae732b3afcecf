"""Scheduled full refresh of the search index."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

from inventory_sync.domain import exceptions
from inventory_sync.indexing.synchronizer import IndexSynchronizer
from inventory_sync.obs import metrics

_LOG = logging.getLogger(__name__)

_JOB_NAME = "full_refresh"


@dataclass(slots=True)
class RefreshSummary:
	ok: bool
	index: str
	item_count: int = 0
	failed_count: int = 0
	phase: Optional[str] = None
	diagnostic: Optional[str] = None
	duration_seconds: float = 0.0

	@property
	def message(self) -> str:
		if self.phase is not None:
			return f"re-index failed during {self.phase}: {self.diagnostic}"
		if self.failed_count:
			return f"{self.failed_count} of {self.item_count} items failed to index"
		if not self.ok:
			return f"bulk write reported errors: {self.diagnostic}"
		return f"{self.item_count} items have been indexed"

	def to_dict(self) -> dict[str, Any]:
		payload = asdict(self)
		payload["message"] = self.message
		return payload


class FullRefreshProcessor:
	"""Rebuilds the index on an external trigger and summarises the run."""

	def __init__(self, synchronizer: IndexSynchronizer) -> None:
		self._sync = synchronizer

	async def run(self) -> RefreshSummary:
		start = time.perf_counter()
		index = self._sync.index_name
		try:
			response = await self._sync.rebuild()
		except exceptions.SyncError as exc:
			duration = time.perf_counter() - start
			metrics.record_job_run(_JOB_NAME, result="error", duration_seconds=duration)
			_LOG.exception(
				"full_refresh.failed",
				extra={"index": index, "phase": exc.phase, "kind": exc.kind, "detail": exc.detail},
			)
			return RefreshSummary(
				ok=False,
				index=index,
				phase=exc.phase,
				diagnostic=exc.detail,
				duration_seconds=duration,
			)
		except Exception as exc:
			duration = time.perf_counter() - start
			phase = self._sync.rebuild_phase
			metrics.record_job_run(_JOB_NAME, result="error", duration_seconds=duration)
			_LOG.exception(
				"full_refresh.unexpected_error",
				extra={"index": index, "phase": phase, "kind": "internal_error"},
			)
			return RefreshSummary(
				ok=False,
				index=index,
				phase=phase,
				diagnostic=f"{type(exc).__name__}: {exc}",
				duration_seconds=duration,
			)

		duration = time.perf_counter() - start
		failed = len(response.failed_items)
		summary = RefreshSummary(
			ok=not response.errors,
			index=index,
			item_count=len(response.items),
			failed_count=failed,
			duration_seconds=duration,
		)
		if response.errors and not failed:
			summary.diagnostic = "bulk response flagged errors"
		for item in response.failed_items[:5]:
			_LOG.warning(
				"full_refresh.item_failed",
				extra={"index": index, "document_id": item.document_id, "status": item.status, "detail": item.diagnostic},
			)
		metrics.record_job_run(_JOB_NAME, result="ok" if summary.ok else "partial", duration_seconds=duration)
		_LOG.info(
			"full_refresh.completed",
			extra={"index": index, "count": summary.item_count, "failed": failed, "ok": summary.ok},
		)
		return summary


__all__ = ["FullRefreshProcessor", "RefreshSummary"]
