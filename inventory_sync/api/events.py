"""Ingress for table stream change batches."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from inventory_sync.api.deps import get_components, require_admin
from inventory_sync.bootstrap import Components

router = APIRouter(prefix="/events", tags=["events"])


class StreamBatch(BaseModel):
	"""A batch of raw stream records as delivered by the change feed."""

	records: list[dict[str, Any]] = Field(default_factory=list, alias="Records")

	model_config = ConfigDict(populate_by_name=True)


@router.post("/stream")
async def ingest_stream_batch(
	payload: StreamBatch,
	_: None = Depends(require_admin),
	components: Components = Depends(get_components),
) -> dict[str, Any]:
	report = await components.change_processor.process_batch(payload.records)
	return report.to_dict()
