"""Record store adapters over the source-of-truth table."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from inventory_sync.domain import exceptions

_LOG = logging.getLogger(__name__)


class RecordStore(Protocol):
	"""Read access to the table the index mirrors."""

	def scan_all(self) -> AsyncIterator[list[Any]]:
		"""Yield every record, one list per page."""
		...

	async def fetch_by_id(self, record_id: str) -> Optional[Any]:
		...

	async def close(self) -> None:
		...


class DynamoRecordStore:
	"""DynamoDB table reader.

	boto3 is synchronous, so every page fetch runs in a worker thread. Scans
	use consistent reads and follow ``LastEvaluatedKey`` until the table is
	exhausted.
	"""

	def __init__(
		self,
		*,
		table_name: str,
		model: type[BaseModel],
		key_attribute: str = "clientIdentifier",
		page_size: int = 500,
		table: Any | None = None,
		region_name: str | None = None,
		endpoint_url: str | None = None,
	) -> None:
		if table is None:
			resource = boto3.resource("dynamodb", region_name=region_name, endpoint_url=endpoint_url)
			table = resource.Table(table_name)
		self._table = table
		self.table_name = table_name
		self._model = model
		self._key_attribute = key_attribute
		self._page_size = page_size

	async def scan_all(self) -> AsyncIterator[list[Any]]:
		start_key: dict[str, Any] | None = None
		page_number = 0
		while True:
			response = await asyncio.to_thread(self._scan_page, start_key)
			page_number += 1
			records = self._to_models(response.get("Items", []))
			_LOG.debug(
				"dynamo_store.scan_page",
				extra={"table": self.table_name, "page": page_number, "count": len(records)},
			)
			yield records
			start_key = response.get("LastEvaluatedKey")
			if not start_key:
				break

	async def fetch_by_id(self, record_id: str) -> Optional[Any]:
		response = await asyncio.to_thread(self._get_item, record_id)
		item = response.get("Item")
		if not item:
			return None
		return self._model.model_validate(item)

	async def close(self) -> None:
		return None

	def _scan_page(self, start_key: dict[str, Any] | None) -> dict[str, Any]:
		kwargs: dict[str, Any] = {"ConsistentRead": True, "Limit": self._page_size}
		if start_key:
			kwargs["ExclusiveStartKey"] = start_key
		try:
			return self._table.scan(**kwargs)
		except (ClientError, BotoCoreError) as exc:
			raise exceptions.StoreUnavailableError(f"scan {self.table_name}: {exc}") from exc

	def _get_item(self, record_id: str) -> dict[str, Any]:
		try:
			return self._table.get_item(Key={self._key_attribute: record_id}, ConsistentRead=True)
		except (ClientError, BotoCoreError) as exc:
			raise exceptions.StoreUnavailableError(f"get_item {self.table_name}: {exc}") from exc

	def _to_models(self, items: list[dict[str, Any]]) -> list[Any]:
		records = []
		for item in items:
			try:
				records.append(self._model.model_validate(item))
			except ModelValidationError as exc:
				_LOG.warning(
					"dynamo_store.record_invalid",
					extra={"table": self.table_name, "key": item.get(self._key_attribute), "errors": exc.error_count()},
				)
		return records


__all__ = ["RecordStore", "DynamoRecordStore"]
