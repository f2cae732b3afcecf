"""Change event processing: table stream records to index mutations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

from boto3.dynamodb.types import TypeDeserializer
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from inventory_sync.domain import exceptions
from inventory_sync.domain.models import ChangeEvent, InventoryItem, Operation, WriteResult
from inventory_sync.indexing.synchronizer import IndexSynchronizer
from inventory_sync.infra.record_store import RecordStore
from inventory_sync.obs import metrics

_LOG = logging.getLogger(__name__)

_DESERIALIZER = TypeDeserializer()

SleepCallable = Callable[[float], Awaitable[None]]


def _deserialize_image(image: Any, label: str) -> dict[str, Any]:
	if not isinstance(image, Mapping):
		raise exceptions.EventDecodeError(f"{label} is not an attribute map")
	try:
		return {name: _DESERIALIZER.deserialize(value) for name, value in image.items()}
	except (TypeError, ValueError, AttributeError) as exc:
		raise exceptions.EventDecodeError(f"undecodable {label}: {exc}") from exc


def decode_stream_record(
	record: Mapping[str, Any],
	model: type[BaseModel] = InventoryItem,
	*,
	key_attribute: str = "clientIdentifier",
) -> ChangeEvent:
	"""Decode one table stream record into a :class:`ChangeEvent`.

	INSERT and MODIFY read the new image, REMOVE reads the old one. An
	INSERT/MODIFY record without a new image (keys-only stream) decodes to an
	event with no entity; the processor then loads the record by key.
	"""
	if not isinstance(record, Mapping):
		raise exceptions.EventDecodeError(f"stream record is a {type(record).__name__}, not a mapping")
	name = str(record.get("eventName") or "").upper()
	try:
		operation = Operation(name)
	except ValueError as exc:
		raise exceptions.EventDecodeError(f"unsupported event name {name!r}") from exc

	stream = record.get("dynamodb") or {}
	if not isinstance(stream, Mapping):
		raise exceptions.EventDecodeError("dynamodb section is not a mapping")
	event_id = record.get("eventID")
	sequence_number = stream.get("SequenceNumber")
	keys = _deserialize_image(stream.get("Keys") or {}, "Keys")
	image_name = "OldImage" if operation is Operation.REMOVE else "NewImage"
	image = stream.get(image_name)
	attributes = _deserialize_image(image, image_name) if image else None
	record_key = keys.get(key_attribute)
	record_key = str(record_key) if record_key is not None else None

	if attributes is None:
		if operation is Operation.REMOVE:
			raise exceptions.EventDecodeError("REMOVE record carries no OldImage")
		return ChangeEvent(
			operation=operation,
			event_id=event_id,
			sequence_number=sequence_number,
			record_key=record_key,
		)

	try:
		entity = model.model_validate(attributes)
	except ModelValidationError as exc:
		raise exceptions.EventDecodeError(f"{image_name} does not match {model.__name__}: {exc.error_count()} errors") from exc

	if operation is Operation.REMOVE:
		return ChangeEvent(
			operation=operation,
			identifier=entity.document_id(),
			event_id=event_id,
			sequence_number=sequence_number,
			record_key=record_key,
		)
	return ChangeEvent(
		operation=operation,
		entity=entity,
		event_id=event_id,
		sequence_number=sequence_number,
		record_key=record_key,
	)


@dataclass(slots=True)
class EventOutcome:
	"""Result of processing one change record."""

	position: int
	ok: bool
	event_id: Optional[str] = None
	operation: Optional[str] = None
	identifier: Optional[str] = None
	result: Optional[str] = None
	error_kind: Optional[str] = None
	detail: Optional[str] = None


@dataclass(slots=True)
class BatchReport:
	"""One outcome per input record, in input order."""

	outcomes: list[EventOutcome] = field(default_factory=list)

	@property
	def processed(self) -> int:
		return len(self.outcomes)

	@property
	def failed(self) -> list[EventOutcome]:
		return [outcome for outcome in self.outcomes if not outcome.ok]

	@property
	def ok(self) -> bool:
		return not self.failed

	def to_dict(self) -> dict[str, Any]:
		return {
			"processed": self.processed,
			"failed": len(self.failed),
			"outcomes": [asdict(outcome) for outcome in self.outcomes],
		}


class ChangeEventProcessor:
	"""Dispatches change events to the synchronizer, one outcome per event.

	INSERT maps to ``insert``, MODIFY to ``update`` at the entity's id and
	REMOVE to ``delete``. Transient store failures are retried with
	exponential backoff; everything else is reported on the event's outcome.
	"""

	def __init__(
		self,
		synchronizer: IndexSynchronizer,
		*,
		model: type[BaseModel] = InventoryItem,
		record_store: RecordStore | None = None,
		key_attribute: str = "clientIdentifier",
		retry_attempts: int = 3,
		retry_backoff_seconds: float = 0.5,
		retry_backoff_max_seconds: float = 5.0,
		sleep: SleepCallable | None = None,
	) -> None:
		self._sync = synchronizer
		self._model = model
		self._records = record_store
		self._key_attribute = key_attribute
		self._retry_attempts = max(1, retry_attempts)
		self._retry_backoff = max(0.0, retry_backoff_seconds)
		self._retry_backoff_max = max(self._retry_backoff, retry_backoff_max_seconds)
		self._sleep = sleep or asyncio.sleep

	async def process_batch(self, records: Iterable[Mapping[str, Any]]) -> BatchReport:
		report = BatchReport()
		for position, raw in enumerate(records):
			try:
				event = decode_stream_record(raw, self._model, key_attribute=self._key_attribute)
			except exceptions.EventDecodeError as exc:
				report.outcomes.append(self._decode_failure(position, raw, exc.detail))
				continue
			except Exception as exc:
				_LOG.exception("change_events.decode_unexpected_error", extra={"position": position})
				report.outcomes.append(self._decode_failure(position, raw, str(exc)))
				continue
			report.outcomes.append(await self.process(event, position=position))
		_LOG.info(
			"change_events.batch",
			extra={"index": self._sync.index_name, "count": report.processed, "failed": len(report.failed)},
		)
		return report

	def _decode_failure(self, position: int, raw: Any, detail: str) -> EventOutcome:
		fields = raw if isinstance(raw, Mapping) else {}
		event_id = fields.get("eventID")
		operation = str(fields.get("eventName") or "unknown")
		kind = exceptions.EventDecodeError.kind
		metrics.record_change_event(operation.lower(), kind)
		_LOG.warning(
			"change_events.decode_failed",
			extra={"position": position, "event_id": event_id, "detail": detail},
		)
		return EventOutcome(
			position=position,
			ok=False,
			event_id=event_id,
			operation=operation,
			error_kind=kind,
			detail=detail,
		)

	async def process(self, event: ChangeEvent, *, position: int = 0) -> EventOutcome:
		operation = event.operation.value
		try:
			response = await self._dispatch_with_retry(event)
		except exceptions.SyncError as exc:
			metrics.record_change_event(operation.lower(), exc.kind)
			_LOG.warning(
				"change_events.failed",
				extra={
					"event_id": event.event_id,
					"operation": operation,
					"document_id": event.identifier,
					"kind": exc.kind,
					"detail": exc.detail,
				},
			)
			return EventOutcome(
				position=position,
				ok=False,
				event_id=event.event_id,
				operation=operation,
				identifier=event.identifier,
				error_kind=exc.kind,
				detail=exc.detail,
			)
		except Exception as exc:
			metrics.record_change_event(operation.lower(), "internal_error")
			_LOG.exception(
				"change_events.unexpected_error",
				extra={"event_id": event.event_id, "operation": operation, "document_id": event.identifier},
			)
			return EventOutcome(
				position=position,
				ok=False,
				event_id=event.event_id,
				operation=operation,
				identifier=event.identifier,
				error_kind="internal_error",
				detail=str(exc),
			)
		metrics.record_change_event(operation.lower(), "ok")
		return EventOutcome(
			position=position,
			ok=True,
			event_id=event.event_id,
			operation=operation,
			identifier=event.identifier,
			result=response.result,
		)

	async def _dispatch_with_retry(self, event: ChangeEvent) -> WriteResult:
		attempt = 0
		while True:
			attempt += 1
			try:
				return await self._dispatch(event)
			except exceptions.StoreUnavailableError as exc:
				if attempt >= self._retry_attempts:
					raise
				delay = min(self._retry_backoff * (2 ** (attempt - 1)), self._retry_backoff_max)
				_LOG.warning(
					"change_events.retry",
					extra={"event_id": event.event_id, "attempt": attempt, "delay_s": delay, "detail": exc.detail},
				)
				await self._sleep(delay)

	async def _dispatch(self, event: ChangeEvent) -> WriteResult:
		if event.operation is Operation.REMOVE:
			response = await self._sync.delete(event.identifier)
		else:
			entity = event.entity if event.entity is not None else await self._load(event)
			if event.operation is Operation.INSERT:
				response = await self._sync.insert(entity)
			else:
				response = await self._sync.update(entity, entity.document_id())
		if not response.ok:
			raise exceptions.ValidationError(response.diagnostic or "write_rejected")
		return response

	async def _load(self, event: ChangeEvent) -> Any:
		if self._records is None or not event.record_key:
			raise exceptions.EventDecodeError("record carries no NewImage and cannot be loaded by key")
		entity = await self._records.fetch_by_id(event.record_key)
		if entity is None:
			raise exceptions.NotFoundError(f"record {event.record_key} not found")
		event.entity = entity
		event.identifier = entity.document_id()
		return entity


__all__ = ["ChangeEventProcessor", "EventOutcome", "BatchReport", "decode_stream_record"]
