import pytest

from inventory_sync.domain import exceptions
from inventory_sync.domain.models import Operation, WriteResult
from inventory_sync.infra.memory import InMemoryDocumentStore
from inventory_sync.processors.change_events import ChangeEventProcessor, decode_stream_record
from tests.factories import INDEX_NAME, build_synchronizer, make_item, stream_record


class _SleepRecorder:
	def __init__(self) -> None:
		self.delays: list[float] = []

	async def __call__(self, delay: float) -> None:
		self.delays.append(delay)


class _FlakyDocumentStore(InMemoryDocumentStore):
	"""Fails the first ``failures`` puts with a transient error."""

	def __init__(self, failures: int) -> None:
		super().__init__()
		self.failures = failures
		self.put_calls = 0

	async def put(self, index: str, document_id: str, document: dict) -> WriteResult:
		self.put_calls += 1
		if self.put_calls <= self.failures:
			raise exceptions.StoreUnavailableError("429 es_rejected_execution_exception")
		return await super().put(index, document_id, document)


class _BrokenModifyStore(InMemoryDocumentStore):
	async def get(self, index: str, document_id: str):
		raise RuntimeError("engine returned garbage")


def _processor(synchronizer, **kwargs):
	kwargs.setdefault("retry_backoff_seconds", 0.0)
	return ChangeEventProcessor(synchronizer, **kwargs)


def test_decode_insert_reads_new_image():
	event = decode_stream_record(stream_record("INSERT", make_item("VIN123"), event_id="evt-9"))

	assert event.operation is Operation.INSERT
	assert event.identifier == "VIN123"
	assert event.entity == make_item("VIN123")
	assert event.event_id == "evt-9"
	assert event.sequence_number == "seq-evt-9"
	assert event.record_key == "client-VIN123"


def test_decode_modify_reads_new_image():
	event = decode_stream_record(stream_record("MODIFY", make_item("VIN123", doors=2)))

	assert event.operation is Operation.MODIFY
	assert event.entity.doors == 2


def test_decode_remove_reads_old_image():
	event = decode_stream_record(stream_record("REMOVE", make_item("VIN123")))

	assert event.operation is Operation.REMOVE
	assert event.identifier == "VIN123"
	assert event.entity is None


def test_decode_rejects_unknown_event_name():
	with pytest.raises(exceptions.EventDecodeError):
		decode_stream_record(stream_record("TRUNCATE", make_item("VIN123")))


def test_decode_remove_without_old_image_fails():
	record = stream_record("REMOVE", None, extra={"Keys": {"clientIdentifier": {"S": "client-VIN123"}}})
	with pytest.raises(exceptions.EventDecodeError):
		decode_stream_record(record)


def test_decode_keys_only_insert_carries_record_key():
	record = stream_record("INSERT", None, extra={"Keys": {"clientIdentifier": {"S": "client-VIN001"}}})

	event = decode_stream_record(record)

	assert event.entity is None
	assert event.identifier is None
	assert event.record_key == "client-VIN001"


def test_decode_image_not_matching_model_fails():
	record = stream_record("INSERT", None, extra={"NewImage": {"body": {"S": "Sedan"}}})
	with pytest.raises(exceptions.EventDecodeError):
		decode_stream_record(record)


def test_decode_plain_values_instead_of_attribute_map_fails():
	record = stream_record("INSERT", None, extra={"NewImage": {"vin": "VIN001"}})
	with pytest.raises(exceptions.EventDecodeError, match="undecodable NewImage"):
		decode_stream_record(record)


def test_decode_image_that_is_not_a_map_fails():
	record = stream_record("INSERT", None, extra={"NewImage": "VIN001"})
	with pytest.raises(exceptions.EventDecodeError, match="NewImage is not an attribute map"):
		decode_stream_record(record)


@pytest.mark.parametrize("record", ["garbage", None, ["INSERT"]])
def test_decode_rejects_non_mapping_record(record):
	with pytest.raises(exceptions.EventDecodeError, match="not a mapping"):
		decode_stream_record(record)


def test_decode_rejects_non_mapping_dynamodb_section():
	with pytest.raises(exceptions.EventDecodeError, match="dynamodb section"):
		decode_stream_record({"eventID": "evt-1", "eventName": "INSERT", "dynamodb": "oops"})


@pytest.mark.asyncio
async def test_insert_modify_remove_sequence_leaves_no_document(synchronizer, document_store):
	processor = _processor(synchronizer)
	records = [
		stream_record("INSERT", make_item("VIN123", doors=4), event_id="evt-1"),
		stream_record("MODIFY", make_item("VIN123", doors=2), event_id="evt-2"),
		stream_record("REMOVE", make_item("VIN123", doors=2), event_id="evt-3"),
	]

	report = await processor.process_batch(records)

	assert report.ok is True
	assert [outcome.result for outcome in report.outcomes] == ["created", "updated", "deleted"]
	assert "VIN123" not in document_store.documents(INDEX_NAME)


@pytest.mark.asyncio
async def test_modify_replaces_indexed_document(synchronizer):
	processor = _processor(synchronizer)
	await synchronizer.insert(make_item("VIN123", doors=4))

	report = await processor.process_batch([stream_record("MODIFY", make_item("VIN123", doors=2))])

	assert report.ok is True
	assert (await synchronizer.fetch_indexed("VIN123"))["doors"] == 2


@pytest.mark.asyncio
async def test_failed_event_does_not_stop_later_events(synchronizer, document_store):
	processor = _processor(synchronizer)
	records = [
		stream_record("INSERT", make_item("VIN001"), event_id="evt-1"),
		# Nothing indexed under VIN404, so the update fails.
		stream_record("MODIFY", make_item("VIN404"), event_id="evt-2"),
		stream_record("REMOVE", make_item("VIN001"), event_id="evt-3"),
	]

	report = await processor.process_batch(records)

	assert report.ok is False
	assert report.processed == 3
	assert [outcome.ok for outcome in report.outcomes] == [True, False, True]
	failed = report.failed[0]
	assert failed.position == 1
	assert failed.event_id == "evt-2"
	assert failed.error_kind == "not_found"
	assert document_store.documents(INDEX_NAME) == {}


@pytest.mark.asyncio
async def test_undecodable_record_is_reported_in_place(synchronizer):
	processor = _processor(synchronizer)
	records = [
		stream_record("TRUNCATE", make_item("VIN001"), event_id="evt-1"),
		stream_record("INSERT", make_item("VIN002"), event_id="evt-2"),
	]

	report = await processor.process_batch(records)

	assert report.outcomes[0].ok is False
	assert report.outcomes[0].error_kind == "decode_error"
	assert report.outcomes[0].operation == "TRUNCATE"
	assert report.outcomes[1].ok is True
	assert await synchronizer.fetch_indexed("VIN002") is not None


@pytest.mark.asyncio
async def test_malformed_attribute_map_does_not_stop_the_batch(synchronizer):
	processor = _processor(synchronizer)
	records = [
		stream_record("INSERT", None, event_id="evt-1", extra={"NewImage": {"vin": "VIN001"}}),
		stream_record("INSERT", make_item("VIN002"), event_id="evt-2"),
	]

	report = await processor.process_batch(records)

	assert report.processed == 2
	first = report.outcomes[0]
	assert first.ok is False
	assert first.event_id == "evt-1"
	assert first.operation == "INSERT"
	assert first.error_kind == "decode_error"
	assert report.outcomes[1].ok is True
	assert await synchronizer.fetch_indexed("VIN002") is not None


@pytest.mark.asyncio
async def test_non_mapping_record_is_reported_in_place(synchronizer):
	processor = _processor(synchronizer)

	report = await processor.process_batch(["garbage", stream_record("INSERT", make_item("VIN002"), event_id="evt-2")])

	first = report.outcomes[0]
	assert first.position == 0
	assert first.ok is False
	assert first.operation == "unknown"
	assert first.event_id is None
	assert first.error_kind == "decode_error"
	assert report.outcomes[1].ok is True
	assert report.outcomes[1].position == 1


@pytest.mark.asyncio
async def test_store_rejection_is_validation_error(record_store):
	store = InMemoryDocumentStore(validator=lambda doc: "mapper_parsing_exception: failed to parse [doors]")
	processor = _processor(build_synchronizer(store, record_store))

	report = await processor.process_batch([stream_record("INSERT", make_item("VIN001"))])

	outcome = report.outcomes[0]
	assert outcome.ok is False
	assert outcome.error_kind == "validation_error"
	assert outcome.detail == "mapper_parsing_exception: failed to parse [doors]"


@pytest.mark.asyncio
async def test_unexpected_error_is_reported_as_internal(record_store):
	processor = _processor(build_synchronizer(_BrokenModifyStore(), record_store))

	report = await processor.process_batch([stream_record("MODIFY", make_item("VIN001"))])

	assert report.outcomes[0].error_kind == "internal_error"
	assert "garbage" in report.outcomes[0].detail


@pytest.mark.asyncio
async def test_transient_failure_is_retried_with_backoff(record_store):
	store = _FlakyDocumentStore(failures=2)
	sleep = _SleepRecorder()
	processor = ChangeEventProcessor(
		build_synchronizer(store, record_store),
		retry_attempts=3,
		retry_backoff_seconds=0.5,
		sleep=sleep,
	)

	report = await processor.process_batch([stream_record("INSERT", make_item("VIN001"))])

	assert report.ok is True
	assert store.put_calls == 3
	assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retries_exhausted_reports_store_unavailable(record_store):
	store = _FlakyDocumentStore(failures=10)
	sleep = _SleepRecorder()
	processor = ChangeEventProcessor(
		build_synchronizer(store, record_store),
		retry_attempts=2,
		retry_backoff_seconds=0.1,
		sleep=sleep,
	)

	report = await processor.process_batch([stream_record("INSERT", make_item("VIN001"))])

	assert report.outcomes[0].error_kind == "store_unavailable"
	assert store.put_calls == 2
	assert sleep.delays == [0.1]


@pytest.mark.asyncio
async def test_retry_backoff_is_capped(record_store):
	store = _FlakyDocumentStore(failures=10)
	sleep = _SleepRecorder()
	processor = ChangeEventProcessor(
		build_synchronizer(store, record_store),
		retry_attempts=5,
		retry_backoff_seconds=1.0,
		retry_backoff_max_seconds=2.5,
		sleep=sleep,
	)

	report = await processor.process_batch([stream_record("INSERT", make_item("VIN001"))])

	assert report.outcomes[0].error_kind == "store_unavailable"
	assert store.put_calls == 5
	assert sleep.delays == [1.0, 2.0, 2.5, 2.5]


@pytest.mark.asyncio
async def test_keys_only_event_loads_record_from_table(synchronizer, record_store):
	processor = _processor(synchronizer, record_store=record_store)
	record = stream_record("INSERT", None, extra={"Keys": {"clientIdentifier": {"S": "client-VIN002"}}})

	report = await processor.process_batch([record])

	assert report.ok is True
	assert report.outcomes[0].identifier == "VIN002"
	assert await synchronizer.fetch_indexed("VIN002") == make_item("VIN002").to_document()


@pytest.mark.asyncio
async def test_keys_only_event_for_vanished_record_is_not_found(synchronizer, record_store):
	processor = _processor(synchronizer, record_store=record_store)
	record = stream_record("INSERT", None, extra={"Keys": {"clientIdentifier": {"S": "client-GONE"}}})

	report = await processor.process_batch([record])

	assert report.outcomes[0].error_kind == "not_found"


def test_batch_report_serialises_outcomes():
	from inventory_sync.processors.change_events import BatchReport, EventOutcome

	report = BatchReport([EventOutcome(position=0, ok=True, result="created"), EventOutcome(position=1, ok=False)])

	payload = report.to_dict()

	assert payload["processed"] == 2
	assert payload["failed"] == 1
	assert payload["outcomes"][0]["result"] == "created"
