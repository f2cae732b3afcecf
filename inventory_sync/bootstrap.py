"""Process-wide wiring of stores, synchronizer and processors."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from inventory_sync.domain import exceptions
from inventory_sync.domain.models import ENTITY_MODELS
from inventory_sync.indexing.descriptor import IndexDescriptor
from inventory_sync.indexing.synchronizer import IndexSynchronizer
from inventory_sync.infra.document_store import DocumentStore, ElasticsearchDocumentStore
from inventory_sync.infra.memory import InMemoryDocumentStore, InMemoryRecordStore
from inventory_sync.infra.record_store import DynamoRecordStore, RecordStore
from inventory_sync.processors.change_events import ChangeEventProcessor
from inventory_sync.processors.full_refresh import FullRefreshProcessor
from inventory_sync.settings import Settings

_LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class Components:
	"""Everything one process needs; stores are shared across invocations."""

	descriptor: IndexDescriptor
	document_store: DocumentStore
	record_store: RecordStore
	synchronizer: IndexSynchronizer
	change_processor: ChangeEventProcessor
	refresh_processor: FullRefreshProcessor

	async def close(self) -> None:
		await self.document_store.close()
		await self.record_store.close()


def build_document_store(config: Settings) -> DocumentStore:
	if config.search_backend == "memory":
		return InMemoryDocumentStore()
	if config.search_backend == "elasticsearch":
		return ElasticsearchDocumentStore(
			url=config.elasticsearch_url,
			request_timeout=config.elasticsearch_request_timeout,
		)
	raise exceptions.ConfigurationError(f"unknown search backend '{config.search_backend}'")


def build_record_store(config: Settings, descriptor: IndexDescriptor) -> RecordStore:
	model = ENTITY_MODELS[descriptor.entity_kind]
	if config.record_backend == "memory":
		return InMemoryRecordStore(page_size=config.scan_page_size)
	if config.record_backend == "dynamodb":
		return DynamoRecordStore(
			table_name=descriptor.name,
			model=model,
			key_attribute=config.record_key_attribute,
			page_size=config.scan_page_size,
			region_name=config.aws_region,
			endpoint_url=config.dynamodb_endpoint_url,
		)
	raise exceptions.ConfigurationError(f"unknown record backend '{config.record_backend}'")


def build_components(
	config: Settings,
	*,
	document_store: DocumentStore | None = None,
	record_store: RecordStore | None = None,
) -> Components:
	"""Resolve the index binding and assemble the processors.

	Raises ``ConfigurationError`` when the entity kind has no index table or
	no registered model.
	"""
	if config.entity_kind not in ENTITY_MODELS:
		raise exceptions.ConfigurationError(f"no model registered for entity kind '{config.entity_kind}'")
	descriptor = IndexDescriptor.resolve(config.entity_kind, config.index_tables, environment=config.environment)
	documents = document_store or build_document_store(config)
	records = record_store or build_record_store(config, descriptor)
	synchronizer = IndexSynchronizer(descriptor, document_store=documents, record_store=records)
	change_processor = ChangeEventProcessor(
		synchronizer,
		model=ENTITY_MODELS[descriptor.entity_kind],
		record_store=records,
		key_attribute=config.record_key_attribute,
		retry_attempts=config.retry_attempts,
		retry_backoff_seconds=config.retry_backoff_seconds,
		retry_backoff_max_seconds=config.retry_backoff_max_seconds,
	)
	_LOG.info(
		"bootstrap.components",
		extra={"index": descriptor.name, "search_backend": config.search_backend, "record_backend": config.record_backend},
	)
	return Components(
		descriptor=descriptor,
		document_store=documents,
		record_store=records,
		synchronizer=synchronizer,
		change_processor=change_processor,
		refresh_processor=FullRefreshProcessor(synchronizer),
	)


__all__ = ["Components", "build_components", "build_document_store", "build_record_store"]
