"""Builders shared by the test modules."""

from inventory_sync.domain.models import InventoryItem
from inventory_sync.indexing.descriptor import IndexDescriptor
from inventory_sync.indexing.synchronizer import IndexSynchronizer

ADMIN_TOKEN = "test-admin-token"
INDEX_NAME = "dev_vehicle_inventory"


def make_item(vin: str, **overrides) -> InventoryItem:
	fields = {
		"clientIdentifier": f"client-{vin}",
		"vin": vin,
		"body": "Sedan",
		"bookValue": "12000",
		"certified": "true",
		"doors": 4,
		"driveType": "FWD",
	}
	fields.update(overrides)
	return InventoryItem.model_validate(fields)


def stream_record(event_name: str, item: InventoryItem | None = None, *, event_id: str = "evt-1", extra=None) -> dict:
	"""Build a table stream record in the wire attribute-value format."""
	dynamodb: dict = {"SequenceNumber": f"seq-{event_id}", "StreamViewType": "NEW_AND_OLD_IMAGES"}
	if item is not None:
		dynamodb["Keys"] = {"clientIdentifier": {"S": item.client_identifier}}
		attributes = to_attribute_map(item.to_document())
		if event_name == "REMOVE":
			dynamodb["OldImage"] = attributes
		else:
			dynamodb["NewImage"] = attributes
	if extra is not None:
		dynamodb.update(extra)
	return {"eventID": event_id, "eventName": event_name, "dynamodb": dynamodb}


def to_attribute_map(document: dict) -> dict:
	attributes = {}
	for name, value in document.items():
		if isinstance(value, bool):
			attributes[name] = {"BOOL": value}
		elif isinstance(value, (int, float)):
			attributes[name] = {"N": str(value)}
		else:
			attributes[name] = {"S": str(value)}
	return attributes


def build_synchronizer(document_store, record_store):
	descriptor = IndexDescriptor.resolve("inventory_item", {"inventory_item": "vehicle_inventory"})
	return IndexSynchronizer(descriptor, document_store=document_store, record_store=record_store)
