"""Domain models for inventory records and index writes."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IndexedEntity(Protocol):
	"""Anything the synchronizer can write into a search index."""

	def document_id(self) -> str:
		...

	def to_document(self) -> dict[str, Any]:
		...


class InventoryItem(BaseModel):
	"""Represents a vehicle inventory record.

	Field aliases are the table attribute names; they double as the field
	names of the indexed document.
	"""

	client_identifier: Optional[str] = Field(default=None, alias="clientIdentifier")
	vin: str = Field(alias="vin", min_length=1)
	body: Optional[str] = Field(default=None, alias="body")
	book_value: Optional[str] = Field(default=None, alias="bookValue")
	certified: Optional[str] = Field(default=None, alias="certified")
	doors: Optional[int] = Field(default=None, alias="doors")
	drive_type: Optional[str] = Field(default=None, alias="driveType")

	model_config = ConfigDict(populate_by_name=True, from_attributes=True)

	@field_validator("client_identifier", "body", "book_value", "certified", "drive_type", mode="before")
	def _stringify(cls, value: Any):  # type: ignore[override]
		# Table numbers arrive as Decimal and flags as bool.
		if isinstance(value, bool):
			return "true" if value else "false"
		if isinstance(value, (Decimal, int, float)):
			return str(value)
		return value

	@field_validator("vin", mode="before")
	def _strip_vin(cls, value: Any):  # type: ignore[override]
		if isinstance(value, str):
			return value.strip()
		return value

	def document_id(self) -> str:
		return self.vin

	def record_key(self) -> Optional[str]:
		return self.client_identifier

	def to_document(self) -> dict[str, Any]:
		return self.model_dump(by_alias=True, exclude_none=True, mode="json")


ENTITY_MODELS: dict[str, type[BaseModel]] = {
	"inventory_item": InventoryItem,
}


class Operation(str, Enum):
	INSERT = "INSERT"
	MODIFY = "MODIFY"
	REMOVE = "REMOVE"


@dataclass(slots=True)
class ChangeEvent:
	"""One decoded change notification from the table stream."""

	operation: Operation
	entity: Optional[Any] = None
	identifier: Optional[str] = None
	event_id: Optional[str] = None
	sequence_number: Optional[str] = None
	record_key: Optional[str] = None

	def __post_init__(self) -> None:
		if self.identifier is None and self.entity is not None:
			self.identifier = self.entity.document_id()


@dataclass(slots=True)
class BulkOperation:
	"""A single write in a bulk batch."""

	document_id: str
	document: dict[str, Any]
	action: str = "index"


@dataclass(slots=True)
class WriteResult:
	"""Outcome of a single index or document write."""

	ok: bool
	result: Optional[str] = None
	diagnostic: Optional[str] = None
	document_id: Optional[str] = None


@dataclass(slots=True)
class BulkItemResult:
	document_id: Optional[str]
	ok: bool
	status: Optional[int] = None
	diagnostic: Optional[str] = None


@dataclass(slots=True)
class BulkResult:
	"""Outcome of a bulk write: the error flag plus one result per operation."""

	errors: bool
	items: list[BulkItemResult] = field(default_factory=list)

	@property
	def failed_items(self) -> list[BulkItemResult]:
		return [item for item in self.items if not item.ok]

	@classmethod
	def from_items(cls, items: Sequence[BulkItemResult]) -> BulkResult:
		collected = list(items)
		return cls(errors=any(not item.ok for item in collected), items=collected)


@dataclass(slots=True)
class IndexStatus:
	index: str
	exists: bool
	document_count: int = 0


__all__ = [
	"IndexedEntity",
	"InventoryItem",
	"ENTITY_MODELS",
	"Operation",
	"ChangeEvent",
	"BulkOperation",
	"WriteResult",
	"BulkItemResult",
	"BulkResult",
	"IndexStatus",
]
