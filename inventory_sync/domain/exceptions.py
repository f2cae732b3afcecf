"""Custom exceptions for index synchronization."""

from __future__ import annotations


class SyncError(Exception):
	"""Base class for index synchronization errors."""

	kind: str = "sync_error"
	detail: str = "sync_error"

	def __init__(self, detail: str | None = None, *, phase: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		self.phase = phase

	def describe(self) -> str:
		if self.phase:
			return f"{self.phase}: {self.detail}"
		return self.detail


class ConfigurationError(SyncError):
	"""Raised when an index name cannot be resolved at construction."""

	kind = "configuration_error"
	detail = "index_name_unresolved"


class IndexProvisioningError(SyncError):
	"""Raised when the document store reports an index create/delete as invalid."""

	kind = "index_provisioning_error"
	detail = "index_provisioning_failed"


class StoreUnavailableError(SyncError):
	"""Raised for transient I/O failures from either store adapter."""

	kind = "store_unavailable"
	detail = "store_unavailable"


class NotFoundError(SyncError):
	"""Thrown when a referenced document or record is missing."""

	kind = "not_found"
	detail = "not_found"


class ValidationError(SyncError):
	"""Raised when the document store rejects a write."""

	kind = "validation_error"
	detail = "validation_error"


class EventDecodeError(SyncError):
	"""Raised when a change record cannot be decoded into an entity."""

	kind = "decode_error"
	detail = "decode_error"


__all__ = [
	"SyncError",
	"ConfigurationError",
	"IndexProvisioningError",
	"StoreUnavailableError",
	"NotFoundError",
	"ValidationError",
	"EventDecodeError",
]
