"""Entity kind to index name binding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from inventory_sync.domain import exceptions

DEFAULT_PREFIX = "dev"


@dataclass(frozen=True, slots=True)
class IndexDescriptor:
	"""Immutable binding of an entity kind to its index.

	The name is ``"{prefix}_{base_name}"``; existing indices depend on that
	exact shape, and the table holding the records uses the same name.
	"""

	entity_kind: str
	base_name: str
	prefix: str = DEFAULT_PREFIX

	@property
	def name(self) -> str:
		return f"{self.prefix}_{self.base_name}"

	@classmethod
	def resolve(
		cls,
		entity_kind: str,
		index_tables: Mapping[str, str],
		*,
		environment: Optional[str] = None,
	) -> IndexDescriptor:
		base_name = (index_tables.get(entity_kind) or "").strip()
		if not base_name:
			raise exceptions.ConfigurationError(f"no index table configured for entity kind '{entity_kind}'")
		prefix = (environment or "").strip() or DEFAULT_PREFIX
		return cls(entity_kind=entity_kind, base_name=base_name, prefix=prefix)


__all__ = ["IndexDescriptor", "DEFAULT_PREFIX"]
