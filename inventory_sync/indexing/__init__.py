"""Index lifecycle management.

This package provides:
- descriptor: entity kind to index name binding
- synchronizer: index lifecycle and per-record mutations
"""

from .descriptor import IndexDescriptor
from .synchronizer import IndexSynchronizer

__all__ = ["IndexDescriptor", "IndexSynchronizer"]
