"""Event processors that drive the synchronizer."""

from inventory_sync.processors.change_events import BatchReport, ChangeEventProcessor, EventOutcome
from inventory_sync.processors.full_refresh import FullRefreshProcessor, RefreshSummary

__all__ = ["BatchReport", "ChangeEventProcessor", "EventOutcome", "FullRefreshProcessor", "RefreshSummary"]
