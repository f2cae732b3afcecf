"""Structured logging helpers for the observability package."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from inventory_sync.settings import Settings, settings as default_settings

_INVOCATION_ID: ContextVar[Optional[str]] = ContextVar("obs_invocation_id", default=None)
_TRIGGER: ContextVar[Optional[str]] = ContextVar("obs_trigger", default=None)
_INDEX: ContextVar[Optional[str]] = ContextVar("obs_index", default=None)

_LOGGER_NAME = "inventory_sync"

_SENSITIVE_KEYWORDS = (
	"token",
	"secret",
	"authorization",
	"password",
	"credential",
	"api_key",
)

_MAX_STRING_LENGTH = 256
_MAX_COLLECTION_ITEMS = 10

_RESERVED_ATTRS = frozenset(
	{
		"args",
		"msg",
		"levelname",
		"levelno",
		"pathname",
		"filename",
		"module",
		"exc_info",
		"exc_text",
		"stack_info",
		"lineno",
		"funcName",
		"created",
		"msecs",
		"relativeCreated",
		"thread",
		"threadName",
		"process",
		"processName",
		"taskName",
		"message",
		"name",
	}
)


def bind_context(
	*,
	invocation_id: Optional[str] = None,
	trigger: Optional[str] = None,
	index: Optional[str] = None,
) -> Dict[str, Token]:
	"""Bind contextual fields for the current invocation and return reset tokens."""
	tokens: Dict[str, Token] = {}
	if invocation_id is not None:
		tokens["invocation_id"] = _INVOCATION_ID.set(invocation_id)
	if trigger is not None:
		tokens["trigger"] = _TRIGGER.set(trigger)
	if index is not None:
		tokens["index"] = _INDEX.set(index)
	return tokens


def reset_context(tokens: Dict[str, Token]) -> None:
	for key, token in tokens.items():
		if key == "invocation_id":
			_INVOCATION_ID.reset(token)
		elif key == "trigger":
			_TRIGGER.reset(token)
		elif key == "index":
			_INDEX.reset(token)


def current_invocation_id() -> Optional[str]:
	return _INVOCATION_ID.get()


def _truncate_collection(values: list[Any]) -> list[Any]:
	if len(values) <= _MAX_COLLECTION_ITEMS:
		return values
	trimmed = values[:_MAX_COLLECTION_ITEMS]
	trimmed.append("…")
	return trimmed


def _sanitize_value(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else f"{value[:_MAX_STRING_LENGTH]}…"
	if isinstance(value, dict):
		result: Dict[str, Any] = {}
		for idx, (key, nested) in enumerate(value.items()):
			if idx >= _MAX_COLLECTION_ITEMS:
				result["…"] = f"+{len(value) - _MAX_COLLECTION_ITEMS} keys"
				break
			result[key] = _sanitize_field(str(key), nested)
		return result
	if isinstance(value, (list, tuple, set)):
		items = [_sanitize_value(item) for item in list(value)]
		return _truncate_collection(items)
	return value


def _sanitize_field(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS):
		return "[redacted]"
	return _sanitize_value(value)


class JSONLogFormatter(logging.Formatter):
	"""Emit logs as JSON objects with structured fields."""

	def __init__(self, *, service: str, env: Optional[str], commit: str) -> None:
		super().__init__()
		self._service = service
		self._env = env
		self._commit = commit

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
		payload: Dict[str, object] = {
			"ts": timestamp,
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": self._service,
			"env": self._env,
			"commit": self._commit,
		}
		invocation_id = _INVOCATION_ID.get()
		if invocation_id:
			payload["invocation_id"] = invocation_id
		trigger = _TRIGGER.get()
		if trigger:
			payload["trigger"] = trigger
		index = _INDEX.get()
		if index:
			payload["index"] = index
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in record.__dict__.items():
			if key in _RESERVED_ATTRS:
				continue
			payload[key] = _sanitize_field(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Randomly sample info-level logs, keep warnings/errors."""

	def __init__(self, rate: float = 1.0) -> None:
		super().__init__()
		self._rate = max(0.0, min(1.0, rate))

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		if self._rate >= 1.0:
			return True
		return random.random() < self._rate


def configure_logging(config: Settings | None = None) -> logging.Logger:
	"""Configure root logger with JSON formatting and sampling."""
	config = config or default_settings
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(
		JSONLogFormatter(service=config.service_name, env=config.environment, commit=config.git_commit)
	)
	handler.addFilter(InfoSamplingFilter(config.obs_log_sampling_rate_info))
	root.addHandler(handler)
	root.setLevel(config.obs_log_level.upper())
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
