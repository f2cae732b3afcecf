"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from inventory_sync.obs import logging as obs_logging
from inventory_sync.obs import middleware
from inventory_sync.settings import Settings

_logging_configured = False


def init(app: FastAPI, config: Settings) -> None:
	global _logging_configured
	if not config.obs_enabled:
		return
	if not _logging_configured:
		obs_logging.configure_logging(config)
		_logging_configured = True
	middleware.install(app)


__all__ = ["init"]
