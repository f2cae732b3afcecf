"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI

from inventory_sync.api import events, ops
from inventory_sync.bootstrap import build_components
from inventory_sync.infra.scheduler import RefreshScheduler
from inventory_sync.obs import init as obs_init
from inventory_sync.obs import logging as obs_logging
from inventory_sync.settings import Settings, settings

_LOG = logging.getLogger(__name__)

_REFRESH_JOB_ID = "inventory-full-refresh"


async def _scheduled_refresh(app: FastAPI) -> None:
	components = app.state.components
	tokens = obs_logging.bind_context(trigger="schedule", index=components.descriptor.name)
	try:
		await components.refresh_processor.run()
	finally:
		obs_logging.reset_context(tokens)


@asynccontextmanager
async def lifespan(app: FastAPI):
	config: Settings = app.state.settings
	owned = False
	if getattr(app.state, "components", None) is None:
		app.state.components = build_components(config)
		owned = True
	scheduler: RefreshScheduler | None = None
	if config.refresh_interval_seconds:
		scheduler = RefreshScheduler()
		scheduler.start()
		scheduler.schedule_every(
			_REFRESH_JOB_ID,
			partial(_scheduled_refresh, app),
			seconds=config.refresh_interval_seconds,
		)
		_LOG.info("scheduler.started", extra={"interval_s": config.refresh_interval_seconds})
	app.state.refresh_scheduler = scheduler
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		if owned:
			await app.state.components.close()
			app.state.components = None


def create_app(config: Settings | None = None) -> FastAPI:
	config = config or settings
	application = FastAPI(title="Inventory Index Sync", lifespan=lifespan)
	application.state.settings = config
	application.state.components = None
	obs_init(application, config)
	application.include_router(ops.router)
	application.include_router(events.router)
	return application


app = create_app()
