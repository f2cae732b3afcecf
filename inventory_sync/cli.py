"""Command line entrypoint for index maintenance and event replay."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence
from uuid import uuid4

from inventory_sync.bootstrap import Components, build_components
from inventory_sync.domain import exceptions
from inventory_sync.obs import logging as obs_logging
from inventory_sync.settings import Settings, settings


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(prog="inventory-sync", description="Maintain the inventory search index")
	sub = parser.add_subparsers(dest="command", required=True)
	sub.add_parser("reindex", help="Drop and rebuild the index from a full table scan")
	sub.add_parser("ensure-index", help="Create the index if it does not exist")
	sub.add_parser("status", help="Show whether the index exists and how many documents it holds")
	replay = sub.add_parser("replay", help="Apply a JSON file of table stream records")
	replay.add_argument("path", type=Path, help='File holding {"Records": [...]} or a list of records')
	return parser.parse_args(argv)


def _load_records(path: Path) -> list[dict[str, Any]]:
	data = json.loads(path.read_text())
	if isinstance(data, dict):
		return list(data.get("Records") or [])
	return list(data)


async def _dispatch(args: argparse.Namespace, components: Components) -> tuple[int, dict[str, Any]]:
	if args.command == "reindex":
		summary = await components.refresh_processor.run()
		return (0 if summary.ok else 1), summary.to_dict()
	if args.command == "ensure-index":
		created = await components.synchronizer.ensure_index_exists()
		return 0, {"index": components.descriptor.name, "created": created}
	if args.command == "status":
		return 0, asdict(await components.synchronizer.status())
	report = await components.change_processor.process_batch(_load_records(args.path))
	return (0 if report.ok else 1), report.to_dict()


async def run(args: argparse.Namespace, config: Settings, *, components: Components | None = None) -> int:
	owned = components is None
	try:
		components = components or build_components(config)
	except exceptions.ConfigurationError as exc:
		print(json.dumps({"error": exc.kind, "detail": exc.detail}), file=sys.stderr)
		return 2
	tokens = obs_logging.bind_context(invocation_id=str(uuid4()), trigger="cli", index=components.descriptor.name)
	try:
		code, payload = await _dispatch(args, components)
	except exceptions.SyncError as exc:
		code, payload = 1, {"error": exc.kind, "phase": exc.phase, "detail": exc.detail}
	finally:
		obs_logging.reset_context(tokens)
		if owned:
			await components.close()
	print(json.dumps(payload, indent=2, default=str))
	return code


def main(argv: Sequence[str] | None = None) -> None:
	args = _parse_args(argv)
	obs_logging.configure_logging(settings)
	raise SystemExit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
	main()
