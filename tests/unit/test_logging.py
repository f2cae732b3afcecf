import json
import logging

from inventory_sync.obs import logging as obs_logging


def _record(msg: str = "index_sync.rebuild.bulk", level: int = logging.INFO, **extra) -> logging.LogRecord:
	record = logging.LogRecord("inventory_sync.test", level, __file__, 1, msg, (), None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_emits_json_with_bound_context():
	formatter = obs_logging.JSONLogFormatter(service="inventory-index-sync", env="dev", commit="abc123")
	tokens = obs_logging.bind_context(invocation_id="inv-1", trigger="cli", index="dev_vehicle_inventory")
	try:
		payload = json.loads(formatter.format(_record(count=3)))
	finally:
		obs_logging.reset_context(tokens)

	assert payload["msg"] == "index_sync.rebuild.bulk"
	assert payload["level"] == "info"
	assert payload["service"] == "inventory-index-sync"
	assert payload["invocation_id"] == "inv-1"
	assert payload["trigger"] == "cli"
	assert payload["index"] == "dev_vehicle_inventory"
	assert payload["count"] == 3
	assert obs_logging.current_invocation_id() is None


def test_formatter_redacts_sensitive_fields():
	formatter = obs_logging.JSONLogFormatter(service="svc", env=None, commit="x")

	payload = json.loads(formatter.format(_record(admin_token="s3cret", headers={"Authorization": "Bearer s3cret"})))

	assert payload["admin_token"] == "[redacted]"
	assert payload["headers"]["Authorization"] == "[redacted]"


def test_formatter_truncates_long_strings():
	formatter = obs_logging.JSONLogFormatter(service="svc", env=None, commit="x")

	payload = json.loads(formatter.format(_record(detail="x" * 1000)))

	assert len(payload["detail"]) < 300


def test_sampling_filter_keeps_warnings():
	sampler = obs_logging.InfoSamplingFilter(rate=0.0)

	assert sampler.filter(_record(level=logging.INFO)) is False
	assert sampler.filter(_record(level=logging.WARNING)) is True
	assert obs_logging.InfoSamplingFilter(rate=1.0).filter(_record()) is True
