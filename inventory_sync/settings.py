"""Settings for the inventory index sync service."""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    environment: Optional[str] = _env_field(None, "ENVIRONMENT", "APP_ENV")
    entity_kind: str = _env_field("inventory_item", "ENTITY_KIND")
    index_tables: Annotated[Dict[str, str], NoDecode] = _env_field({"inventory_item": "vehicle_inventory"}, "INDEX_TABLES")

    # Document store (search engine)
    search_backend: str = _env_field("elasticsearch", "SEARCH_BACKEND")
    elasticsearch_url: str = _env_field("http://localhost:9200", "ELASTICSEARCH_URL", "elasticSearchURL")
    elasticsearch_request_timeout: float = _env_field(30.0, "ELASTICSEARCH_REQUEST_TIMEOUT")

    # Record store (source of truth)
    record_backend: str = _env_field("dynamodb", "RECORD_BACKEND")
    aws_region: str = _env_field("us-east-1", "AWS_REGION", "AWS_DEFAULT_REGION")
    dynamodb_endpoint_url: Optional[str] = _env_field(None, "DYNAMODB_ENDPOINT_URL")
    record_key_attribute: str = _env_field("clientIdentifier", "RECORD_KEY_ATTRIBUTE")
    scan_page_size: int = _env_field(500, "SCAN_PAGE_SIZE")

    # Change event retries for transient store failures
    retry_attempts: int = _env_field(3, "RETRY_ATTEMPTS")
    retry_backoff_seconds: float = _env_field(0.5, "RETRY_BACKOFF_SECONDS")
    retry_backoff_max_seconds: float = _env_field(5.0, "RETRY_BACKOFF_MAX_SECONDS")

    # Scheduled full refresh; disabled when unset
    refresh_interval_seconds: Optional[float] = _env_field(None, "REFRESH_INTERVAL_SECONDS")

    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
    obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")
    service_name: str = _env_field("inventory-index-sync", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("index_tables", mode="before")
    def _parse_index_tables(cls, value):  # type: ignore[override]
        """Normalise env formats for index_tables.

        Supports:
        - JSON object string (e.g. '{"inventory_item": "vehicle_inventory"}')
        - comma-separated pairs (e.g. 'inventory_item=vehicle_inventory,dealer=dealers')
        - a mapping
        """
        if value in (None, ""):
            return {}
        if isinstance(value, dict):
            return {str(k).strip(): str(v).strip() for k, v in value.items()}
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("{"):
                data = json.loads(text)
                return {str(k).strip(): str(v).strip() for k, v in data.items()}
            pairs: Dict[str, str] = {}
            for part in text.split(","):
                if "=" not in part:
                    continue
                kind, _, base = part.partition("=")
                if kind.strip():
                    pairs[kind.strip()] = base.strip()
            return pairs
        return value

    @field_validator("search_backend", "record_backend", mode="before")
    def _lower_backend(cls, value: Any):  # type: ignore[override]
        if isinstance(value, str):
            return value.strip().lower()
        return value


def _normalise_level(level: str) -> str:
    return level.upper()


settings = Settings()
settings.obs_log_level = _normalise_level(settings.obs_log_level)
