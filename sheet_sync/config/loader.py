from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (config/sync.yml by default)
- Validate it against the bundled JSON schema (schema.json)
- Overlay environment variables (already populated from .env by the CLI);
  environment values take precedence over the YAML file
- Apply defaults and check that every required setting ended up present
"""

SCHEMA_PATH = Path(__file__).with_name("schema.json")

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_AUTHORITY_URL = "https://login.microsoftonline.com"
DEFAULT_SOURCE_URL = "https://jsonplaceholder.typicode.com/users"
DEFAULT_FIELDS = ("Position Applied For", "Company", "City")
DEFAULT_FILL_COLOR = "FFD3D3D3"

# config key -> 環境変数 (env が優先)
ENV_OVERRIDES: dict[tuple[str, str], str] = {
    ("remote", "tenant_id"): "AZURE_TENANT_ID",
    ("remote", "client_id"): "AZURE_CLIENT_ID",
    ("remote", "client_secret"): "AZURE_CLIENT_SECRET",
    ("remote", "site_id"): "AZURE_SHAREPOINT_SITE_ID",
    ("remote", "file_name"): "AZURE_FILE_NAME",
    ("source", "url"): "RECORD_SOURCE_URL",
}
# EXCEL_FILE_PATH (present in existing .env files) is not an output path
OUTPUT_PATH_ENV = "SHEET_SYNC_OUTPUT"

REQUIRED_SETTINGS = [
    ("remote", "tenant_id"),
    ("remote", "client_id"),
    ("remote", "client_secret"),
    ("remote", "site_id"),
    ("remote", "file_name"),
]


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class RemoteConfig:
    tenant_id: str
    client_id: str
    client_secret: str
    site_id: str
    file_name: str  # drive root からの相対パス
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    authority_url: str = DEFAULT_AUTHORITY_URL
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class SourceConfig:
    url: str = DEFAULT_SOURCE_URL
    format: str = "users"  # users | records


@dataclass(frozen=True)
class SyncSettings:
    worksheet: str | None = None  # None -> first worksheet
    fields: tuple[str, ...] = DEFAULT_FIELDS  # columns 6, 7, 8
    fill_color: str = DEFAULT_FILL_COLOR
    mark_inserted_rows: bool = False
    unrecognized_values: str = "empty"  # empty | error


@dataclass(frozen=True)
class AppConfig:
    remote: RemoteConfig
    source: SourceConfig = field(default_factory=SourceConfig)
    sync: SyncSettings = field(default_factory=SyncSettings)
    output_path: str | None = None


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing/invalid or data not matching it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    merged = {section: dict(data.get(section) or {}) for section in ("remote", "source", "sync")}
    for (section, key), var in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            merged[section][key] = value
    merged["output_path"] = env.get(OUTPUT_PATH_ENV) or data.get("output_path")
    return merged


def load_config(path: Path, env: Mapping[str, str] | None = None) -> AppConfig:
    """Load, validate and env-merge the configuration file.

    Args:
        path: YAML config file
        env: environment mapping (defaults to ``os.environ``)

    Raises:
        ConfigError: file missing, invalid YAML, schema violation or a
            required setting missing after the env overlay
    """
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    merged = _apply_env(data, os.environ if env is None else env)

    missing = [
        f"{section}.{key} ({ENV_OVERRIDES[(section, key)]})"
        for section, key in REQUIRED_SETTINGS
        if not merged[section].get(key)
    ]
    if missing:
        raise ConfigError(f"missing required settings: {', '.join(missing)}")

    remote_raw = merged["remote"]
    remote = RemoteConfig(
        tenant_id=remote_raw["tenant_id"],
        client_id=remote_raw["client_id"],
        client_secret=remote_raw["client_secret"],
        site_id=remote_raw["site_id"],
        file_name=str(remote_raw["file_name"]).lstrip("/"),
        graph_base_url=str(remote_raw.get("graph_base_url", DEFAULT_GRAPH_BASE_URL)).rstrip("/"),
        authority_url=str(remote_raw.get("authority_url", DEFAULT_AUTHORITY_URL)).rstrip("/"),
        timeout_seconds=float(remote_raw.get("timeout_seconds", 30.0)),
    )
    source_raw = merged["source"]
    source = SourceConfig(
        url=source_raw.get("url") or DEFAULT_SOURCE_URL,
        format=source_raw.get("format", "users"),
    )
    sync_raw = merged["sync"]
    fill_color = str(sync_raw.get("fill_color", DEFAULT_FILL_COLOR)).upper()
    if len(fill_color) == 6:  # RGB -> ARGB
        fill_color = "FF" + fill_color
    sync = SyncSettings(
        worksheet=sync_raw.get("worksheet"),
        fields=tuple(sync_raw.get("fields", DEFAULT_FIELDS)),
        fill_color=fill_color,
        mark_inserted_rows=bool(sync_raw.get("mark_inserted_rows", False)),
        unrecognized_values=sync_raw.get("unrecognized_values", "empty"),
    )
    return AppConfig(remote=remote, source=source, sync=sync, output_path=merged["output_path"])
