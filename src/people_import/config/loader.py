from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.fields import FieldKey

"""Config loader for the people import.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the bundled JSON schema
- Apply defaults and the PEOPLE_IMPORT_API_URL environment override
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")
API_URL_ENV = "PEOPLE_IMPORT_API_URL"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_FILE_ROWS = 2000
DEFAULT_MAX_PREVIEW_ROWS = 1000


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ServiceConfig:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class LimitsConfig:
    max_file_rows: int = DEFAULT_MAX_FILE_ROWS
    max_preview_rows: int = DEFAULT_MAX_PREVIEW_ROWS


@dataclass(frozen=True)
class ImportConfig:
    service: ServiceConfig
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    mapping: dict[FieldKey, str | None] = field(default_factory=dict)  # overrides on top of the suggestion
    auto_exclude: bool = False
    skip_incomplete: bool = False
    audit_log_dir: str = "./logs"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails schema validation.
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


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    svc_raw = data["service"]
    base_url = os.getenv(API_URL_ENV) or svc_raw["base_url"]
    service = ServiceConfig(
        base_url=base_url.rstrip("/"),
        timeout_seconds=float(svc_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
    )
    limits_raw = data.get("limits") or {}
    limits = LimitsConfig(
        max_file_rows=limits_raw.get("max_file_rows", DEFAULT_MAX_FILE_ROWS),
        max_preview_rows=limits_raw.get("max_preview_rows", DEFAULT_MAX_PREVIEW_ROWS),
    )
    # schema restricts keys to FieldKey values
    mapping = {FieldKey(k): v for k, v in (data.get("mapping") or {}).items()}
    return ImportConfig(
        service=service,
        limits=limits,
        mapping=mapping,
        auto_exclude=bool(data.get("auto_exclude", False)),
        skip_incomplete=bool(data.get("skip_incomplete", False)),
        audit_log_dir=data.get("audit_log_dir", "./logs"),
    )
