"""Reporter config file loading.

Loads a JSON document and validates it against the embedded draft-07 schema
below. Structural violations raise ``ConfigError``; the returned dict feeds
``ReporterConfig.from_mapping``.

Example file::

    {
      "hosts": ["http://es-1:9200", "http://es-2:9200"],
      "index": "metrics",
      "index_date_format": "%Y-%m",
      "prefix": "checkout",
      "rate_unit": "seconds",
      "duration_unit": "milliseconds",
      "bulk_size": 2500
    }
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any

import jsonschema

from ..utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

_UNITS = ["nanoseconds", "microseconds", "milliseconds", "seconds", "minutes", "hours", "days"]

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "hosts": {"type": "array", "items": {"type": "string", "minLength": 1}, "minItems": 1},
        "index": {"type": "string", "pattern": "^[a-z0-9][a-z0-9._-]*$"},
        "index_date_format": {"type": ["string", "null"]},
        "prefix": {"type": ["string", "null"]},
        "rate_unit": {"type": "string", "enum": _UNITS},
        "duration_unit": {"type": "string", "enum": _UNITS},
        "percolation_prefix": {"type": ["string", "null"]},
        "bulk_size": {"type": "integer", "minimum": 1},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "template_pattern_check": {"type": "boolean"},
        "additional_fields": {"type": "object"},
    },
    "additionalProperties": False,
}


def validate_config(cfg: dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=cfg, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Config schema validation error: {e.message} (path: {'/'.join(str(p) for p in e.path)})") from e


def load_config_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    try:
        with open(path, encoding='utf-8') as fh:
            cfg = json.load(fh)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    validate_config(cfg)
    logger.debug("Loaded reporter config from %s (%d keys)", path, len(cfg))
    return cfg


__all__ = ["CONFIG_SCHEMA", "validate_config", "load_config_file"]
