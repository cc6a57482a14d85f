"""Packaged JSON Schemas for wire payloads and configuration."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import ValidationError, validators


@lru_cache(maxsize=None)
def load_validator(schema_name: str) -> Any:
    """Return a checked validator for one of the schemas in this package."""
    schema = json.loads(resources.files(__name__).joinpath(schema_name).read_text(encoding="utf-8"))
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def error_location(exc: ValidationError) -> str:
    """`` (commands.fire_1.token)`` for nested errors, empty at the root."""
    path = ".".join(str(p) for p in exc.path)
    return f" ({path})" if path else ""
