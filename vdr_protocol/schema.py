from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, cast

import jsonschema  # type: ignore[import-untyped]


@lru_cache(maxsize=None)
def load_schema(name: str) -> Dict[str, Any]:
    """Load a JSON schema shipped in ``vdr_protocol/schemas``."""
    with resources.files("vdr_protocol").joinpath(f"schemas/{name}").open(
        "r", encoding="utf-8"
    ) as f:
        return cast(Dict[str, Any], json.load(f))


def validation_error(instance: Any, schema_name: str) -> str | None:
    """Validate ``instance``; return the first error message, or None if valid."""
    try:
        jsonschema.validate(instance=instance, schema=load_schema(schema_name))
    except jsonschema.ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path)
        return f"{path}: {exc.message}" if path else exc.message
    return None
