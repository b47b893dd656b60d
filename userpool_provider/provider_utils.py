"""
A set of utils for use in resource providers.

Keep imports from the rest of the package out of here, so that a resource provider can be packaged with this
module alone.
"""

import json
from copy import deepcopy
from pathlib import Path
from typing import Optional

from jsonschema import Draft7Validator


# ========= Helpers for boto calls ==========


def deselect_attributes(model: dict, params: list[str]) -> dict:
    return {k: v for k, v in model.items() if k not in params}


def select_attributes(model: dict, params: list[str]) -> dict:
    return {k: v for k, v in model.items() if k in params}


def remove_empty_values(obj: dict) -> dict:
    """Remove None values and empty strings, lists and dicts from the top level of the given dict."""
    return {k: v for k, v in obj.items() if v is not None and v != "" and v != [] and v != {}}


# ========= Schema helpers ==========


def get_schema_path(file_path: Path) -> dict:
    """Loads the ``<module>.schema.json`` that sits next to the given provider module."""
    file_name_base = file_path.name.removesuffix(".py")
    with Path(file_path).parent.joinpath(f"{file_name_base}.schema.json").open() as fd:
        return json.load(fd)


def get_schema_property_names(schema: dict, key: str) -> list[str]:
    """
    Returns the top-level property names listed under ``key`` in a resource schema,
    e.g. ``get_schema_property_names(schema, "createOnlyProperties") == ["UserPoolName", ...]``.
    """
    return [path.removeprefix("/properties/") for path in schema.get(key, [])]


def get_property_default(schema: dict, property_name: str):
    return schema.get("properties", {}).get(property_name, {}).get("default")


def get_changed_properties(desired: dict, previous: Optional[dict], property_names: list[str]) -> list[str]:
    """
    Returns the names of all given properties whose value differs between the desired and the previous state.
    A missing previous state means that every property set in the desired state counts as changed.
    """
    previous = previous or {}
    return [name for name in property_names if desired.get(name) != previous.get(name)]


def validate_properties(schema: dict, properties: dict) -> list[str]:
    """
    Validates the given resource properties against the resource schema.

    Read-only properties are the remote service's to set, so they are not validated.

    :return: a list of human-readable violations, empty if the properties are valid
    """
    read_only = get_schema_property_names(schema, "readOnlyProperties")
    validator = Draft7Validator(schema)
    errors = sorted(
        validator.iter_errors(deselect_attributes(deepcopy(properties), read_only)),
        key=lambda e: list(e.absolute_path),
    )
    messages = []
    for error in errors:
        location = "/".join(str(p) for p in error.absolute_path)
        messages.append(f"{location}: {error.message}" if location else error.message)
    return messages
