"""JSON-compatible typing aliases and the codec shared across the project."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Union

from pydantic import TypeAdapter

type JSONPrimitive = Union[str, int, float, bool, None]
type JSONValue = JSONPrimitive | list[JSONValue] | Mapping[str, JSONValue]
type JSONObject = Mapping[str, JSONValue]
type MutableJSONObject = dict[str, JSONValue]

_JSON_VALUE_ADAPTER: TypeAdapter[JSONValue] = TypeAdapter(JSONValue)


def encode_json_value(value: JSONValue) -> bytes:
    """Serialize a JSON value to UTF-8 encoded JSON text.

    Args:
        value (JSONValue): Value to serialize.

    Returns:
        bytes: Encoded JSON document.
    """
    validated = _JSON_VALUE_ADAPTER.validate_python(value, strict=True)
    return _JSON_VALUE_ADAPTER.dump_json(validated)


def decode_json_value(payload: Union[str, bytes]) -> JSONValue:
    """Parse JSON text into a JSON value.

    Raises ``pydantic.ValidationError`` when the payload is not valid JSON.
    """
    return _JSON_VALUE_ADAPTER.validate_json(payload)
