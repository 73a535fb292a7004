"""JSON text encoding shared by the timeline entities"""

import json
import math
from typing import Any, Optional

from .errors import ParseError


def dumps(data: dict) -> str:
    return json.dumps(data, ensure_ascii=False)


def loads(text: Any, entity: str) -> dict:
    """Decode entity text into a dict, raising ParseError on anything else"""
    if isinstance(text, dict):
        return text
    if not isinstance(text, (str, bytes, bytearray)):
        raise ParseError(f"{entity}: expected JSON text, got {type(text).__name__}")
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ParseError(f"{entity}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ParseError(f"{entity}: expected a JSON object, got {type(data).__name__}")
    return data


def nested(data: dict, key: str, entity: str) -> Optional[dict]:
    """
    Read a nested entity stored either as an object or as encoded text.

    Older saves store children as JSON strings inside the parent JSON.
    """
    value = data.get(key)
    if value is None:
        return None
    return loads(value, f"{entity}.{key}")


def as_number(value: Any, entity: str, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"{entity}: field '{key}' must be a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ParseError(f"{entity}: field '{key}' must be finite, got {value!r}")
    return value
