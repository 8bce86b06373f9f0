"""Value <-> transport text codec and producer resolution."""

import inspect
import json
from typing import Any

from tagstash.types import Producer


def serialize(value: Any) -> str:
    """Serialize a value to JSON text for storage."""
    return json.dumps(value)


def deserialize(data: bytes | str | None) -> Any:
    """Deserialize stored JSON text. None passes through as a miss."""
    if data is None:
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data)


async def value_of(value: Producer) -> Any:
    """Resolve a plain value, a zero-arg callable or an awaitable."""
    if value is None:
        return None
    if callable(value):
        value = value()
    if inspect.isawaitable(value):
        value = await value
    return value
