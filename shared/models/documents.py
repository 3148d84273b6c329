"""Conversion between models and store documents.

The store rejects empty optional fields, so every write goes through
``sanitize_document``: ``None`` values are dropped at every nesting level and
all other fields are left untouched.
"""

from typing import Any

from pydantic import BaseModel


def sanitize_document(doc: dict[str, Any]) -> dict[str, Any]:
    return {k: _sanitize_value(v) for k, v in doc.items() if v is not None}


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_document(value)
    if isinstance(value, list):
        return [_sanitize_value(v) for v in value]
    return value


def to_document(model: BaseModel) -> dict[str, Any]:
    """Serialize a model to a JSON-compatible camelCase document."""
    return sanitize_document(model.model_dump(by_alias=True, mode="json"))
