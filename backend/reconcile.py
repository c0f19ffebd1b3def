from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


@lru_cache(maxsize=None)
def _adapter(model: type[BaseModel], name: str) -> TypeAdapter:
    return TypeAdapter(model.model_fields[name].annotation)


def normalize(raw: Optional[Mapping[str, Any]], model: type[BaseModel]) -> dict[str, Any]:
    """Project a decoded record onto the model's canonical field set.

    Keys may use either the camelCase alias or the field name. A value that does
    not coerce to the field's type is dropped rather than failing the record,
    so the back-fill can supply it. Values are returned in JSON-compatible form.
    """
    out: dict[str, Any] = {}
    raw = raw or {}
    for name, info in model.model_fields.items():
        alias = info.alias or name
        value = raw[alias] if alias in raw else raw.get(name)
        if value is None:
            out[name] = None
            continue
        adapter = _adapter(model, name)
        try:
            out[name] = adapter.dump_python(adapter.validate_python(value), mode="json", by_alias=False)
        except ValidationError:
            out[name] = None
    return out


def _empty_value(model: type[BaseModel], name: str) -> Any:
    info = model.model_fields[name]
    if info.default_factory is not None:
        return info.default_factory()
    return info.default


def reconcile(
    ai: Optional[Mapping[str, Any]],
    fallback: Mapping[str, Any],
    model: type[BaseModel],
) -> tuple[dict[str, Any], list[str]]:
    """Merge two records field by field; returns (merged, back-filled field names).

    AI values win when present. Each missing AI field is taken from the fallback,
    or left at the model's empty value (null, or "" for text fields) when the
    fallback has nothing either. Fields are resolved independently.
    """
    ai_values = normalize(ai, model)
    fallback_values = normalize(fallback, model)

    merged: dict[str, Any] = {}
    backfilled: list[str] = []
    for name in model.model_fields:
        value = ai_values[name]
        if not is_missing(value):
            merged[name] = value
            continue
        substitute = fallback_values[name]
        if not is_missing(substitute):
            merged[name] = substitute
            backfilled.append(name)
        else:
            merged[name] = _empty_value(model, name)
    return merged, backfilled
