"""Standardized API response wrappers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, TypeAdapter

_JSON = TypeAdapter(Any)


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    return _JSON.dump_python(data, mode="json")


def wrap_response(
    data: Any,
    *,
    total_count: int | None = None,
    source: str | None = "ComexStat",
    links: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build a standardized API response dict; records use camelCase keys."""
    if total_count is None and isinstance(data, list):
        total_count = len(data)
    meta = {"total_count": total_count, "source": source}
    return {
        "data": _jsonable(data),
        "meta": {k: v for k, v in meta.items() if v is not None},
        "links": links or {},
    }


def error_response(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a standardized error response dict."""
    err: dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"error": err}
