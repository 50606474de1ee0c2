# backend/spareparts/core/api.py
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional, Sequence
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# every JSON response carries an explicit utf-8 charset
class UTF8JSONResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"

def list_meta(items: Optional[Sequence[Any]] = None, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {}
    if items is not None:
        meta["count"] = len(items)
    if extra:
        meta.update(extra)
    return meta

def warnings_meta(warnings: Iterable[Any], extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Non-fatal outcomes (routing miss, sync failure) travel next to the data."""
    meta: Dict[str, Any] = dict(extra or {})
    items = [w.to_dict() if hasattr(w, "to_dict") else str(w) for w in warnings]
    if items:
        meta["warnings"] = items
    return meta

def ok(data: Any = True, meta: Optional[Dict[str, Any]] = None, status_code: int = 200):
    payload: Dict[str, Any] = {"ok": True, "data": jsonable_encoder(data)}
    if meta:
        payload["meta"] = jsonable_encoder(meta)
    return UTF8JSONResponse(content=payload, status_code=status_code)

def fail(error: str, status_code: int = 400, meta: Optional[Dict[str, Any]] = None):
    payload: Dict[str, Any] = {"ok": False, "error": error}
    if meta:
        payload["meta"] = jsonable_encoder(meta)
    return UTF8JSONResponse(content=payload, status_code=status_code)
