"""
Response envelopes shared by every router.

Successful responses carry ``success``, ``data`` and a ``meta.timestamp``;
failures carry an ``error`` block with a machine readable code.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _meta() -> Dict[str, str]:
    return {"timestamp": datetime.now(timezone.utc).isoformat()}


def success(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data), "meta": _meta()}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def created(data: Any = None, message: str = "Resource created successfully") -> JSONResponse:
    return success(data, message, 201)


def pagination_block(page: int, limit: int, total: int) -> Dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": jsonable_encoder(details or {})},
        "meta": _meta(),
    }
