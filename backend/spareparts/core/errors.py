# backend/spareparts/core/errors.py
"""
Procurement error taxonomy.

Aborting errors subclass HTTPException so services can keep the
``except HTTPException: db.rollback(); raise`` pattern and the global
envelope handler in main.py renders them without extra mapping.

Warnings (routing miss, sync failure) are never raised: services collect
them and routers return them in ``meta.warnings``.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ProcurementError(HTTPException):
    code = "PROCUREMENT_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.http_status, detail=detail)

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class ValidationError(ProcurementError):
    code = "VALIDATION_ERROR"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ProcurementError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class ConflictError(ProcurementError):
    code = "CONFLICT"
    http_status = status.HTTP_409_CONFLICT


class InsufficientStockError(ConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, on_hand: int, requested: int):
        self.on_hand = on_hand
        self.requested = requested
        super().__init__(f"Insufficient stock. On hand: {on_hand}, requested: {requested}")


class PermissionDeniedError(ProcurementError):
    code = "FORBIDDEN"
    http_status = status.HTTP_403_FORBIDDEN


# ---- non-fatal outcomes ----

class ProcurementWarning(UserWarning):
    code = "WARNING"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            out.update(self.context)
        return out


class RoutingUnresolvedError(ProcurementWarning):
    """No registry entry matched the brand; the order stays unassigned."""
    code = "ROUTING_UNRESOLVED"


class SyncFailure(ProcurementWarning):
    """Task status was saved but the order mirror could not be written."""
    code = "SYNC_FAILURE"

    def __init__(self, message: str, *, task_id: Optional[int] = None, order_id: Optional[int] = None):
        super().__init__(message, task_id=task_id, order_id=order_id)
