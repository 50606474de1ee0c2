# backend/spareparts/routers/tasks.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.api import ok, list_meta, warnings_meta
from ..core.db import get_db
from ..core.deps import get_notifier, get_synchronizer
from ..core.errors import PermissionDeniedError
from ..core.security import Actor, get_actor, require_roles
from ..schemas.task import TaskAdvanceIn, TaskRead, TaskStatusLiteral
from ..services import task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])

# admin or a portal user of a fulfillment party
Guard = require_roles("admin", "supplier", "business_partner")


@router.get("", dependencies=[Depends(Guard)])
def list_tasks(
    status_s: Optional[TaskStatusLiteral] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    if actor.is_admin:
        rows = task_service.list_tasks(db, status=status_s, limit=limit, offset=skip)
    else:
        if actor.party_id is None:
            raise PermissionDeniedError("User is not linked to a fulfillment party.")
        rows = task_service.get_tasks_for_party(db, actor.party_id, status=status_s)
    items = [TaskRead.model_validate(r) for r in rows]
    return ok(items, meta=list_meta(items))


@router.get("/{task_id}", dependencies=[Depends(Guard)])
def get_task(task_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return ok(TaskRead.model_validate(task_service.get_task(db, task_id, actor)))


@router.post("/{task_id}/status", dependencies=[Depends(Guard)])
def advance_task(
    task_id: int,
    payload: TaskAdvanceIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    synchronizer=Depends(get_synchronizer),
    notifier=Depends(get_notifier),
):
    """Task moves are final once saved; a failed order mirror shows up in meta.warnings."""
    result = task_service.advance_task_status(
        db,
        task_id=task_id,
        new_status=payload.Status,
        actor=actor,
        tracking_number=payload.TrackingNumber,
        supplier_price=payload.SupplierPrice,
        notes=payload.Notes,
        synchronizer=synchronizer,
        notifier=notifier,
    )
    meta = warnings_meta(
        result.warnings,
        {"order_status": result.order_status.value if result.order_status else None},
    )
    return ok(TaskRead.model_validate(result.task), meta=meta)
