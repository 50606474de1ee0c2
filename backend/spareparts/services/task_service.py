# backend/spareparts/services/task_service.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, PermissionDeniedError, ProcurementWarning, SyncFailure, ValidationError
from ..core.locking import lock_for_update
from ..core.security import Actor
from ..domain.lifecycle import ensure_task_transition
from ..domain.money import optional_money
from ..domain.statuses import OrderStatus, TaskStatus
from ..models import FulfillmentTask
from ..models._base import utcnow
from . import notifications as ev
from .notifications import NotificationDispatcher, NotificationEvent
from .registry import get_party
from .status_sync import StatusSynchronizer

logger = logging.getLogger(__name__)

# timestamp column stamped when a task enters the status
_STAMP = {
    TaskStatus.SEPARATED: "ConfirmedAt",
    TaskStatus.SENT: "SentAt",
    TaskStatus.DELIVERED: "DeliveredAt",
    TaskStatus.CANCELLED: "CancelledAt",
}


@dataclass
class TaskAdvanceResult:
    task: FulfillmentTask
    order_status: Optional[OrderStatus] = None
    warnings: List[ProcurementWarning] = field(default_factory=list)


def ensure_task_access(task: FulfillmentTask, actor: Actor) -> None:
    """Admins see every task; a party user only its own."""
    if actor.is_admin:
        return
    if actor.is_party and actor.party_id is not None and actor.party_id == task.PartyID:
        return
    raise PermissionDeniedError(f"Task #{task.TaskID} belongs to another fulfillment party.")


def get_task(db: Session, task_id: int, actor: Optional[Actor] = None) -> FulfillmentTask:
    task = db.get(FulfillmentTask, task_id)
    if not task:
        raise NotFoundError(f"Task #{task_id} not found.")
    if actor is not None:
        ensure_task_access(task, actor)
    return task


def advance_task_status(
    db: Session, *,
    task_id: int,
    new_status,
    actor: Actor,
    tracking_number: Optional[str] = None,
    supplier_price=None,
    notes: Optional[str] = None,
    synchronizer: Optional[StatusSynchronizer] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> TaskAdvanceResult:
    """
    Commit the task move first, then mirror it into the order. A failed
    mirror comes back as a SyncFailure warning and the task move stands.
    """
    try:
        target = TaskStatus(new_status)
    except ValueError:
        raise ValidationError(f"Task status must be one of {list(TaskStatus.values())}.")
    price = optional_money(supplier_price, "Supplier price")

    try:
        task = lock_for_update(db, FulfillmentTask, task_id)
        if not task:
            raise NotFoundError(f"Task #{task_id} not found.")
        ensure_task_access(task, actor)
        # the assigned party owns an active task; the admin can only call it off
        if actor.is_admin and target != TaskStatus.CANCELLED:
            raise PermissionDeniedError(f"Task #{task_id} is advanced by its fulfillment party; admins can only cancel it.")

        previous = task.Status_s
        task.Status_s = ensure_task_transition(task.Status_s, target).value
        setattr(task, _STAMP[target], utcnow())
        if tracking_number is not None:
            task.TrackingNumber = tracking_number.strip() or None
        if price is not None:
            task.SupplierPrice = price
        if notes is not None:
            task.PartyNotes = notes
        db.add(task)
        db.commit()
        db.refresh(task)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("advance_task_status error (TaskID=%s)", task_id)
        raise HTTPException(status_code=500, detail=f"advance_task_status error: {type(e).__name__}: {e}")

    logger.info("task #%s %s -> %s by user #%s", task.TaskID, previous, task.Status_s, actor.user_id)
    result = TaskAdvanceResult(task=task)

    if synchronizer is not None:
        try:
            result.order_status = synchronizer.sync_task(task.TaskID)
        except SyncFailure as w:
            result.warnings.append(w)
        # the mirror was written through another session
        db.expire_all()

    if notifier is not None:
        notifier.notify(NotificationEvent(
            event_type=ev.TASK_STATUS_CHANGED,
            title=f"{task.OrderNumber or 'Task #%s' % task.TaskID}: {previous} -> {task.Status_s}",
            order_id=task.OrderID,
            party_id=task.PartyID,
            payload={"task_id": task.TaskID, "status": task.Status_s},
        ))
    return result


def get_tasks_for_party(db: Session, party_id: int, status: Optional[str] = None) -> List[FulfillmentTask]:
    get_party(db, party_id)
    q = db.query(FulfillmentTask).filter(FulfillmentTask.PartyID == party_id)
    if status:
        try:
            q = q.filter(FulfillmentTask.Status_s == TaskStatus(status).value)
        except ValueError:
            raise ValidationError(f"Task status must be one of {list(TaskStatus.values())}.")
    return q.order_by(FulfillmentTask.CreatedAt.desc(), FulfillmentTask.TaskID.desc()).all()


def list_tasks(db: Session, *, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[FulfillmentTask]:
    q = db.query(FulfillmentTask)
    if status:
        q = q.filter(FulfillmentTask.Status_s == status)
    return (
        q.order_by(FulfillmentTask.TaskID.desc())
        .offset(max(0, offset))
        .limit(max(1, min(limit, 500)))
        .all()
    )


def party_stats(db: Session, party_id: int) -> Dict[str, int]:
    get_party(db, party_id)
    rows = (
        db.query(FulfillmentTask.Status_s, func.count(FulfillmentTask.TaskID))
        .filter(FulfillmentTask.PartyID == party_id)
        .group_by(FulfillmentTask.Status_s)
        .all()
    )
    stats = {s: 0 for s in TaskStatus.values()}
    for status, n in rows:
        stats[status] = int(n)
    stats["total"] = sum(stats.values())
    return stats
