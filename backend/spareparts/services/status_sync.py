# backend/spareparts/services/status_sync.py
"""
Mirror fulfillment task status into the owning order.

The task is the party's view, the order the company's. After a task update
has been committed, ``sync_task`` writes the mapped order status in a fresh
session. It may fail on its own (lock timeout, dropped connection); the task
update stays committed and the caller gets a ``SyncFailure`` warning.
``reconcile`` repairs whatever a failed sync left behind.

    task        partner order          supplier order
    pending     assigned_to_partner    assigned_to_supplier
    separated   partner_processing     supplier_processing
    sent        partner_processing     waiting_delivery
    delivered   waiting_delivery       waiting_delivery
    cancelled   admin_ordered (assignment released)
"""
from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..core.errors import SyncFailure
from ..core.locking import lock_for_update
from ..domain.lifecycle import ensure_order_transition, can_order_transition, as_order_status
from ..domain.statuses import OrderStatus, TaskStatus, PartyType
from ..models import FulfillmentTask, SparePartOrder, FulfillmentParty

logger = logging.getLogger(__name__)

O = OrderStatus
T = TaskStatus

PARTNER_MIRROR: Dict[TaskStatus, OrderStatus] = {
    T.PENDING: O.ASSIGNED_TO_PARTNER,
    T.SEPARATED: O.PARTNER_PROCESSING,
    T.SENT: O.PARTNER_PROCESSING,
    T.DELIVERED: O.WAITING_DELIVERY,
    T.CANCELLED: O.ADMIN_ORDERED,
}

SUPPLIER_MIRROR: Dict[TaskStatus, OrderStatus] = {
    T.PENDING: O.ASSIGNED_TO_SUPPLIER,
    T.SEPARATED: O.SUPPLIER_PROCESSING,
    T.SENT: O.WAITING_DELIVERY,
    T.DELIVERED: O.WAITING_DELIVERY,
    T.CANCELLED: O.ADMIN_ORDERED,
}

# the warehouse owns the order from here on
_NOT_MIRRORED = frozenset({
    O.AVAILABLE, O.CONSUMED, O.DELIVERED, O.CANCELLED, O.REMOVED_FROM_ORDERING,
})


def mirrored_order_status(task_status, party_type) -> OrderStatus:
    table = PARTNER_MIRROR if PartyType(party_type) == PartyType.PARTNER else SUPPLIER_MIRROR
    return table[TaskStatus(task_status)]


def release_assignment(order: SparePartOrder) -> None:
    order.AssignedPartnerID = None
    order.AssignedSupplierID = None
    order.AssignedAt = None
    order.AssignedBy = None


def apply_task_to_order(db: Session, task: FulfillmentTask, order: SparePartOrder) -> Optional[OrderStatus]:
    """
    Write the mirror of ``task`` into ``order`` (already locked by the caller).
    Returns the new order status, or None when the order was left alone.
    Does not commit.
    """
    current = as_order_status(order.Status_s)
    if current in _NOT_MIRRORED:
        return None
    # a task of a party the order is no longer assigned to is history
    if order.assigned_party_id != task.PartyID:
        return None

    party = task.party or db.get(FulfillmentParty, task.PartyID)
    target = mirrored_order_status(task.Status_s, party.PartyType)

    if task.SupplierPrice is not None and order.ActualCost is None:
        order.ActualCost = task.SupplierPrice
    if task.PartyNotes and order.SupplierNotes != task.PartyNotes:
        order.SupplierNotes = task.PartyNotes

    if target == current:
        return None
    if not can_order_transition(current, target):
        # e.g. partner_processing -> assigned_to_partner would be a step back
        logger.debug("sync skipped for order #%s: %s -> %s not allowed", order.OrderID, current, target)
        return None

    order.Status_s = ensure_order_transition(current, target).value
    if TaskStatus(task.Status_s) == T.CANCELLED:
        release_assignment(order)
    return target


class StatusSynchronizer:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def sync_task(self, task_id: int) -> Optional[OrderStatus]:
        """Mirror one committed task. Raises SyncFailure, never anything else."""
        db = self._session_factory()
        order_id = None
        try:
            task = db.get(FulfillmentTask, task_id)
            if task is None:
                raise SyncFailure(f"Task #{task_id} not found while syncing.", task_id=task_id)
            order_id = task.OrderID
            order = lock_for_update(db, SparePartOrder, order_id)
            if order is None:
                raise SyncFailure(f"Order #{order_id} not found while syncing.", task_id=task_id, order_id=order_id)

            new_status = apply_task_to_order(db, task, order)
            db.commit()
            if new_status is not None:
                logger.info("order #%s mirrored to %s from task #%s", order_id, new_status, task_id)
            return new_status
        except SyncFailure as w:
            db.rollback()
            logger.warning("status sync failed: %s", w.message)
            raise
        except Exception as e:
            db.rollback()
            logger.exception("status sync failed (task=%s, order=%s)", task_id, order_id)
            raise SyncFailure(
                f"Order status could not be updated: {type(e).__name__}: {e}",
                task_id=task_id, order_id=order_id,
            ) from e
        finally:
            db.close()

    def reconcile(self, db: Session) -> Dict[str, object]:
        """
        Re-apply the mirror for every order that still has an assignment or
        a task in flight. Safe to run repeatedly.
        """
        try:
            tasks: List[FulfillmentTask] = (
                db.query(FulfillmentTask)
                .join(SparePartOrder, SparePartOrder.OrderID == FulfillmentTask.OrderID)
                .filter(SparePartOrder.Status_s.notin_([s.value for s in _NOT_MIRRORED]))
                .order_by(FulfillmentTask.TaskID.asc())
                .all()
            )
            updated: List[int] = []
            for task in tasks:
                order = lock_for_update(db, SparePartOrder, task.OrderID)
                if order is None:
                    continue
                if apply_task_to_order(db, task, order) is not None:
                    updated.append(order.OrderID)
            db.commit()
            if updated:
                logger.info("reconcile updated %d order(s): %s", len(updated), updated)
            return {"checked": len(tasks), "updated": updated}
        except HTTPException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.exception("reconcile error")
            raise HTTPException(status_code=500, detail=f"reconcile error: {type(e).__name__}: {e}")

    def reconcile_once(self) -> Dict[str, object]:
        db = self._session_factory()
        try:
            return self.reconcile(db)
        finally:
            db.close()
