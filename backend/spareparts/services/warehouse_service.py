# backend/spareparts/services/warehouse_service.py
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, InsufficientStockError, NotFoundError, PermissionDeniedError, ValidationError
from ..core.locking import lock_for_update
from ..core.security import Actor
from ..domain.constants import REASON_ALLOCATION, REASON_ALLOCATION_RETURN
from ..domain.lifecycle import ensure_order_transition, as_order_status
from ..domain.statuses import ActivityAction, AllocationStatus, OrderStatus, Role
from ..models import StockItem, PartsAllocation, PartsActivityLog, SparePartOrder
from ..models._base import utcnow
from . import notifications as ev
from .directory import ServiceDirectory
from .notifications import NotificationDispatcher, NotificationEvent

logger = logging.getLogger(__name__)


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only an admin can {action}.")


def _positive_int(value, label: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number.")
    if n <= 0:
        raise ValidationError(f"{label} must be greater than zero.")
    return n


def _lock_stock(db: Session, stock_item_id: int) -> StockItem:
    stock = lock_for_update(db, StockItem, stock_item_id)
    if not stock:
        raise NotFoundError(f"Stock item #{stock_item_id} not found.")
    return stock


def _order_on_hand(db: Session, order_id: int) -> int:
    total = db.query(func.coalesce(func.sum(StockItem.Quantity), 0)).filter(StockItem.OrderID == order_id).scalar()
    return int(total or 0)


def _mirror_stock_into_order(db: Session, order_id: Optional[int]) -> None:
    """
    available -> consumed once the order's stock is used up by allocations;
    consumed -> available when some comes back.
    """
    if order_id is None:
        return
    order = lock_for_update(db, SparePartOrder, order_id)
    if order is None:
        return
    current = as_order_status(order.Status_s)
    db.flush()
    on_hand = _order_on_hand(db, order_id)
    if current == OrderStatus.AVAILABLE and on_hand == 0:
        order.Status_s = ensure_order_transition(current, OrderStatus.CONSUMED).value
    elif current == OrderStatus.CONSUMED and on_hand > 0:
        order.Status_s = ensure_order_transition(current, OrderStatus.AVAILABLE).value
    else:
        return
    db.add(order)
    logger.info("order #%s -> %s (on hand %s)", order_id, order.Status_s, on_hand)


# -------- Allocation --------
def allocate_stock(
    db: Session, *,
    stock_item_id: int,
    service_id: int,
    technician_id: int,
    quantity: int,
    actor: Actor,
    notes: Optional[str] = None,
    directory: Optional[ServiceDirectory] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> PartsAllocation:
    _require_admin(actor, "allocate stock")
    qty = _positive_int(quantity, "Quantity")
    if service_id is None or technician_id is None:
        raise ValidationError("Service and technician are required for an allocation.")
    if directory is not None:
        if directory.get_service(service_id) is None:
            raise NotFoundError(f"Service #{service_id} not found.")
        if directory.get_technician(technician_id) is None:
            raise NotFoundError(f"Technician #{technician_id} not found.")

    try:
        stock = _lock_stock(db, stock_item_id)
        before = int(stock.Quantity or 0)
        # no partial decrement
        if qty > before:
            raise InsufficientStockError(on_hand=before, requested=qty)

        stock.Quantity = before - qty
        allocation = PartsAllocation(
            StockItemID=stock.StockItemID,
            ServiceID=service_id,
            TechnicianID=technician_id,
            Quantity=qty,
            AllocatedBy=actor.user_id,
            Notes=notes,
            Status_s=AllocationStatus.ALLOCATED.value,
        )
        db.add(allocation)
        db.flush()

        db.add(PartsActivityLog(
            StockItemID=stock.StockItemID,
            Action=ActivityAction.ALLOCATED.value,
            PreviousQuantity=before,
            NewQuantity=stock.Quantity,
            TechnicianID=technician_id,
            ServiceID=service_id,
            AllocationID=allocation.AllocationID,
            UserID=actor.user_id,
            Description=REASON_ALLOCATION.format(technician_id, service_id),
        ))
        db.add(stock)
        _mirror_stock_into_order(db, stock.OrderID)
        db.commit()
        db.refresh(allocation)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("allocate_stock error (StockItemID=%s, Qty=%s)", stock_item_id, qty)
        raise HTTPException(status_code=500, detail=f"allocate_stock error: {type(e).__name__}: {e}")

    logger.info(
        "allocation #%s: %s x stock #%s to technician #%s / service #%s",
        allocation.AllocationID, qty, stock_item_id, technician_id, service_id,
    )
    if notifier is not None:
        notifier.notify(NotificationEvent(
            event_type=ev.STOCK_ALLOCATED,
            title=f"Part allocated: {stock.PartName}",
            message=f"{qty} pcs for service #{service_id}",
            order_id=stock.OrderID,
            payload={"allocation_id": allocation.AllocationID, "technician_id": technician_id},
        ))
    return allocation


def _lock_allocation(db: Session, allocation_id: int) -> PartsAllocation:
    allocation = lock_for_update(db, PartsAllocation, allocation_id)
    if not allocation:
        raise NotFoundError(f"Allocation #{allocation_id} not found.")
    if allocation.Status_s != AllocationStatus.ALLOCATED.value:
        raise ConflictError(f"Allocation #{allocation_id} is already '{allocation.Status_s}'.")
    return allocation


def consume_allocation(db: Session, *, allocation_id: int, actor: Actor) -> PartsAllocation:
    """Mark the part as fitted. Stock was already taken at allocation time."""
    if not actor.is_admin and actor.role != Role.TECHNICIAN.value:
        raise PermissionDeniedError("Only admins and technicians can mark parts as used.")
    try:
        allocation = _lock_allocation(db, allocation_id)
        if not actor.is_admin and allocation.TechnicianID != actor.technician_id:
            raise PermissionDeniedError(f"Allocation #{allocation_id} belongs to another technician.")
        allocation.Status_s = AllocationStatus.CONSUMED.value
        allocation.ConsumedAt = utcnow()
        db.add(allocation)
        db.commit()
        db.refresh(allocation)
        return allocation
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("consume_allocation error (AllocationID=%s)", allocation_id)
        raise HTTPException(status_code=500, detail=f"consume_allocation error: {type(e).__name__}: {e}")


def return_allocation(
    db: Session, *, allocation_id: int, actor: Actor, notes: Optional[str] = None
) -> PartsAllocation:
    """Unused part goes back on the shelf."""
    _require_admin(actor, "return allocations")
    try:
        allocation = _lock_allocation(db, allocation_id)
        stock = _lock_stock(db, allocation.StockItemID)

        before = int(stock.Quantity or 0)
        stock.Quantity = before + int(allocation.Quantity)
        allocation.Status_s = AllocationStatus.RETURNED.value
        allocation.ReturnedAt = utcnow()

        description = REASON_ALLOCATION_RETURN.format(allocation.AllocationID)
        if notes:
            description = f"{description}: {notes}"[:500]
        db.add(PartsActivityLog(
            StockItemID=stock.StockItemID,
            Action=ActivityAction.RETURNED.value,
            PreviousQuantity=before,
            NewQuantity=stock.Quantity,
            TechnicianID=allocation.TechnicianID,
            ServiceID=allocation.ServiceID,
            AllocationID=allocation.AllocationID,
            UserID=actor.user_id,
            Description=description,
        ))
        db.add(stock)
        db.add(allocation)
        _mirror_stock_into_order(db, stock.OrderID)
        db.commit()
        db.refresh(allocation)
        logger.info("allocation #%s returned, stock #%s now %s", allocation_id, stock.StockItemID, stock.Quantity)
        return allocation
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("return_allocation error (AllocationID=%s)", allocation_id)
        raise HTTPException(status_code=500, detail=f"return_allocation error: {type(e).__name__}: {e}")


# -------- Queries --------
def get_stock_item(db: Session, stock_item_id: int) -> StockItem:
    stock = db.get(StockItem, stock_item_id)
    if not stock:
        raise NotFoundError(f"Stock item #{stock_item_id} not found.")
    return stock


def list_stock(
    db: Session, *, q: Optional[str] = None, in_stock_only: bool = False, limit: int = 100, offset: int = 0
) -> List[StockItem]:
    query = db.query(StockItem)
    if q and q.strip():
        like = f"%{q.strip()}%"
        query = query.filter(or_(StockItem.PartName.ilike(like), StockItem.PartNumber.ilike(like)))
    if in_stock_only:
        query = query.filter(StockItem.Quantity > 0)
    return (
        query.order_by(StockItem.PartName.asc(), StockItem.StockItemID.asc())
        .offset(max(0, offset))
        .limit(max(1, min(limit, 500)))
        .all()
    )


def list_allocations(
    db: Session, *,
    service_id: Optional[int] = None,
    technician_id: Optional[int] = None,
    stock_item_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[PartsAllocation]:
    q = db.query(PartsAllocation)
    if service_id is not None:
        q = q.filter(PartsAllocation.ServiceID == service_id)
    if technician_id is not None:
        q = q.filter(PartsAllocation.TechnicianID == technician_id)
    if stock_item_id is not None:
        q = q.filter(PartsAllocation.StockItemID == stock_item_id)
    if status:
        q = q.filter(PartsAllocation.Status_s == status)
    return q.order_by(PartsAllocation.AllocationID.desc()).all()


def list_activity(
    db: Session, *, stock_item_id: Optional[int] = None, limit: int = 100
) -> List[PartsActivityLog]:
    q = db.query(PartsActivityLog)
    if stock_item_id is not None:
        q = q.filter(PartsActivityLog.StockItemID == stock_item_id)
    return q.order_by(PartsActivityLog.LogID.desc()).limit(max(1, min(limit, 1000))).all()
