# backend/spareparts/services/order_service.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
    ProcurementWarning, RoutingUnresolvedError,
)
from ..core.locking import lock_for_update
from ..core.security import Actor
from ..core.settings import settings
from ..domain.constants import REASON_ORDER_RECEIVE, TASK_ORDER_NUMBER
from ..domain.lifecycle import (
    ENTRY_STATES, ACTIVE_TASK_STATES, as_order_status, ensure_order_transition, ensure_task_transition,
)
from ..domain.money import optional_money
from ..domain.statuses import (
    OrderStatus, TaskStatus, PartyType, Urgency, WarrantyStatus, RequesterType, ActivityAction,
)
from ..models import SparePartOrder, FulfillmentTask, FulfillmentParty, StockItem, PartsActivityLog
from ..models._base import utcnow
from . import notifications as ev
from .directory import ServiceDirectory, ServiceInfo
from .notifications import NotificationDispatcher, NotificationEvent
from .registry import build_routing_engine, get_party, load_registry
from .routing import RouteMatch, RoutingEngine

logger = logging.getLogger(__name__)

# assigning is allowed only before procurement has started anywhere
ASSIGNABLE_STATES = ENTRY_STATES | {OrderStatus.ADMIN_ORDERED}
RECEIVABLE_STATES = frozenset({OrderStatus.WAITING_DELIVERY, OrderStatus.ADMIN_ORDERED})

_ASSIGNED_STATUS = {
    PartyType.PARTNER: OrderStatus.ASSIGNED_TO_PARTNER,
    PartyType.SUPPLIER: OrderStatus.ASSIGNED_TO_SUPPLIER,
}


@dataclass
class AssignmentResult:
    order: SparePartOrder
    task: Optional[FulfillmentTask] = None
    match: Optional[RouteMatch] = None
    warnings: List[ProcurementWarning] = field(default_factory=list)


@dataclass
class ReceiptResult:
    order: SparePartOrder
    stock_item: StockItem


# -------- helpers --------
def _notify(notifier: Optional[NotificationDispatcher], event: NotificationEvent) -> None:
    if notifier is not None:
        notifier.notify(event)


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only an admin can {action}.")


def _lock_order(db: Session, order_id: int) -> SparePartOrder:
    order = lock_for_update(db, SparePartOrder, order_id)
    if not order:
        raise NotFoundError(f"Order #{order_id} not found.")
    return order


def _append_note(existing: Optional[str], note: Optional[str]) -> Optional[str]:
    note = (note or "").strip()
    if not note:
        return existing
    return f"{existing}\n{note}" if existing else note


def _enum_value(value, enum_cls, label: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(f"{label} must be one of {list(enum_cls.values())}.")


def get_order(db: Session, order_id: int) -> SparePartOrder:
    order = db.get(SparePartOrder, order_id)
    if not order:
        raise NotFoundError(f"Order #{order_id} not found.")
    return order


# -------- Requests --------
def request_part(
    db: Session, *,
    actor: Actor,
    part_name: str,
    quantity: int = 1,
    part_number: Optional[str] = None,
    description: Optional[str] = None,
    service_id: Optional[int] = None,
    technician_id: Optional[int] = None,
    urgency: str = Urgency.NORMAL.value,
    warranty_status: str = WarrantyStatus.OUT_OF_WARRANTY.value,
    estimated_cost=None,
    admin_notes: Optional[str] = None,
    directory: Optional[ServiceDirectory] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> SparePartOrder:
    """
    Technicians file a request ('requested'); admins place a direct order
    ('pending'). Both are entry states and behave the same afterwards.
    """
    if actor.is_admin:
        requester, initial = RequesterType.ADMIN, OrderStatus.PENDING
    elif actor.role == RequesterType.TECHNICIAN.value:
        requester, initial = RequesterType.TECHNICIAN, OrderStatus.REQUESTED
        technician_id = technician_id or actor.technician_id
        if actor.technician_id and technician_id != actor.technician_id:
            raise PermissionDeniedError("Technicians can only request parts for themselves.")
    else:
        raise PermissionDeniedError("Only admins and technicians can request parts.")

    part_name = (part_name or "").strip()
    if not part_name:
        raise ValidationError("Part name is required.")
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number.")
    if qty <= 0:
        raise ValidationError("Quantity must be greater than zero.")
    urgency = _enum_value(urgency, Urgency, "Urgency")
    warranty_status = _enum_value(warranty_status, WarrantyStatus, "Warranty status")
    cost = optional_money(estimated_cost, "Estimated cost")

    if directory is not None:
        if service_id is not None:
            service = directory.get_service(service_id)
            if service is None:
                raise NotFoundError(f"Service #{service_id} not found.")
            technician_id = technician_id or service.technician_id
        if technician_id is not None and directory.get_technician(technician_id) is None:
            raise NotFoundError(f"Technician #{technician_id} not found.")

    order = SparePartOrder(
        ServiceID=service_id,
        TechnicianID=technician_id,
        PartName=part_name,
        PartNumber=(part_number or "").strip() or None,
        Quantity=qty,
        Description=description,
        Urgency=urgency,
        WarrantyStatus=warranty_status,
        Status_s=initial.value,
        EstimatedCost=cost,
        RequesterType=requester.value,
        RequesterUserID=actor.user_id,
        AdminNotes=admin_notes if actor.is_admin else None,
    )
    try:
        db.add(order)
        db.commit()
        db.refresh(order)
    except Exception as e:
        db.rollback()
        logger.exception("request_part error (PartName=%s, ServiceID=%s)", part_name, service_id)
        raise HTTPException(status_code=500, detail=f"request_part error: {type(e).__name__}: {e}")

    logger.info("order #%s created by %s as %s", order.OrderID, requester, order.Status_s)
    _notify(notifier, NotificationEvent(
        event_type=ev.ORDER_REQUESTED,
        title=f"Spare part requested: {order.PartName}",
        message=f"{order.Quantity} x {order.PartName} ({order.Urgency})",
        order_id=order.OrderID,
        user_id=actor.user_id,
        payload={"status": order.Status_s, "service_id": service_id},
    ))
    return order


def approve_order(
    db: Session, *, order_id: int, actor: Actor, notifier: Optional[NotificationDispatcher] = None
) -> SparePartOrder:
    _require_admin(actor, "approve orders")
    try:
        order = _lock_order(db, order_id)
        current = as_order_status(order.Status_s)
        # re-approval is an error, not a silent success
        if current not in ENTRY_STATES:
            raise ConflictError(
                f"Only requested or pending orders can be approved (order #{order_id} is '{current}')."
            )
        order.Status_s = ensure_order_transition(current, OrderStatus.ADMIN_ORDERED).value
        order.OrderDate = utcnow()
        db.add(order)
        db.commit()
        db.refresh(order)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("approve_order error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"approve_order error: {type(e).__name__}: {e}")

    logger.info("order #%s approved by user #%s", order.OrderID, actor.user_id)
    _notify(notifier, NotificationEvent(
        event_type=ev.ORDER_APPROVED,
        title=f"Spare part approved: {order.PartName}",
        order_id=order.OrderID,
        user_id=order.RequesterUserID,
    ))
    return order


# -------- Assignment --------
def _new_task(order: SparePartOrder, party: FulfillmentParty) -> FulfillmentTask:
    now = utcnow()
    days = party.AverageDeliveryDays or settings.default_delivery_days
    return FulfillmentTask(
        OrderID=order.OrderID,
        PartyID=party.PartyID,
        OrderNumber=TASK_ORDER_NUMBER.format(order.OrderID, int(now.timestamp() * 1000)),
        Status_s=TaskStatus.PENDING.value,
        EstimatedDelivery=now + timedelta(days=int(days)),
    )


def assign_to_party(
    db: Session, *,
    order_id: int,
    brand: Optional[str] = None,
    party_type: Optional[str] = None,
    actor: Actor,
    party_id: Optional[int] = None,
    engine: Optional[RoutingEngine] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> AssignmentResult:
    """
    Route the order to a fulfillment party and open its task.

    With ``party_id`` the admin picks the party and routing is skipped.
    Otherwise the brand is routed; a miss leaves the order untouched and
    comes back as a RoutingUnresolvedError warning.
    """
    _require_admin(actor, "assign orders")
    wanted_type = PartyType(_enum_value(party_type, PartyType, "Party type")) if party_type else None
    if party_id is None and not (brand or "").strip():
        raise ValidationError("Brand is required for routing.")

    try:
        order = _lock_order(db, order_id)
        current = as_order_status(order.Status_s)
        if order.assigned_party_id is not None:
            raise ConflictError(f"Order #{order_id} is already assigned to party #{order.assigned_party_id}.")
        if current not in ASSIGNABLE_STATES:
            raise ConflictError(f"Order #{order_id} cannot be assigned from '{current}'.")

        match: Optional[RouteMatch] = None
        if party_id is not None:
            party = get_party(db, party_id)
            if not party.IsActive:
                raise ConflictError(f"Party '{party.Name}' is inactive.")
            if wanted_type and party.PartyType != wanted_type.value:
                raise ValidationError(f"Party '{party.Name}' is a {party.PartyType}, not a {wanted_type}.")
        else:
            engine = engine or build_routing_engine()
            match = engine.resolve(brand, load_registry(db), wanted_type)
            if match is None:
                db.rollback()
                warning = RoutingUnresolvedError(
                    f"No fulfillment party matches brand '{brand.strip()}'. Assign the order manually.",
                    order_id=order_id, brand=brand.strip(),
                )
                logger.warning("%s", warning.message)
                return AssignmentResult(order=get_order(db, order_id), warnings=[warning])
            party = get_party(db, match.party.party_id)

        if db.query(FulfillmentTask).filter(
            FulfillmentTask.OrderID == order.OrderID, FulfillmentTask.PartyID == party.PartyID
        ).first():
            raise ConflictError(f"Party '{party.Name}' already had a task for order #{order_id}.")

        ptype = PartyType(party.PartyType)
        order.Status_s = ensure_order_transition(current, _ASSIGNED_STATUS[ptype]).value
        if ptype == PartyType.PARTNER:
            order.AssignedPartnerID = party.PartyID
        else:
            order.AssignedSupplierID = party.PartyID
        order.AssignedAt = utcnow()
        order.AssignedBy = actor.user_id

        task = _new_task(order, party)
        db.add(order)
        db.add(task)
        db.commit()
        db.refresh(order)
        db.refresh(task)
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"Order #{order_id} could not be assigned: {getattr(e, 'orig', e)}")
    except Exception as e:
        db.rollback()
        logger.exception("assign_to_party error (OrderID=%s, brand=%s)", order_id, brand)
        raise HTTPException(status_code=500, detail=f"assign_to_party error: {type(e).__name__}: {e}")

    logger.info("order #%s assigned to %s (%s), task #%s", order.OrderID, party.Name, ptype, task.TaskID)
    _notify(notifier, NotificationEvent(
        event_type=ev.ORDER_ASSIGNED,
        title=f"New part order {task.OrderNumber}",
        message=f"{order.Quantity} x {order.PartName}",
        order_id=order.OrderID,
        party_id=party.PartyID,
        payload={"task_id": task.TaskID, "rule": match.rule if match else "manual"},
    ))
    return AssignmentResult(order=order, task=task, match=match)


# -------- Receipt --------
def _unit_cost(order: SparePartOrder, actual_cost):
    if actual_cost is not None:
        return actual_cost
    if order.ActualCost is not None:
        return order.ActualCost
    return order.EstimatedCost


def receive_order(
    db: Session, *,
    order_id: int,
    actor: Actor,
    actual_cost=None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    directory: Optional[ServiceDirectory] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> ReceiptResult:
    """The only place stock is created: order -> 'available', stock credited, log appended."""
    _require_admin(actor, "receive orders")
    cost = optional_money(actual_cost, "Actual cost")

    try:
        order = _lock_order(db, order_id)
        current = as_order_status(order.Status_s)
        if current == OrderStatus.AVAILABLE:
            raise ConflictError(f"Order #{order_id} was already received.")
        if current not in RECEIVABLE_STATES:
            raise ConflictError(f"Order #{order_id} cannot be received from '{current}'.")
        order.Status_s = ensure_order_transition(current, OrderStatus.AVAILABLE).value

        if cost is not None:
            order.ActualCost = cost
        order.ReceivedDate = utcnow()

        service: Optional[ServiceInfo] = None
        if directory is not None and order.ServiceID is not None:
            service = directory.get_service(order.ServiceID)

        party = order.supplier or order.partner
        stock = (
            db.query(StockItem)
            .filter(StockItem.OrderID == order.OrderID)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if stock is None:
            stock = StockItem(
                OrderID=order.OrderID,
                PartName=order.PartName,
                PartNumber=order.PartNumber,
                Quantity=0,
                UnitCost=_unit_cost(order, cost),
                Location=location,
                WarrantyStatus=order.WarrantyStatus,
                SupplierName=party.Name if party else None,
                ServiceID=order.ServiceID,
                ClientName=service.client_name if service else None,
                ClientPhone=service.client_phone if service else None,
                ApplianceInfo=service.appliance_info if service else None,
                ServiceDescription=service.description if service else None,
                AddedBy=actor.user_id,
                Notes=notes,
            )
            db.add(stock)
        else:
            stock.Notes = _append_note(stock.Notes, notes)
            if location:
                stock.Location = location

        before = int(stock.Quantity or 0)
        stock.Quantity = before + int(order.Quantity)
        stock.activity.append(PartsActivityLog(
            Action=ActivityAction.RECEIVED.value,
            PreviousQuantity=before,
            NewQuantity=stock.Quantity,
            TechnicianID=order.TechnicianID,
            ServiceID=order.ServiceID,
            UserID=actor.user_id,
            Description=REASON_ORDER_RECEIVE.format(order.OrderID),
        ))
        db.add(order)
        db.commit()
        db.refresh(order)
        db.refresh(stock)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("receive_order error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"receive_order error: {type(e).__name__}: {e}")

    logger.info("order #%s received: stock item #%s qty=%s", order.OrderID, stock.StockItemID, stock.Quantity)
    _notify(notifier, NotificationEvent(
        event_type=ev.ORDER_RECEIVED,
        title=f"Part in warehouse: {order.PartName}",
        order_id=order.OrderID,
        user_id=order.RequesterUserID,
        payload={"stock_item_id": stock.StockItemID},
    ))
    return ReceiptResult(order=order, stock_item=stock)


# -------- Admin actions --------
def update_order(
    db: Session, *,
    order_id: int,
    actor: Actor,
    admin_notes: Optional[str] = None,
    estimated_cost=None,
    urgency: Optional[str] = None,
    part_number: Optional[str] = None,
) -> SparePartOrder:
    _require_admin(actor, "edit orders")
    try:
        order = _lock_order(db, order_id)
        if as_order_status(order.Status_s) in (
            OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REMOVED_FROM_ORDERING
        ):
            raise ConflictError(f"Order #{order_id} is closed ('{order.Status_s}').")
        if admin_notes is not None:
            order.AdminNotes = admin_notes
        if estimated_cost is not None:
            order.EstimatedCost = optional_money(estimated_cost, "Estimated cost")
        if urgency is not None:
            order.Urgency = _enum_value(urgency, Urgency, "Urgency")
        if part_number is not None:
            order.PartNumber = part_number.strip() or None
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("update_order error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"update_order error: {type(e).__name__}: {e}")


def cancel_order(db: Session, *, order_id: int, actor: Actor, reason: Optional[str] = None) -> SparePartOrder:
    """Cancel before receipt. An active task is cancelled with the order."""
    _require_admin(actor, "cancel orders")
    try:
        order = _lock_order(db, order_id)
        order.Status_s = ensure_order_transition(order.Status_s, OrderStatus.CANCELLED).value
        order.AdminNotes = _append_note(order.AdminNotes, reason)

        now = utcnow()
        for task in order.tasks:
            if TaskStatus(task.Status_s) in ACTIVE_TASK_STATES:
                task.Status_s = ensure_task_transition(task.Status_s, TaskStatus.CANCELLED).value
                task.CancelledAt = now
                db.add(task)
        db.add(order)
        db.commit()
        db.refresh(order)
        logger.info("order #%s cancelled by user #%s", order.OrderID, actor.user_id)
        return order
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("cancel_order error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"cancel_order error: {type(e).__name__}: {e}")


def remove_from_ordering(db: Session, *, order_id: int, actor: Actor, reason: Optional[str] = None) -> SparePartOrder:
    _require_admin(actor, "remove orders from ordering")
    try:
        order = _lock_order(db, order_id)
        order.Status_s = ensure_order_transition(order.Status_s, OrderStatus.REMOVED_FROM_ORDERING).value
        order.AdminNotes = _append_note(order.AdminNotes, reason)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("remove_from_ordering error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"remove_from_ordering error: {type(e).__name__}: {e}")


def confirm_delivery(db: Session, *, order_id: int, actor: Actor) -> SparePartOrder:
    """Consumed part handed over on the job; closes the order."""
    _require_admin(actor, "confirm delivery")
    try:
        order = _lock_order(db, order_id)
        order.Status_s = ensure_order_transition(order.Status_s, OrderStatus.DELIVERED).value
        order.DeliveredDate = utcnow()
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("confirm_delivery error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"confirm_delivery error: {type(e).__name__}: {e}")


def delete_order(db: Session, *, order_id: int, actor: Actor) -> None:
    """
    Physical delete. Notifications go with the order; tasks and stock keep it
    alive (FK RESTRICT), so the order has to be cancelled instead.
    """
    _require_admin(actor, "delete orders")
    try:
        order = _lock_order(db, order_id)
        task_count = db.query(func.count(FulfillmentTask.TaskID)).filter(FulfillmentTask.OrderID == order_id).scalar()
        stock_count = db.query(func.count(StockItem.StockItemID)).filter(StockItem.OrderID == order_id).scalar()
        if task_count or stock_count:
            raise ConflictError(
                f"Order #{order_id} is referenced by {task_count} task(s) and {stock_count} stock item(s); "
                "cancel it instead."
            )
        db.delete(order)
        db.commit()
        logger.info("order #%s deleted by user #%s", order_id, actor.user_id)
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"Order #{order_id} is still referenced: {getattr(e, 'orig', e)}")
    except Exception as e:
        db.rollback()
        logger.exception("delete_order error (OrderID=%s)", order_id)
        raise HTTPException(status_code=500, detail=f"delete_order error: {type(e).__name__}: {e}")


# -------- Queries --------
def list_orders(
    db: Session, *,
    status: Optional[str] = None,
    technician_id: Optional[int] = None,
    service_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[SparePartOrder]:
    q = db.query(SparePartOrder)
    if status:
        q = q.filter(SparePartOrder.Status_s == _enum_value(status, OrderStatus, "Status"))
    if technician_id is not None:
        q = q.filter(SparePartOrder.TechnicianID == technician_id)
    if service_id is not None:
        q = q.filter(SparePartOrder.ServiceID == service_id)
    return (
        q.order_by(SparePartOrder.CreatedAt.desc(), SparePartOrder.OrderID.desc())
        .offset(max(0, offset))
        .limit(max(1, min(limit, 500)))
        .all()
    )


def get_orders_by_status(db: Session, status) -> List[SparePartOrder]:
    status = _enum_value(status, OrderStatus, "Status")
    return (
        db.query(SparePartOrder)
        .filter(SparePartOrder.Status_s == status)
        .order_by(SparePartOrder.OrderID.asc())
        .all()
    )


def list_requests(db: Session) -> List[SparePartOrder]:
    """Everything still waiting for an admin decision."""
    return (
        db.query(SparePartOrder)
        .filter(SparePartOrder.Status_s.in_([s.value for s in ENTRY_STATES]))
        .order_by(SparePartOrder.CreatedAt.asc(), SparePartOrder.OrderID.asc())
        .all()
    )
