# backend/spareparts/routers/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..core.api import ok, list_meta, warnings_meta
from ..core.db import get_db
from ..core.deps import get_directory, get_notifier, get_routing_engine
from ..core.errors import PermissionDeniedError
from ..core.security import Actor, get_actor, require_roles
from ..schemas.order import (
    OrderCreate, OrderUpdate, OrderRead, AssignIn, ReceiveIn, ReasonIn, OrderStatusLiteral,
)
from ..schemas.task import TaskRead
from ..schemas.warehouse import StockItemRead
from ..services import order_service

router = APIRouter(prefix="/spare-parts", tags=["spare-parts"])

AdminGuard = require_roles("admin")
ReadGuard = require_roles("admin", "technician", "viewer")
RequestGuard = require_roles("admin", "technician")


def _own_scope(actor: Actor, technician_id: Optional[int]) -> Optional[int]:
    """Technicians only ever see their own orders."""
    if actor.role == "technician":
        return actor.technician_id
    return technician_id


# --- LIST ---
@router.get("", dependencies=[Depends(ReadGuard)])
def list_orders(
    status_s: Optional[OrderStatusLiteral] = Query(None),
    technician_id: Optional[int] = Query(None, ge=1),
    service_id: Optional[int] = Query(None, ge=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    rows = order_service.list_orders(
        db,
        status=status_s,
        technician_id=_own_scope(actor, technician_id),
        service_id=service_id,
        limit=limit,
        offset=skip,
    )
    items = [OrderRead.model_validate(r) for r in rows]
    return ok(items, meta=list_meta(items, {"skip": skip, "limit": limit}))


@router.get("/requests", dependencies=[Depends(AdminGuard)])
def list_requests(db: Session = Depends(get_db)):
    items = [OrderRead.model_validate(r) for r in order_service.list_requests(db)]
    return ok(items, meta=list_meta(items))


@router.get("/status/{status_s}", dependencies=[Depends(AdminGuard)])
def orders_by_status(status_s: OrderStatusLiteral, db: Session = Depends(get_db)):
    items = [OrderRead.model_validate(r) for r in order_service.get_orders_by_status(db, status_s)]
    return ok(items, meta=list_meta(items))


@router.get("/{order_id}", dependencies=[Depends(ReadGuard)])
def get_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    order = order_service.get_order(db, order_id)
    if actor.role == "technician" and order.TechnicianID != actor.technician_id:
        raise PermissionDeniedError(f"Order #{order_id} belongs to another technician.")
    return ok(OrderRead.model_validate(order))


# --- CREATE ---
@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(RequestGuard)])
def request_part(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    directory=Depends(get_directory),
    notifier=Depends(get_notifier),
):
    order = order_service.request_part(
        db,
        actor=actor,
        part_name=payload.PartName,
        quantity=payload.Quantity,
        part_number=payload.PartNumber,
        description=payload.Description,
        service_id=payload.ServiceID,
        technician_id=payload.TechnicianID,
        urgency=payload.Urgency,
        warranty_status=payload.WarrantyStatus,
        estimated_cost=payload.EstimatedCost,
        admin_notes=payload.AdminNotes,
        directory=directory,
        notifier=notifier,
    )
    return ok(OrderRead.model_validate(order), status_code=status.HTTP_201_CREATED)


@router.patch("/{order_id}", dependencies=[Depends(AdminGuard)])
def update_order(
    order_id: int, payload: OrderUpdate, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)
):
    order = order_service.update_order(
        db,
        order_id=order_id,
        actor=actor,
        admin_notes=payload.AdminNotes,
        estimated_cost=payload.EstimatedCost,
        urgency=payload.Urgency,
        part_number=payload.PartNumber,
    )
    return ok(OrderRead.model_validate(order))


# --- WORKFLOW ---
@router.post("/{order_id}/approve", dependencies=[Depends(AdminGuard)])
def approve_order(
    order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor), notifier=Depends(get_notifier)
):
    order = order_service.approve_order(db, order_id=order_id, actor=actor, notifier=notifier)
    return ok(OrderRead.model_validate(order))


@router.post("/{order_id}/assign", dependencies=[Depends(AdminGuard)])
def assign_order(
    order_id: int,
    payload: AssignIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    engine=Depends(get_routing_engine),
    notifier=Depends(get_notifier),
):
    """A brand nobody serves is not an error: data.task is null and meta.warnings says why."""
    result = order_service.assign_to_party(
        db,
        order_id=order_id,
        brand=payload.Brand,
        party_type=payload.PartyType,
        party_id=payload.PartyID,
        actor=actor,
        engine=engine,
        notifier=notifier,
    )
    data = {
        "order": OrderRead.model_validate(result.order),
        "task": TaskRead.model_validate(result.task) if result.task else None,
        "route": {
            "party_id": result.match.party.party_id,
            "party_name": result.match.party.name,
            "rule": result.match.rule,
            "matched_key": result.match.matched_key,
        } if result.match else None,
    }
    return ok(data, meta=warnings_meta(result.warnings))


@router.post("/{order_id}/receive", dependencies=[Depends(AdminGuard)])
def receive_order(
    order_id: int,
    payload: ReceiveIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    directory=Depends(get_directory),
    notifier=Depends(get_notifier),
):
    result = order_service.receive_order(
        db,
        order_id=order_id,
        actor=actor,
        actual_cost=payload.ActualCost,
        location=payload.Location,
        notes=payload.Notes,
        directory=directory,
        notifier=notifier,
    )
    return ok({
        "order": OrderRead.model_validate(result.order),
        "stock_item": StockItemRead.model_validate(result.stock_item),
    })


@router.post("/{order_id}/cancel", dependencies=[Depends(AdminGuard)])
def cancel_order(order_id: int, payload: ReasonIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    order = order_service.cancel_order(db, order_id=order_id, actor=actor, reason=payload.Reason)
    return ok(OrderRead.model_validate(order))


@router.post("/{order_id}/remove-from-ordering", dependencies=[Depends(AdminGuard)])
def remove_from_ordering(
    order_id: int, payload: ReasonIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)
):
    order = order_service.remove_from_ordering(db, order_id=order_id, actor=actor, reason=payload.Reason)
    return ok(OrderRead.model_validate(order))


@router.post("/{order_id}/confirm-delivery", dependencies=[Depends(AdminGuard)])
def confirm_delivery(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    order = order_service.confirm_delivery(db, order_id=order_id, actor=actor)
    return ok(OrderRead.model_validate(order))


@router.delete("/{order_id}", dependencies=[Depends(AdminGuard)])
def delete_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    order_service.delete_order(db, order_id=order_id, actor=actor)
    return ok({"OrderID": order_id, "deleted": True})
