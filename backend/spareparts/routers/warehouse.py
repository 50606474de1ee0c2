# backend/spareparts/routers/warehouse.py
from typing import Optional, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..core.api import ok, list_meta
from ..core.db import get_db
from ..core.deps import get_directory, get_notifier
from ..core.security import Actor, get_actor, require_roles
from ..schemas.warehouse import AllocateIn, ReturnIn, StockItemRead, AllocationRead, ActivityRead
from ..services import warehouse_service

router = APIRouter(prefix="/warehouse", tags=["warehouse"])

AdminGuard = require_roles("admin")
ReadGuard = require_roles("admin", "technician", "viewer")


@router.get("/stock", dependencies=[Depends(ReadGuard)])
def list_stock(
    q: Optional[str] = Query(None, max_length=100),
    in_stock_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows = warehouse_service.list_stock(db, q=q, in_stock_only=in_stock_only, limit=limit, offset=skip)
    items = [StockItemRead.model_validate(r) for r in rows]
    return ok(items, meta=list_meta(items))


@router.get("/stock/{stock_item_id}", dependencies=[Depends(ReadGuard)])
def get_stock_item(stock_item_id: int, db: Session = Depends(get_db)):
    return ok(StockItemRead.model_validate(warehouse_service.get_stock_item(db, stock_item_id)))


@router.post("/allocations", status_code=status.HTTP_201_CREATED, dependencies=[Depends(AdminGuard)])
def allocate(
    payload: AllocateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    directory=Depends(get_directory),
    notifier=Depends(get_notifier),
):
    allocation = warehouse_service.allocate_stock(
        db,
        stock_item_id=payload.StockItemID,
        service_id=payload.ServiceID,
        technician_id=payload.TechnicianID,
        quantity=payload.Quantity,
        actor=actor,
        notes=payload.Notes,
        directory=directory,
        notifier=notifier,
    )
    return ok(AllocationRead.model_validate(allocation), status_code=status.HTTP_201_CREATED)


@router.get("/allocations", dependencies=[Depends(ReadGuard)])
def list_allocations(
    service_id: Optional[int] = Query(None, ge=1),
    technician_id: Optional[int] = Query(None, ge=1),
    stock_item_id: Optional[int] = Query(None, ge=1),
    status_s: Optional[Literal["allocated", "consumed", "returned"]] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    if actor.role == "technician":
        technician_id = actor.technician_id
    rows = warehouse_service.list_allocations(
        db, service_id=service_id, technician_id=technician_id, stock_item_id=stock_item_id, status=status_s
    )
    items = [AllocationRead.model_validate(r) for r in rows]
    return ok(items, meta=list_meta(items))


@router.post("/allocations/{allocation_id}/consume", dependencies=[Depends(require_roles("admin", "technician"))])
def consume(allocation_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return ok(AllocationRead.model_validate(
        warehouse_service.consume_allocation(db, allocation_id=allocation_id, actor=actor)
    ))


@router.post("/allocations/{allocation_id}/return", dependencies=[Depends(AdminGuard)])
def return_allocation(
    allocation_id: int, payload: ReturnIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)
):
    return ok(AllocationRead.model_validate(
        warehouse_service.return_allocation(db, allocation_id=allocation_id, actor=actor, notes=payload.Notes)
    ))


@router.get("/activity", dependencies=[Depends(AdminGuard)])
def list_activity(
    stock_item_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    items = [ActivityRead.model_validate(r) for r in warehouse_service.list_activity(db, stock_item_id=stock_item_id, limit=limit)]
    return ok(items, meta=list_meta(items))
