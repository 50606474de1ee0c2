# backend/spareparts/routers/parties.py
from typing import Optional, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..core.api import ok, list_meta
from ..core.db import get_db
from ..core.deps import get_routing_engine
from ..core.errors import PermissionDeniedError
from ..core.security import Actor, get_actor, require_roles
from ..domain.statuses import PartyType
from ..schemas.party import PartyCreate, PartyRead, BrandIn, BrandRead, RoutePreviewIn
from ..schemas.task import TaskRead, TaskStatusLiteral
from ..services import registry, task_service

router = APIRouter(prefix="/parties", tags=["parties"])

AdminGuard = require_roles("admin")
PortalGuard = require_roles("admin", "supplier", "business_partner")


def _ensure_own_party(actor: Actor, party_id: int) -> None:
    if not actor.is_admin and actor.party_id != party_id:
        raise PermissionDeniedError("You can only see your own fulfillment party.")


@router.get("", dependencies=[Depends(AdminGuard)])
def list_parties(
    party_type: Optional[Literal["supplier", "partner"]] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    items = [PartyRead.model_validate(p) for p in registry.list_parties(db, party_type=party_type, active_only=active_only)]
    return ok(items, meta=list_meta(items))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(AdminGuard)])
def create_party(payload: PartyCreate, db: Session = Depends(get_db)):
    party = registry.create_party(
        db,
        name=payload.Name,
        party_type=payload.PartyType,
        brands=payload.Brands,
        company_name=payload.CompanyName,
        email=payload.Email,
        phone=payload.Phone,
        contact_person=payload.ContactPerson,
        priority=payload.Priority,
        average_delivery_days=payload.AverageDeliveryDays,
        notes=payload.Notes,
    )
    return ok(PartyRead.model_validate(party), status_code=status.HTTP_201_CREATED)


@router.post("/route-preview", dependencies=[Depends(AdminGuard)])
def route_preview(payload: RoutePreviewIn, db: Session = Depends(get_db), engine=Depends(get_routing_engine)):
    """Dry run of the routing rules; nothing is written."""
    match = engine.resolve(
        payload.Brand,
        registry.load_registry(db),
        PartyType(payload.PartyType) if payload.PartyType else None,
    )
    if match is None:
        return ok(None, meta={"warnings": [{"code": "ROUTING_UNRESOLVED", "brand": payload.Brand}]})
    return ok({
        "party_id": match.party.party_id,
        "party_name": match.party.name,
        "party_type": match.party.party_type.value,
        "rule": match.rule,
        "matched_key": match.matched_key,
    })


@router.get("/{party_id}", dependencies=[Depends(PortalGuard)])
def get_party(party_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    _ensure_own_party(actor, party_id)
    return ok(PartyRead.model_validate(registry.get_party(db, party_id)))


@router.post("/{party_id}/brands", status_code=status.HTTP_201_CREATED, dependencies=[Depends(AdminGuard)])
def add_brand(party_id: int, payload: BrandIn, db: Session = Depends(get_db)):
    row = registry.add_brand(db, party_id=party_id, brand_name=payload.BrandName)
    return ok(BrandRead.model_validate(row), status_code=status.HTTP_201_CREATED)


@router.patch("/{party_id}/active", dependencies=[Depends(AdminGuard)])
def set_active(party_id: int, is_active: bool = Query(...), db: Session = Depends(get_db)):
    party = registry.set_party_active(db, party_id=party_id, is_active=is_active)
    return ok(PartyRead.model_validate(party))


# --- portal ---
@router.get("/{party_id}/tasks", dependencies=[Depends(PortalGuard)])
def party_tasks(
    party_id: int,
    status_s: Optional[TaskStatusLiteral] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    _ensure_own_party(actor, party_id)
    items = [TaskRead.model_validate(t) for t in task_service.get_tasks_for_party(db, party_id, status=status_s)]
    return ok(items, meta=list_meta(items))


@router.get("/{party_id}/stats", dependencies=[Depends(PortalGuard)])
def party_stats(party_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    _ensure_own_party(actor, party_id)
    return ok(task_service.party_stats(db, party_id))
