# backend/spareparts/services/registry.py
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.settings import settings
from ..domain.statuses import PartyType
from ..models import FulfillmentParty, PartyBrand
from .routing import PartyRef, PriorityRule, RegistryEntry, RegistrySnapshot, RoutingEngine

logger = logging.getLogger(__name__)


def build_routing_engine(groups=None) -> RoutingEngine:
    return RoutingEngine(PriorityRule.from_mapping(settings.priority_groups if groups is None else groups))


def _party_ref(p: FulfillmentParty) -> PartyRef:
    return PartyRef(party_id=p.PartyID, name=p.Name, party_type=PartyType(p.PartyType), priority=int(p.Priority or 5))


def load_registry(db: Session, *, active_only: bool = True) -> RegistrySnapshot:
    q = db.query(FulfillmentParty)
    if active_only:
        q = q.filter(FulfillmentParty.IsActive == True)  # noqa: E712
    parties = q.order_by(FulfillmentParty.PartyID.asc()).all()

    refs = {p.PartyID: _party_ref(p) for p in parties}
    if not refs:
        return RegistrySnapshot()

    brands = (
        db.query(PartyBrand)
        .filter(PartyBrand.PartyID.in_(list(refs)))
        .order_by(PartyBrand.BrandID.asc())
        .all()
    )
    entries = [RegistryEntry(key=b.BrandName, party=refs[b.PartyID], seq=b.BrandID) for b in brands]
    return RegistrySnapshot.build(refs.values(), entries)


# -------- Parties --------
def get_party(db: Session, party_id: int) -> FulfillmentParty:
    party = db.get(FulfillmentParty, party_id)
    if not party:
        raise NotFoundError(f"Fulfillment party #{party_id} not found.")
    return party


def list_parties(
    db: Session, *, party_type: Optional[str] = None, active_only: bool = False
) -> List[FulfillmentParty]:
    q = db.query(FulfillmentParty)
    if party_type:
        q = q.filter(FulfillmentParty.PartyType == party_type)
    if active_only:
        q = q.filter(FulfillmentParty.IsActive == True)  # noqa: E712
    return q.order_by(FulfillmentParty.Priority.desc(), FulfillmentParty.Name.asc()).all()


def create_party(
    db: Session, *,
    name: str,
    party_type: str,
    brands: Sequence[str] = (),
    company_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    contact_person: Optional[str] = None,
    priority: int = 5,
    average_delivery_days: int = 7,
    notes: Optional[str] = None,
) -> FulfillmentParty:
    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError("Party name must have at least 2 characters.")
    if party_type not in PartyType.values():
        raise ValidationError(f"Party type must be one of {list(PartyType.values())}.")
    if not 1 <= int(priority) <= 10:
        raise ValidationError("Priority must be between 1 and 10.")

    try:
        if db.query(FulfillmentParty).filter(FulfillmentParty.Name == name).first():
            raise ConflictError(f"Party '{name}' already exists.")

        party = FulfillmentParty(
            Name=name,
            CompanyName=company_name,
            PartyType=party_type,
            Email=email,
            Phone=phone,
            ContactPerson=contact_person,
            Priority=int(priority),
            AverageDeliveryDays=int(average_delivery_days),
            Notes=notes,
        )
        seen = set()
        for raw in brands:
            brand = (raw or "").strip()
            if brand and brand not in seen:
                seen.add(brand)
                party.brands.append(PartyBrand(BrandName=brand))
        db.add(party)
        db.commit()
        db.refresh(party)
        logger.info("party created: %s (%s, %d brands)", party.Name, party.PartyType, len(seen))
        return party
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"db_error: {getattr(e, 'orig', e)}")


def add_brand(db: Session, *, party_id: int, brand_name: str) -> PartyBrand:
    brand_name = (brand_name or "").strip()
    if not brand_name:
        raise ValidationError("Brand name is required.")
    party = get_party(db, party_id)
    if any(b.BrandName == brand_name for b in party.brands):
        raise ConflictError(f"'{brand_name}' is already registered for {party.Name}.")
    row = PartyBrand(PartyID=party.PartyID, BrandName=brand_name)
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"db_error: {getattr(e, 'orig', e)}")


def set_party_active(db: Session, *, party_id: int, is_active: bool) -> FulfillmentParty:
    party = get_party(db, party_id)
    party.IsActive = bool(is_active)
    db.commit()
    db.refresh(party)
    return party
