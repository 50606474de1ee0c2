# backend/spareparts/scripts/seed.py
"""
Idempotent demo data: fulfillment parties with their brands, a few clients,
technicians, repair jobs and one login per role.

    python -m spareparts.scripts.seed
"""
import logging
from contextlib import contextmanager

from sqlalchemy import select

from ..core.db import SessionLocal, engine, Base
from ..core.security import hash_password
from ..models import AppUser, Client, FulfillmentParty, PartyBrand, RepairService, Technician

logger = logging.getLogger(__name__)

# ---------- helpers ----------

@contextmanager
def session_scope():
    """One-off session, rolled back on error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_one(db, model, **by):
    return db.execute(select(model).filter_by(**by)).scalars().first()

def get_or_create(db, model, unique_by: dict, defaults: dict = None):
    """Look up by unique_by, create when missing. Caller commits."""
    inst = get_one(db, model, **unique_by)
    if inst:
        return inst, False
    inst = model(**{**unique_by, **(defaults or {})})
    db.add(inst)
    return inst, True

# ---------- seed data ----------

# ComPlus gets Candy/Hoover/Rosieres/Iberna through PRIORITY_GROUPS, not through brand rows
PARTIES = [
    {"Name": "ComPlus", "PartyType": "partner", "CompanyName": "ComPlus d.o.o.", "Priority": 9,
     "AverageDeliveryDays": 3, "Email": "orders@complus.example", "brands": []},
    {"Name": "Electrolux", "PartyType": "supplier", "CompanyName": "Electrolux Parts", "Priority": 5,
     "AverageDeliveryDays": 7, "brands": ["Electrolux", "AEG", "Zanussi"]},
    {"Name": "Elica Service", "PartyType": "supplier", "CompanyName": "Elica", "Priority": 5,
     "AverageDeliveryDays": 10, "brands": ["Elica Service"]},
    {"Name": "Candy Service", "PartyType": "supplier", "CompanyName": "Candy Hoover Group", "Priority": 4,
     "AverageDeliveryDays": 14, "brands": ["Candy Service"]},
]

TECHNICIANS = [
    {"Name": "Gligorije Tomic", "Specialization": "washing machines", "Phone": "067-000-001"},
    {"Name": "Ivan Petrovic", "Specialization": "refrigeration", "Phone": "067-000-002"},
]

CLIENTS = [
    {"FullName": "Milena Jovanovic", "Phone": "069-111-222", "City": "Kotor"},
    {"FullName": "Marko Vukovic", "Phone": "069-333-444", "City": "Budva"},
]

USERS = [
    {"Username": "admin", "Role": "admin", "FullName": "Administrator", "password": "admin123"},
    {"Username": "complus", "Role": "business_partner", "FullName": "ComPlus portal", "password": "complus123",
     "party": "ComPlus"},
    {"Username": "electrolux", "Role": "supplier", "FullName": "Electrolux portal", "password": "electrolux123",
     "party": "Electrolux"},
    {"Username": "gligorije", "Role": "technician", "FullName": "Gligorije Tomic", "password": "tech123",
     "technician": "Gligorije Tomic"},
]

def run():
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        logger.info("seeding parties")
        parties = {}
        for p in PARTIES:
            data = {k: v for k, v in p.items() if k != "brands"}
            party, created = get_or_create(db, FulfillmentParty, {"Name": p["Name"]}, defaults=data)
            if created:
                for brand in p["brands"]:
                    party.brands.append(PartyBrand(BrandName=brand))
            parties[p["Name"]] = party

        logger.info("seeding technicians / clients / services")
        techs = {t["Name"]: get_or_create(db, Technician, {"Name": t["Name"]}, defaults=t)[0] for t in TECHNICIANS}
        clients = [get_or_create(db, Client, {"FullName": c["FullName"]}, defaults=c)[0] for c in CLIENTS]
        db.flush()

        if not get_one(db, RepairService, ClientID=clients[0].ClientID):
            db.add(RepairService(
                ClientID=clients[0].ClientID, TechnicianID=techs["Gligorije Tomic"].TechnicianID,
                Manufacturer="Candy", ApplianceInfo="Candy GVS 1410 washing machine",
                Description="Does not spin, relay clicking",
            ))
        if not get_one(db, RepairService, ClientID=clients[1].ClientID):
            db.add(RepairService(
                ClientID=clients[1].ClientID, TechnicianID=techs["Ivan Petrovic"].TechnicianID,
                Manufacturer="Electrolux", ApplianceInfo="Electrolux EN3601 fridge",
                Description="Compressor starts and stops",
            ))

        logger.info("seeding users")
        for u in USERS:
            if get_one(db, AppUser, Username=u["Username"]):
                continue
            db.add(AppUser(
                Username=u["Username"],
                FullName=u["FullName"],
                Role=u["Role"],
                HashedPassword=hash_password(u["password"]),
                PartyID=parties[u["party"]].PartyID if "party" in u else None,
                TechnicianID=techs[u["technician"]].TechnicianID if "technician" in u else None,
            ))
    logger.info("seed done")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run()
