import os

# must be set before spareparts.core.db is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RECONCILE_INTERVAL_MINUTES"] = "0"
os.environ.pop("PRIORITY_GROUPS", None)

import pytest
from fastapi.testclient import TestClient

from spareparts.core.db import Base, engine, SessionLocal
from spareparts.core.security import Actor, create_access_token
from spareparts import models  # noqa: F401
from spareparts.models import AppUser, Client, RepairService, Technician
from spareparts.services import order_service, registry
from spareparts.services.directory import SqlServiceDirectory
from spareparts.services.notifications import RecordingNotificationDispatcher
from spareparts.services.status_sync import StatusSynchronizer

COMPLUS_GROUP = {"ComPlus": ["Candy", "Hoover", "Rosieres", "Iberna"]}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def admin():
    return Actor(user_id=1, role="admin", username="admin")


@pytest.fixture
def notifier():
    return RecordingNotificationDispatcher()


@pytest.fixture
def synchronizer():
    return StatusSynchronizer(SessionLocal)


@pytest.fixture
def routing_engine():
    return registry.build_routing_engine(COMPLUS_GROUP)


@pytest.fixture
def directory(db):
    return SqlServiceDirectory(db)


@pytest.fixture
def workshop(db):
    """One client, one technician, one repair job on a Candy washing machine."""
    client = Client(FullName="Milena Jovanovic", Phone="069-111-222", City="Kotor")
    tech = Technician(Name="Gligorije Tomic", Specialization="washing machines")
    db.add_all([client, tech])
    db.flush()
    service = RepairService(
        ClientID=client.ClientID,
        TechnicianID=tech.TechnicianID,
        Manufacturer="Candy",
        ApplianceInfo="Candy GVS 1410",
        Description="Drum does not spin",
    )
    db.add(service)
    db.commit()
    return {"client": client, "technician": tech, "service": service}


@pytest.fixture
def parties(db):
    """ComPlus partner (priority group target) plus the usual suppliers."""
    return {
        "ComPlus": registry.create_party(db, name="ComPlus", party_type="partner", priority=9,
                                         average_delivery_days=3),
        "Candy Service": registry.create_party(db, name="Candy Service", party_type="supplier",
                                               brands=["Candy Service"]),
        "Electrolux": registry.create_party(db, name="Electrolux", party_type="supplier",
                                            brands=["Electrolux", "AEG"]),
        "Elica Service": registry.create_party(db, name="Elica Service", party_type="supplier",
                                               brands=["Elica Service"]),
    }


@pytest.fixture
def make_order(db, admin):
    def _make(**kw):
        kw.setdefault("part_name", "Compressor Relay")
        kw.setdefault("quantity", 2)
        return order_service.request_part(db, actor=admin, **kw)
    return _make


# ---------- HTTP ----------

@pytest.fixture
def client(db):
    from spareparts.main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make(username, role, party_id=None, technician_id=None):
        user = AppUser(
            Username=username,
            Role=role,
            HashedPassword="not-used",
            PartyID=party_id,
            TechnicianID=technician_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_access_token(sub=user.Username, role=user.Role)
        return user, {"Authorization": f"Bearer {token}"}
    return _make
