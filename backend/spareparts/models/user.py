from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint, func, text
)
from ..core.db import Base
from ..domain import statuses
from ._base import utcnow

ALLOWED_ROLES = statuses.Role.values()

class AppUser(Base):
    __tablename__ = "AppUser"

    UserID         = Column(Integer, primary_key=True, autoincrement=True)
    Username       = Column(String(50),  nullable=False, unique=True)
    FullName       = Column(String(100))
    Email          = Column(String(200))
    HashedPassword = Column(String(255), nullable=False)
    Role           = Column(String(20),  nullable=False, default=statuses.Role.VIEWER.value, server_default=text("'viewer'"))
    # portal users are bound to their party / technician record
    PartyID        = Column(Integer, ForeignKey("FulfillmentParty.PartyID"))
    TechnicianID   = Column(Integer, ForeignKey("Technician.TechnicianID"))
    IsActive       = Column(Boolean,     nullable=False, default=True, server_default=text("1"))
    CreatedAt      = Column(DateTime,    nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(statuses.check_in("Role", statuses.Role), name="CK_AppUser_Role"),
    )
