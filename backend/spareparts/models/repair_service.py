from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..core.db import Base
from ._base import utcnow

class RepairService(Base):
    """A repair job at a client's appliance. Owned by the service registry, read-only here."""
    __tablename__ = "RepairService"

    ServiceID     = Column(Integer, primary_key=True, autoincrement=True)
    ClientID      = Column(Integer, ForeignKey("Client.ClientID"), nullable=False)
    TechnicianID  = Column(Integer, ForeignKey("Technician.TechnicianID"))
    Manufacturer  = Column(String(100))
    ApplianceInfo = Column(String(300))
    Description   = Column(String(1000))
    Status_s      = Column(String(30), nullable=False, default="pending", server_default="pending")
    CreatedAt     = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    client     = relationship("Client", back_populates="services")
    technician = relationship("Technician", back_populates="services")
