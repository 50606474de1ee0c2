from sqlalchemy import Column, Integer, String, Boolean, text
from sqlalchemy.orm import relationship
from ..core.db import Base

class Technician(Base):
    __tablename__ = "Technician"

    TechnicianID = Column(Integer, primary_key=True, autoincrement=True)

    # column is FullName in the db; Name on the Python side
    Name           = Column("FullName", String(200), nullable=False)
    Specialization = Column(String(100))
    Phone          = Column(String(50))
    Email          = Column(String(200))
    IsActive       = Column(Boolean, nullable=False, default=True, server_default=text("1"))

    services = relationship("RepairService", back_populates="technician")
