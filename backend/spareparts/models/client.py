from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from ..core.db import Base

class Client(Base):
    __tablename__ = "Client"

    ClientID = Column(Integer, primary_key=True, autoincrement=True)
    FullName = Column(String(200), nullable=False)
    Phone    = Column(String(50))
    Email    = Column(String(200))
    Address  = Column(String(300))
    City     = Column(String(100))

    services = relationship("RepairService", back_populates="client")
