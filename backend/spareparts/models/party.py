from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, func, text
)
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..domain import statuses
from ._base import utcnow

class FulfillmentParty(Base):
    """External supplier or internal business partner able to source parts."""
    __tablename__ = "FulfillmentParty"

    PartyID             = Column(Integer, primary_key=True, autoincrement=True)
    Name                = Column(String(100), nullable=False, unique=True)
    CompanyName         = Column(String(200))
    PartyType           = Column(String(20), nullable=False)
    Email               = Column(String(200))
    Phone               = Column(String(50))
    ContactPerson       = Column(String(100))
    Priority            = Column(Integer, nullable=False, default=5, server_default=text("5"))
    AverageDeliveryDays = Column(Integer, nullable=False, default=7, server_default=text("7"))
    IsActive            = Column(Boolean, nullable=False, default=True, server_default=text("1"))
    Notes               = Column(String(1000))
    CreatedAt           = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(statuses.check_in("PartyType", statuses.PartyType), name="CK_Party_Type"),
        CheckConstraint("Priority BETWEEN 1 AND 10", name="CK_Party_Priority"),
        CheckConstraint("AverageDeliveryDays >= 1", name="CK_Party_DeliveryDays"),
    )

    # registry order = insertion order of the brand rows
    brands = relationship(
        "PartyBrand",
        back_populates="party",
        order_by="PartyBrand.BrandID",
        cascade="all, delete-orphan",
    )
    tasks = relationship("FulfillmentTask", back_populates="party")


class PartyBrand(Base):
    __tablename__ = "PartyBrand"

    BrandID   = Column(Integer, primary_key=True, autoincrement=True)
    PartyID   = Column(Integer, ForeignKey("FulfillmentParty.PartyID", ondelete="CASCADE"), nullable=False)
    BrandName = Column(String(100), nullable=False)
    CreatedAt = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("PartyID", "BrandName", name="UQ_PartyBrand"),
    )

    party = relationship("FulfillmentParty", back_populates="brands")
