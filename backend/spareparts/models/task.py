from sqlalchemy import (
    Column, Integer, String, DateTime, DECIMAL, ForeignKey, CheckConstraint, UniqueConstraint, Index, func
)
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..domain.statuses import TaskStatus, check_in
from ._base import utcnow

class FulfillmentTask(Base):
    """Work item of one fulfillment party for one order."""
    __tablename__ = "FulfillmentTask"

    TaskID            = Column(Integer, primary_key=True, autoincrement=True)
    OrderID           = Column(Integer, ForeignKey("SparePartOrder.OrderID", ondelete="RESTRICT"), nullable=False)
    PartyID           = Column(Integer, ForeignKey("FulfillmentParty.PartyID"), nullable=False)
    OrderNumber       = Column(String(50))
    Status_s          = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    EstimatedDelivery = Column(DateTime)
    ConfirmedAt       = Column(DateTime)  # separated
    SentAt            = Column(DateTime)
    DeliveredAt       = Column(DateTime)
    CancelledAt       = Column(DateTime)
    TrackingNumber    = Column(String(100))
    SupplierPrice     = Column(DECIMAL(10, 2))
    Currency          = Column(String(3), nullable=False, default="EUR")
    PartyNotes        = Column(String(1000))
    CreatedAt         = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    UpdatedAt         = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(check_in("Status_s", TaskStatus), name="CK_Task_Status"),
        UniqueConstraint("OrderID", "PartyID", name="UQ_Task_Order_Party"),
        Index("IX_Task_PartyID", "PartyID"),
    )

    order = relationship("SparePartOrder", back_populates="tasks")
    party = relationship("FulfillmentParty", back_populates="tasks")
