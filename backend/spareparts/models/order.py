from sqlalchemy import (
    Column, Integer, String, DateTime, DECIMAL, ForeignKey, CheckConstraint, Index, func
)
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..domain import statuses
from ._base import utcnow

class SparePartOrder(Base):
    """
    Canonical record of one requested part. Status is the single source of
    truth for the procurement lifecycle; the fulfillment task only mirrors
    into it through the status synchronizer.
    """
    __tablename__ = "SparePartOrder"

    OrderID        = Column(Integer, primary_key=True, autoincrement=True)
    # ids from the service registry; looked up through ServiceDirectory, no FK
    ServiceID      = Column(Integer)
    TechnicianID   = Column(Integer)
    PartName       = Column(String(200), nullable=False)
    PartNumber     = Column(String(100))
    Quantity       = Column(Integer, nullable=False, default=1)
    Description    = Column(String(500))
    Urgency        = Column(String(10), nullable=False, default=statuses.Urgency.NORMAL.value)
    WarrantyStatus = Column(String(20), nullable=False)
    Status_s       = Column(String(30), nullable=False)
    EstimatedCost  = Column(DECIMAL(10, 2))
    ActualCost     = Column(DECIMAL(10, 2))
    RequesterType  = Column(String(20), nullable=False)
    RequesterUserID = Column(Integer)

    # partner XOR supplier, see CK_SPO_SingleAssignee
    AssignedPartnerID  = Column(Integer, ForeignKey("FulfillmentParty.PartyID"))
    AssignedSupplierID = Column(Integer, ForeignKey("FulfillmentParty.PartyID"))
    AssignedAt     = Column(DateTime)
    AssignedBy     = Column(Integer)

    OrderDate      = Column(DateTime)
    ReceivedDate   = Column(DateTime)
    DeliveredDate  = Column(DateTime)
    AdminNotes     = Column(String(1000))
    SupplierNotes  = Column(String(1000))
    CreatedAt      = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    UpdatedAt      = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("Quantity > 0", name="CK_SPO_Quantity_Positive"),
        CheckConstraint(statuses.check_in("Status_s", statuses.OrderStatus), name="CK_SPO_Status"),
        CheckConstraint(statuses.check_in("Urgency", statuses.Urgency), name="CK_SPO_Urgency"),
        CheckConstraint(statuses.check_in("WarrantyStatus", statuses.WarrantyStatus), name="CK_SPO_Warranty"),
        CheckConstraint(statuses.check_in("RequesterType", statuses.RequesterType), name="CK_SPO_RequesterType"),
        CheckConstraint(
            "AssignedPartnerID IS NULL OR AssignedSupplierID IS NULL",
            name="CK_SPO_SingleAssignee",
        ),
        Index("IX_SPO_Status", "Status_s"),
        Index("IX_SPO_ServiceID", "ServiceID"),
        Index("IX_SPO_TechnicianID", "TechnicianID"),
    )

    partner  = relationship("FulfillmentParty", foreign_keys=[AssignedPartnerID])
    supplier = relationship("FulfillmentParty", foreign_keys=[AssignedSupplierID])

    # children keep their FK; the db refuses the delete (ON DELETE RESTRICT)
    tasks       = relationship("FulfillmentTask", back_populates="order", passive_deletes="all",
                               order_by="FulfillmentTask.TaskID")
    stock_items = relationship("StockItem", back_populates="order", passive_deletes="all")
    notifications = relationship("Notification", back_populates="order",
                                 cascade="all, delete-orphan", passive_deletes=True)

    @property
    def assigned_party_id(self):
        return self.AssignedPartnerID or self.AssignedSupplierID
