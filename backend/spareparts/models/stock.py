from sqlalchemy import (
    Column, Integer, String, DateTime, DECIMAL, ForeignKey, CheckConstraint, Index, func
)
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..domain import statuses
from ._base import utcnow

class StockItem(Base):
    __tablename__ = "StockItem"

    StockItemID        = Column(Integer, primary_key=True, autoincrement=True)
    OrderID            = Column(Integer, ForeignKey("SparePartOrder.OrderID", ondelete="RESTRICT"))
    PartName           = Column(String(200), nullable=False)
    PartNumber         = Column(String(100))
    Quantity           = Column(Integer, nullable=False, default=0)
    UnitCost           = Column(DECIMAL(10, 2))
    Location           = Column(String(100))
    WarrantyStatus     = Column(String(20), nullable=False)
    SupplierName       = Column(String(100))
    # traceability back to the originating repair job
    ServiceID          = Column(Integer)
    ClientName         = Column(String(200))
    ClientPhone        = Column(String(50))
    ApplianceInfo      = Column(String(300))
    ServiceDescription = Column(String(500))
    AddedBy            = Column(Integer, nullable=False)
    Notes              = Column(String(1000))
    CreatedAt          = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    UpdatedAt          = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("Quantity >= 0", name="CK_Stock_Quantity_NonNeg"),
        CheckConstraint(statuses.check_in("WarrantyStatus", statuses.WarrantyStatus), name="CK_Stock_Warranty"),
        Index("IX_Stock_OrderID", "OrderID"),
    )

    order       = relationship("SparePartOrder", back_populates="stock_items")
    allocations = relationship("PartsAllocation", back_populates="stock_item", passive_deletes="all",
                               order_by="PartsAllocation.AllocationID")
    activity    = relationship("PartsActivityLog", back_populates="stock_item", passive_deletes="all",
                               order_by="PartsActivityLog.LogID")
