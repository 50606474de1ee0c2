from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index, event, func
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..core.errors import ConflictError
from ..domain.statuses import ActivityAction, check_in
from ._base import utcnow

class PartsActivityLog(Base):
    """Append-only audit trail of every warehouse quantity change."""
    __tablename__ = "PartsActivityLog"

    LogID            = Column(Integer, primary_key=True, autoincrement=True)
    StockItemID      = Column(Integer, ForeignKey("StockItem.StockItemID", ondelete="RESTRICT"), nullable=False)
    Action           = Column(String(20), nullable=False)
    PreviousQuantity = Column(Integer, nullable=False)
    NewQuantity      = Column(Integer, nullable=False)
    TechnicianID     = Column(Integer)
    ServiceID        = Column(Integer)
    AllocationID     = Column(Integer, ForeignKey("PartsAllocation.AllocationID"))
    UserID           = Column(Integer, nullable=False)
    Description      = Column(String(500))
    CreatedAt        = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(check_in("Action", ActivityAction), name="CK_Activity_Action"),
        CheckConstraint("PreviousQuantity >= 0 AND NewQuantity >= 0", name="CK_Activity_Quantity_NonNeg"),
        Index("IX_Activity_StockItemID", "StockItemID"),
    )

    stock_item = relationship("StockItem", back_populates="activity")


@event.listens_for(PartsActivityLog, "before_update")
def _log_is_append_only(mapper, connection, target):
    raise ConflictError(f"Activity log entry #{target.LogID} cannot be modified.")


@event.listens_for(PartsActivityLog, "before_delete")
def _log_is_permanent(mapper, connection, target):
    raise ConflictError(f"Activity log entry #{target.LogID} cannot be deleted.")
