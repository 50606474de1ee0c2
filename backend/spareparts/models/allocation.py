from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index, event, func, inspect
)
from sqlalchemy.orm import relationship
from ..core.db import Base
from ..core.errors import ConflictError
from ..domain.statuses import AllocationStatus, check_in
from ._base import utcnow

class PartsAllocation(Base):
    """Stock bound to a technician for a repair job. Only the terminal marker may change."""
    __tablename__ = "PartsAllocation"

    AllocationID = Column(Integer, primary_key=True, autoincrement=True)
    StockItemID  = Column(Integer, ForeignKey("StockItem.StockItemID", ondelete="RESTRICT"), nullable=False)
    ServiceID    = Column(Integer, nullable=False)
    TechnicianID = Column(Integer, nullable=False)
    Quantity     = Column(Integer, nullable=False)
    AllocatedBy  = Column(Integer, nullable=False)
    Notes        = Column(String(1000))
    Status_s     = Column(String(20), nullable=False, default=AllocationStatus.ALLOCATED.value)
    AllocatedAt  = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    ConsumedAt   = Column(DateTime)
    ReturnedAt   = Column(DateTime)

    __table_args__ = (
        CheckConstraint("Quantity > 0", name="CK_Alloc_Quantity_Positive"),
        CheckConstraint(check_in("Status_s", AllocationStatus), name="CK_Alloc_Status"),
        Index("IX_Alloc_ServiceID", "ServiceID"),
        Index("IX_Alloc_TechnicianID", "TechnicianID"),
    )

    stock_item = relationship("StockItem", back_populates="allocations")


_MUTABLE_ALLOCATION_FIELDS = {"Status_s", "ConsumedAt", "ReturnedAt"}


@event.listens_for(PartsAllocation, "before_update")
def _allocation_is_immutable(mapper, connection, target):
    state = inspect(target)
    changed = {
        attr.key for attr in state.attrs
        if attr.key in mapper.column_attrs and attr.history.has_changes()
    }
    if changed - _MUTABLE_ALLOCATION_FIELDS:
        raise ConflictError(f"Allocation #{target.AllocationID} is immutable ({', '.join(sorted(changed))}).")
    previous = state.attrs.Status_s.history.deleted
    if previous and previous[0] != AllocationStatus.ALLOCATED.value:
        raise ConflictError(f"Allocation #{target.AllocationID} is already '{previous[0]}'.")


@event.listens_for(PartsAllocation, "before_delete")
def _allocation_is_permanent(mapper, connection, target):
    raise ConflictError(f"Allocation #{target.AllocationID} cannot be deleted.")
