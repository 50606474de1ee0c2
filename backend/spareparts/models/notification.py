from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, func, text
from sqlalchemy.orm import relationship
from ..core.db import Base
from ._base import utcnow

class Notification(Base):
    """In-app notification row; delivery channels are handled outside this service."""
    __tablename__ = "Notification"

    NotificationID = Column(Integer, primary_key=True, autoincrement=True)
    UserID         = Column(Integer)
    PartyID        = Column(Integer)
    EventType      = Column(String(50), nullable=False)
    Title          = Column(String(200), nullable=False)
    Message        = Column(String(1000))
    RelatedOrderID = Column(Integer, ForeignKey("SparePartOrder.OrderID", ondelete="CASCADE"))
    IsRead         = Column(Boolean, nullable=False, default=False, server_default=text("0"))
    CreatedAt      = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("IX_Notification_RelatedOrderID", "RelatedOrderID"),
    )

    order = relationship("SparePartOrder", back_populates="notifications")
