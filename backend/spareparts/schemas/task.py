# backend/spareparts/schemas/task.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TaskStatusLiteral = Literal["pending", "separated", "sent", "delivered", "cancelled"]


class TaskAdvanceIn(BaseModel):
    Status: TaskStatusLiteral
    TrackingNumber: Optional[str] = Field(default=None, max_length=100)
    SupplierPrice: Optional[Decimal] = None
    Notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("SupplierPrice")
    @classmethod
    def _price(cls, v):
        if v is not None and v < 0:
            raise ValueError("SupplierPrice cannot be negative")
        return v


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    TaskID: int
    OrderID: int
    PartyID: int
    OrderNumber: Optional[str] = None
    Status_s: TaskStatusLiteral
    EstimatedDelivery: Optional[datetime] = None
    ConfirmedAt: Optional[datetime] = None
    SentAt: Optional[datetime] = None
    DeliveredAt: Optional[datetime] = None
    CancelledAt: Optional[datetime] = None
    TrackingNumber: Optional[str] = None
    SupplierPrice: Optional[Decimal] = None
    Currency: str = "EUR"
    PartyNotes: Optional[str] = None
    CreatedAt: datetime

    @field_serializer("SupplierPrice")
    def _ser_price(self, v: Optional[Decimal]):
        return float(v) if v is not None else None
