# backend/spareparts/schemas/order.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..domain.money import MONEY_PLACES

UrgencyLiteral = Literal["normal", "high", "urgent"]
WarrantyLiteral = Literal["in_warranty", "out_of_warranty"]
OrderStatusLiteral = Literal[
    "requested", "pending", "admin_ordered",
    "assigned_to_partner", "partner_processing",
    "assigned_to_supplier", "supplier_processing",
    "waiting_delivery", "available", "consumed",
    "delivered", "cancelled", "removed_from_ordering",
]


def _money_or_none(v):
    if v is None:
        return None
    d = v if isinstance(v, Decimal) else Decimal(str(v))
    if d < 0:
        raise ValueError("amount cannot be negative")
    return d.quantize(MONEY_PLACES)


class OrderCreate(BaseModel):
    PartName: str = Field(min_length=1, max_length=200)
    PartNumber: Optional[str] = Field(default=None, max_length=100)
    Quantity: int = Field(default=1, gt=0)
    Description: Optional[str] = Field(default=None, max_length=500)
    ServiceID: Optional[int] = Field(default=None, ge=1)
    TechnicianID: Optional[int] = Field(default=None, ge=1)
    Urgency: UrgencyLiteral = "normal"
    WarrantyStatus: WarrantyLiteral = "out_of_warranty"
    EstimatedCost: Optional[Decimal] = None
    AdminNotes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("PartName")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("PartName must not be blank")
        return v

    @field_validator("EstimatedCost")
    @classmethod
    def _cost(cls, v):
        return _money_or_none(v)


class OrderUpdate(BaseModel):
    AdminNotes: Optional[str] = Field(default=None, max_length=1000)
    EstimatedCost: Optional[Decimal] = None
    Urgency: Optional[UrgencyLiteral] = None
    PartNumber: Optional[str] = Field(default=None, max_length=100)

    @field_validator("EstimatedCost")
    @classmethod
    def _cost(cls, v):
        return _money_or_none(v)


class AssignIn(BaseModel):
    """Either a brand to route, or an explicit PartyID."""
    Brand: Optional[str] = Field(default=None, max_length=100)
    PartyType: Optional[Literal["supplier", "partner"]] = None
    PartyID: Optional[int] = Field(default=None, ge=1)


class ReceiveIn(BaseModel):
    ActualCost: Optional[Decimal] = None
    Location: Optional[str] = Field(default=None, max_length=100)
    Notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("ActualCost")
    @classmethod
    def _cost(cls, v):
        return _money_or_none(v)


class ReasonIn(BaseModel):
    Reason: Optional[str] = Field(default=None, max_length=500)


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    OrderID: int
    ServiceID: Optional[int] = None
    TechnicianID: Optional[int] = None
    PartName: str
    PartNumber: Optional[str] = None
    Quantity: int
    Description: Optional[str] = None
    Urgency: UrgencyLiteral
    WarrantyStatus: WarrantyLiteral
    Status_s: OrderStatusLiteral
    EstimatedCost: Optional[Decimal] = None
    ActualCost: Optional[Decimal] = None
    RequesterType: Literal["admin", "technician"]
    RequesterUserID: Optional[int] = None
    AssignedPartnerID: Optional[int] = None
    AssignedSupplierID: Optional[int] = None
    AssignedAt: Optional[datetime] = None
    OrderDate: Optional[datetime] = None
    ReceivedDate: Optional[datetime] = None
    DeliveredDate: Optional[datetime] = None
    AdminNotes: Optional[str] = None
    SupplierNotes: Optional[str] = None
    CreatedAt: datetime
    UpdatedAt: datetime

    @field_serializer("EstimatedCost", "ActualCost")
    def _ser_money(self, v: Optional[Decimal]):
        return float(v) if v is not None else None
