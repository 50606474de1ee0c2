# backend/spareparts/schemas/warehouse.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class AllocateIn(BaseModel):
    StockItemID: int = Field(..., ge=1)
    ServiceID: int = Field(..., ge=1)
    TechnicianID: int = Field(..., ge=1)
    Quantity: int = Field(..., gt=0)
    Notes: Optional[str] = Field(default=None, max_length=1000)


class ReturnIn(BaseModel):
    Notes: Optional[str] = Field(default=None, max_length=400)


class StockItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    StockItemID: int
    OrderID: Optional[int] = None
    PartName: str
    PartNumber: Optional[str] = None
    Quantity: int
    UnitCost: Optional[Decimal] = None
    Location: Optional[str] = None
    WarrantyStatus: str
    SupplierName: Optional[str] = None
    ServiceID: Optional[int] = None
    ClientName: Optional[str] = None
    ClientPhone: Optional[str] = None
    ApplianceInfo: Optional[str] = None
    ServiceDescription: Optional[str] = None
    AddedBy: int
    Notes: Optional[str] = None
    CreatedAt: datetime

    @field_serializer("UnitCost")
    def _ser_cost(self, v: Optional[Decimal]):
        return float(v) if v is not None else None


class AllocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    AllocationID: int
    StockItemID: int
    ServiceID: int
    TechnicianID: int
    Quantity: int
    AllocatedBy: int
    Notes: Optional[str] = None
    Status_s: Literal["allocated", "consumed", "returned"]
    AllocatedAt: datetime
    ConsumedAt: Optional[datetime] = None
    ReturnedAt: Optional[datetime] = None


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    LogID: int
    StockItemID: int
    Action: Literal["received", "allocated", "returned"]
    PreviousQuantity: int
    NewQuantity: int
    TechnicianID: Optional[int] = None
    ServiceID: Optional[int] = None
    AllocationID: Optional[int] = None
    UserID: int
    Description: Optional[str] = None
    CreatedAt: datetime
