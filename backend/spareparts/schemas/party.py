# backend/spareparts/schemas/party.py
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PartyCreate(BaseModel):
    Name: str = Field(min_length=2, max_length=100)
    PartyType: Literal["supplier", "partner"]
    Brands: List[str] = Field(default_factory=list)
    CompanyName: Optional[str] = Field(default=None, max_length=200)
    Email: Optional[EmailStr] = None
    Phone: Optional[str] = Field(default=None, max_length=50)
    ContactPerson: Optional[str] = Field(default=None, max_length=100)
    Priority: int = Field(default=5, ge=1, le=10)
    AverageDeliveryDays: int = Field(default=7, ge=1)
    Notes: Optional[str] = Field(default=None, max_length=1000)


class BrandIn(BaseModel):
    BrandName: str = Field(min_length=1, max_length=100)


class BrandRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    BrandID: int
    BrandName: str


class PartyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    PartyID: int
    Name: str
    CompanyName: Optional[str] = None
    PartyType: Literal["supplier", "partner"]
    Email: Optional[str] = None
    Phone: Optional[str] = None
    ContactPerson: Optional[str] = None
    Priority: int
    AverageDeliveryDays: int
    IsActive: bool
    brands: List[BrandRead] = []


class RoutePreviewIn(BaseModel):
    Brand: str = Field(min_length=1, max_length=100)
    PartyType: Optional[Literal["supplier", "partner"]] = None
