from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field, ConfigDict

RoleLiteral = Literal["admin", "technician", "business_partner", "supplier", "viewer"]

class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str = Field(min_length=6, max_length=128)
    role: Optional[RoleLiteral] = "viewer"
    # portal users are bound to a party / technician record
    party_id: Optional[int] = Field(default=None, ge=1)
    technician_id: Optional[int] = Field(default=None, ge=1)

class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    UserID: int
    Username: str
    FullName: Optional[str]
    Email: Optional[EmailStr]
    Role: RoleLiteral
    PartyID: Optional[int] = None
    TechnicianID: Optional[int] = None
    IsActive: bool

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
