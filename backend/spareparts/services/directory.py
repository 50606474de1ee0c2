# backend/spareparts/services/directory.py
"""
Read-only lookups into the service registry (repair jobs, technicians,
clients). Procurement code receives a directory as a parameter and never
writes through it.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from ..models import RepairService, Technician


@dataclass(frozen=True)
class TechnicianInfo:
    technician_id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class ServiceInfo:
    service_id: int
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    manufacturer: Optional[str] = None
    appliance_info: Optional[str] = None
    description: Optional[str] = None
    technician_id: Optional[int] = None


class ServiceDirectory(Protocol):
    def get_service(self, service_id: int) -> Optional[ServiceInfo]: ...

    def get_technician(self, technician_id: int) -> Optional[TechnicianInfo]: ...


class SqlServiceDirectory:
    def __init__(self, db: Session):
        self._db = db

    def get_technician(self, technician_id: int) -> Optional[TechnicianInfo]:
        t = self._db.get(Technician, technician_id)
        if t is None:
            return None
        return TechnicianInfo(
            technician_id=t.TechnicianID,
            name=t.Name,
            phone=t.Phone,
            email=t.Email,
            specialization=t.Specialization,
            is_active=bool(t.IsActive),
        )

    def get_service(self, service_id: int) -> Optional[ServiceInfo]:
        s = self._db.get(RepairService, service_id)
        if s is None:
            return None
        client = s.client
        return ServiceInfo(
            service_id=s.ServiceID,
            client_id=s.ClientID,
            client_name=client.FullName if client else None,
            client_phone=client.Phone if client else None,
            manufacturer=s.Manufacturer,
            appliance_info=s.ApplianceInfo,
            description=s.Description,
            technician_id=s.TechnicianID,
        )
