# backend/spareparts/domain/statuses.py
"""
Closed value sets for every status-like column. Models build their CHECK
constraints from these, schemas their Literal-equivalents, services compare
against members only.
"""
from enum import Enum
from typing import Tuple, Type


class StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(m.value for m in cls)


class OrderStatus(StrEnum):
    REQUESTED = "requested"
    PENDING = "pending"
    ADMIN_ORDERED = "admin_ordered"
    ASSIGNED_TO_PARTNER = "assigned_to_partner"
    PARTNER_PROCESSING = "partner_processing"
    ASSIGNED_TO_SUPPLIER = "assigned_to_supplier"
    SUPPLIER_PROCESSING = "supplier_processing"
    WAITING_DELIVERY = "waiting_delivery"
    AVAILABLE = "available"
    CONSUMED = "consumed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REMOVED_FROM_ORDERING = "removed_from_ordering"


class TaskStatus(StrEnum):
    PENDING = "pending"
    SEPARATED = "separated"
    SENT = "sent"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PartyType(StrEnum):
    SUPPLIER = "supplier"
    PARTNER = "partner"


class Urgency(StrEnum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class WarrantyStatus(StrEnum):
    IN_WARRANTY = "in_warranty"
    OUT_OF_WARRANTY = "out_of_warranty"


class RequesterType(StrEnum):
    ADMIN = "admin"
    TECHNICIAN = "technician"


class AllocationStatus(StrEnum):
    ALLOCATED = "allocated"
    CONSUMED = "consumed"
    RETURNED = "returned"


class ActivityAction(StrEnum):
    RECEIVED = "received"
    ALLOCATED = "allocated"
    RETURNED = "returned"


class Role(StrEnum):
    ADMIN = "admin"
    TECHNICIAN = "technician"
    BUSINESS_PARTNER = "business_partner"
    SUPPLIER = "supplier"
    VIEWER = "viewer"


def check_in(column: str, enum_cls: Type[StrEnum]) -> str:
    """SQL text for a CHECK constraint limiting ``column`` to the enum's values."""
    quoted = ",".join(f"'{v}'" for v in enum_cls.values())
    return f"{column} IN ({quoted})"
