from .client import Client
from .technician import Technician
from .repair_service import RepairService
from .party import FulfillmentParty, PartyBrand
from .order import SparePartOrder
from .task import FulfillmentTask
from .stock import StockItem
from .allocation import PartsAllocation
from .activity_log import PartsActivityLog
from .notification import Notification
from .user import AppUser
__all__ = [
    "Client", "Technician", "RepairService", "FulfillmentParty", "PartyBrand", "SparePartOrder",
    "FulfillmentTask", "StockItem", "PartsAllocation", "PartsActivityLog", "Notification", "AppUser",
]
