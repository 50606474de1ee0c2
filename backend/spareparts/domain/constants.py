# backend/spareparts/domain/constants.py

"""
Single source for the free-text reasons written into the activity log and
for the task order number format.
"""

from typing import Final

# order number handed to the fulfillment party, e.g. SPO-12-1718000000
TASK_ORDER_NUMBER: Final[str] = "SPO-{}-{}"

REASON_ORDER_RECEIVE: Final[str] = "Order receive #{}"
REASON_ALLOCATION: Final[str] = "Allocated to technician #{} for service #{}"
REASON_ALLOCATION_RETURN: Final[str] = "Allocation #{} returned"

# tokens that never decide a brand match on their own
GENERIC_BRAND_TOKENS: Final[frozenset] = frozenset({"service", "servis", "parts", "delovi"})
