# backend/spareparts/services/notifications.py
"""
Notification dispatch for procurement transitions.

The dispatcher is fire-and-forget: ``notify`` never raises, whatever the
backing implementation does. Callers invoke it only after their own commit.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Notification

logger = logging.getLogger(__name__)

# event names
ORDER_REQUESTED = "spare_part_requested"
ORDER_APPROVED = "spare_part_approved"
ORDER_ASSIGNED = "spare_part_assigned"
TASK_STATUS_CHANGED = "fulfillment_task_status"
ORDER_RECEIVED = "spare_part_received"
STOCK_ALLOCATED = "spare_part_allocated"


@dataclass
class NotificationEvent:
    event_type: str
    title: str
    message: str = ""
    order_id: Optional[int] = None
    user_id: Optional[int] = None
    party_id: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher:
    """Interface. Subclasses implement ``_deliver``; ``notify`` swallows and logs."""

    def notify(self, event: NotificationEvent) -> bool:
        try:
            self._deliver(event)
            return True
        except Exception:
            logger.exception(
                "notification dispatch failed (event=%s, order=%s)", event.event_type, event.order_id
            )
            return False

    def _deliver(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class NullNotificationDispatcher(NotificationDispatcher):
    def _deliver(self, event: NotificationEvent) -> None:
        logger.debug("notification dropped: %s", event.event_type)


class RecordingNotificationDispatcher(NotificationDispatcher):
    """Keeps events in memory. Handy for scripts and tests."""

    def __init__(self) -> None:
        self.events: List[NotificationEvent] = []

    def _deliver(self, event: NotificationEvent) -> None:
        self.events.append(event)


class DbNotificationDispatcher(NotificationDispatcher):
    """
    Stores an in-app Notification row. Uses its own session so a failure
    here can never touch the caller's transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _deliver(self, event: NotificationEvent) -> None:
        db = self._session_factory()
        try:
            db.add(Notification(
                UserID=event.user_id,
                PartyID=event.party_id,
                EventType=event.event_type,
                Title=event.title[:200],
                Message=(event.message or None) and event.message[:1000],
                RelatedOrderID=event.order_id,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
