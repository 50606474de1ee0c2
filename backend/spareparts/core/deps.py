# backend/spareparts/core/deps.py
"""
Collaborators handed to the services. Tests swap them through
app.dependency_overrides.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from .db import SessionLocal, get_db
from ..services.directory import SqlServiceDirectory
from ..services.notifications import DbNotificationDispatcher, NotificationDispatcher
from ..services.registry import build_routing_engine
from ..services.routing import RoutingEngine
from ..services.status_sync import StatusSynchronizer


def get_notifier() -> NotificationDispatcher:
    return DbNotificationDispatcher(SessionLocal)

def get_directory(db: Session = Depends(get_db)) -> SqlServiceDirectory:
    return SqlServiceDirectory(db)

def get_routing_engine() -> RoutingEngine:
    return build_routing_engine()

def get_synchronizer() -> StatusSynchronizer:
    return StatusSynchronizer(SessionLocal)
