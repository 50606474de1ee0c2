# backend/spareparts/routers/admin.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.api import ok
from ..core.db import get_db
from ..core.deps import get_synchronizer
from ..core.security import require_roles

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_roles("admin"))])


@router.post("/reconcile")
def reconcile(db: Session = Depends(get_db), synchronizer=Depends(get_synchronizer)):
    """Re-apply task -> order mirrors that a failed sync left behind."""
    return ok(synchronizer.reconcile(db))
