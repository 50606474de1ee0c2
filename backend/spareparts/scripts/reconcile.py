# backend/spareparts/scripts/reconcile.py
"""
One reconcile sweep from cron or by hand:

    python -m spareparts.scripts.reconcile
"""
import logging

from ..core.db import SessionLocal
from ..services.status_sync import StatusSynchronizer

logger = logging.getLogger(__name__)


def main() -> int:
    result = StatusSynchronizer(SessionLocal).reconcile_once()
    logger.info("checked %s task(s), updated orders: %s", result["checked"], result["updated"] or "none")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    raise SystemExit(main())
