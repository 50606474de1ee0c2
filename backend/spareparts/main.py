# backend/spareparts/main.py
import asyncio
import json
import logging
import os
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from .core.api import ok, fail, UTF8JSONResponse
from .core.db import get_db, SessionLocal
from .core.errors import ProcurementError
from .core.settings import settings
from .services.status_sync import StatusSynchronizer

from .routers.auth import router as auth_router
from .routers.orders import router as orders_router
from .routers.parties import router as parties_router
from .routers.tasks import router as tasks_router
from .routers.warehouse import router as warehouse_router
from .routers.admin import router as admin_router

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("spareparts")

app = FastAPI(title="Spare Parts Procurement", default_response_class=UTF8JSONResponse)


# -----------------------------
# Global error envelope
# -----------------------------
@app.exception_handler(ProcurementError)
async def procurement_error_to_envelope(request: Request, exc: ProcurementError):
    return fail(str(exc.detail), status_code=exc.status_code, meta={"code": exc.code})

@app.exception_handler(StarletteHTTPException)
async def http_exception_to_envelope(request: Request, exc: StarletteHTTPException):
    return fail(str(exc.detail) if exc.detail else exc.__class__.__name__, status_code=exc.status_code)

@app.exception_handler(RequestValidationError)
async def validation_exception_to_envelope(request: Request, exc: RequestValidationError):
    return fail("Validation error", status_code=422, meta={"errors": exc.errors()})


# -----------------------------
# CORS (.env)
# -----------------------------
def _parse_origins(env_val: Optional[str]):
    if not env_val or env_val.strip() == "*":
        return ["*"]
    try:
        parsed = json.loads(env_val)
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    except ValueError:
        pass
    return [s.strip() for s in env_val.split(",") if s.strip()]

ALLOWED_ORIGINS = _parse_origins(os.getenv("CORS_ALLOW_ORIGINS", "*"))
logger.info("CORS allow_origins = %s", ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Periodic reconcile sweep
# -----------------------------
_reconcile_task: Optional[asyncio.Task] = None

async def reconcile_scheduler(interval_minutes: int):
    """Runs until cancelled on shutdown. Each sweep runs in a worker thread."""
    synchronizer = StatusSynchronizer(SessionLocal)
    logger.info("reconcile scheduler started (interval: %s minutes)", interval_minutes)
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            result = await asyncio.to_thread(synchronizer.reconcile_once)
            logger.info("reconcile sweep: %s", result)
        except Exception:
            logger.exception("reconcile sweep failed")

@app.on_event("startup")
async def _start_reconcile():
    global _reconcile_task
    if settings.reconcile_interval_minutes > 0:
        _reconcile_task = asyncio.create_task(reconcile_scheduler(settings.reconcile_interval_minutes))
    else:
        logger.info("reconcile scheduler disabled (RECONCILE_INTERVAL_MINUTES=0)")

@app.on_event("shutdown")
async def _stop_reconcile():
    if _reconcile_task and not _reconcile_task.done():
        _reconcile_task.cancel()
        try:
            await _reconcile_task
        except asyncio.CancelledError:
            logger.info("reconcile scheduler cancelled")


# ---- health ----
@app.get("/health")
def health():
    return ok({"service": "spare-parts-procurement"})

@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    val = db.execute(text("SELECT 1")).scalar()
    return ok({"db": "ok", "select1": val})


# =========================
# Routers
# =========================
app.include_router(auth_router)
app.include_router(orders_router)      # /spare-parts
app.include_router(parties_router)
app.include_router(tasks_router)
app.include_router(warehouse_router)
app.include_router(admin_router)
