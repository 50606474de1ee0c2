# backend/spareparts/core/db.py
import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from dotenv import dotenv_values, load_dotenv, find_dotenv

# project root and .env path
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
DEFAULT_DOTENV = os.path.join(BASE_DIR, ".env")

def _norm_key(k: str) -> str:
    return k.replace("\ufeff", "").strip() if isinstance(k, str) else k

# load .env without overriding what CI already exported
dotenv_path = DEFAULT_DOTENV if os.path.exists(DEFAULT_DOTENV) else find_dotenv(filename=".env", usecwd=True)
if dotenv_path:
    cfg = dotenv_values(dotenv_path, encoding="utf-8-sig")
    for k, v in cfg.items():
        nk = _norm_key(k)
        if v is not None and (nk not in os.environ or not os.environ[nk].strip()):
            os.environ[nk] = v
    load_dotenv(dotenv_path, override=False)

DSN = os.environ.get("DATABASE_URL") or os.environ.get("MSSQL_DSN")
if not DSN or not DSN.strip():
    raise RuntimeError(f"DATABASE_URL / MSSQL_DSN is not set. .env: {dotenv_path or '(not found)'}")

url = make_url(DSN)
engine_kwargs = dict(pool_pre_ping=True)

backend = url.get_backend_name()  # e.g. 'sqlite', 'mssql', 'postgresql'
if backend.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        # in-memory db must be shared by every session
        engine_kwargs["poolclass"] = StaticPool
elif backend.startswith("mssql"):
    engine_kwargs.update(pool_size=5, max_overflow=10, fast_executemany=True)

engine = create_engine(DSN, **engine_kwargs)


def enable_sqlite_fk(target_engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless the pragma is set per connection."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _fk_pragma(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


enable_sqlite_fk(engine)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
