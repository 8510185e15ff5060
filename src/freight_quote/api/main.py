from __future__ import annotations

import os
import logging
from typing import Any, Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .routes import router as v1_router
from ..db import SessionLocal, init_db
from ..settings import settings

# ---------------- Logging ----------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("freight-quote-api")

API_VERSION = "1.0.0"

app = FastAPI(
    title="Freight Quote Engine",
    version=API_VERSION,
    description="Ocean, local and transport rate lookup with a single converted grand total",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.include_router(v1_router)

# ----- CORS -----
_allow = os.getenv("ALLOW_ORIGINS") or os.getenv("ALLOWED_ORIGINS", "*")
allow_origins: List[str] = [o.strip() for o in _allow.split(",") if o.strip()] if _allow else ["*"]
allow_all = (len(allow_origins) == 1 and allow_origins[0] == "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    # Browsers disallow credentials with "*"
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Startup -----
@app.on_event("startup")
def _startup():
    """Create missing tariff tables unless INIT_DB=0."""
    if os.getenv("INIT_DB", "1") in ("0", "false", "FALSE", "no", "NO"):
        logger.info("Startup complete, table creation skipped.")
        return
    try:
        init_db()
        logger.info("Startup complete, DB initialized.")
    except Exception:
        logger.exception("DB init failed during startup; continuing without blocking app.")


# ----- System -----
@app.get("/health", tags=["System"])
def health() -> Dict[str, Any]:
    db_ok = True
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1")).scalar()
    except Exception:
        logger.warning("Health check could not reach the tariff database", exc_info=True)
        db_ok = False
    return {
        "ok": True,
        "version": API_VERSION,
        "db_ok": db_ok,
        "currencies": {"source": settings.source_currency, "reporting": settings.reporting_currency},
    }
