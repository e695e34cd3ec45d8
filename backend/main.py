from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add parent dir so we can import campaigndocs when started from backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from campaigndocs.config import ExportSettings, default_db_path
from campaigndocs.store import SqliteStore

from backend.api.exports import router as exports_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("campaigndocs.backend")


def _db() -> str:
    return os.environ.get("CAMPAIGNDOCS_DB_PATH", default_db_path())


# ── App ────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    db = _db()
    if not Path(db).exists():
        logger.warning("store not found at %s, run scripts/seed_demo_store.py first", db)
    else:
        SqliteStore(db).init()
    yield


app = FastAPI(title="Campaign Docs Export", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(exports_router, prefix="/api/exports", tags=["exports"])


# ── REST endpoints ─────────────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    settings = ExportSettings.from_env()
    return {
        "status": "ok",
        "db": _db(),
        "data_sheet": settings.data_sheet,
        "splits_sheet": settings.splits_sheet,
        "default_language": settings.default_language,
    }
