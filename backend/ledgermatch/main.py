"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ledgermatch.config import get_settings
from ledgermatch.db.session import SessionLocal
from ledgermatch.routers import aliases, history, matching, orders
from ledgermatch.services.order_store import list_groups

logger = logging.getLogger(__name__)


def _warm_backend_state() -> None:
    """Prime the DB connection and the group listing at process start."""

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            list_groups(db)
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _warm_backend_state()
    yield


app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValueError)
async def value_error_handler(_: Request, exc: ValueError) -> JSONResponse:
    """Contract errors from the services (bad positions, malformed matrices) are client errors."""

    return JSONResponse(status_code=422, content={"detail": str(exc)})


app.include_router(orders.groups_router, tags=["orders"])
app.include_router(orders.router, tags=["orders"])
app.include_router(history.router, tags=["history"])
app.include_router(history.snapshot_router, tags=["history"])
app.include_router(aliases.router, tags=["aliases"])
app.include_router(matching.router, tags=["matching"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
