"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, table creation, ledger composition,
     engine disposal
  2. Request-id middleware — tags each request (and its log lines) with an id
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — map ledger errors to HTTP responses
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn ledger.main:app --reload
"""

import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ledger import models  # noqa: F401  (registers every table on Base.metadata)
from ledger.config import settings
from ledger.database import AsyncSessionLocal, Base, engine
from ledger.exceptions import register_exception_handlers
from ledger.logging_config import request_id_var, setup_logging
from ledger.routers import accounts, transactions, users
from ledger.services.ledger_service import LedgerService
from ledger.services.logging_ledger import LoggingLedger
from ledger.store import LedgerStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging, creates all tables if they don't exist (use
      migrations instead once the schema has to evolve in place), and builds
      the ledger: the engine wrapped in its logging decorator.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    if engine.dialect.name == "sqlite" and engine.url.database:
        # SQLite creates the file but not its directory
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.ledger = LoggingLedger(LedgerService(LedgerStore(AsyncSessionLocal)))
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Single-currency ledger: users, accounts, deposits, transfers and history",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Bind a request id for the duration of the request and echo it back."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# In production, lock this down to your actual frontend domain(s).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
