"""Content Generation Service — FastAPI application.

Run:
    uvicorn citypages.api.main:app --reload
    # or
    citypages-api
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from citypages.api import routes
from citypages.api.deps import close_clients
from citypages.config import settings
from citypages.observability.logging import correlation_id, setup_logging
from citypages.observability.tracing import init_tracking
from citypages.storage.db import get_session, init_db

logger = logging.getLogger(__name__)

SCHEMA_TIMEOUT = 15  # seconds


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Logging, MLflow and table creation on startup; provider connection closed on shutdown.

    An unreachable database does not stop startup: POST /research answers
    500 until it comes back, and /health reports it.
    """
    setup_logging(json_format=settings.log_json, level=settings.log_level)
    init_tracking(settings.mlflow_tracking_uri, settings.mlflow_experiment_name)

    try:
        await asyncio.wait_for(init_db(), timeout=SCHEMA_TIMEOUT)
    except Exception as e:
        logger.error("Could not create tables (%s); job endpoints unavailable until the database is up", e)
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is not set; every job will fail at its first section")

    logger.info("Listening with model %s, default neighborhoods %s",
                settings.anthropic_model, ", ".join(settings.default_neighborhoods))
    yield
    if routes._background_tasks:
        logger.warning("Shutting down with %d jobs still running", len(routes._background_tasks))
    await close_clients()


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag each request (and any job it starts) with X-Request-ID or a fresh UUID."""

    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = correlation_id.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)
        response.headers["x-request-id"] = cid
        return response


app = FastAPI(
    title="Content Generation Service",
    description="Generates dumpster rental landing pages for a city and its neighborhoods.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": "Content Generation Service"}


async def _database_check() -> str:
    session = None
    try:
        session = await get_session()
        await session.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        return f"error: {e!r}"
    finally:
        if session is not None:
            await session.close()


@app.get("/health")
async def health():
    """Readiness: a job can only succeed with both the database and a provider key."""
    checks = {
        "database": await _database_check(),
        "provider": "ok" if settings.anthropic_api_key else "error: ANTHROPIC_API_KEY not set",
    }
    healthy = all(v == "ok" for v in checks.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
        "running_jobs": len(routes._background_tasks),
    }


def run():
    """Entry point for citypages-api console script."""
    uvicorn.run("citypages.api.main:app", host="0.0.0.0", port=settings.port)
