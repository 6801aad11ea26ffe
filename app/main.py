"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.errors import DeliveryError, PersistenceError
from app.routers import auth

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    from app.services.sweeper import run_expiry_sweeper
    from app.services.verification import get_verification_service

    service = get_verification_service()
    sweeper_task = None
    if service.staging is not None:
        sweeper_task = asyncio.create_task(
            run_expiry_sweeper(service.staging, settings.expiry_sweep_interval_seconds)
        )

    yield

    # Cleanup
    if sweeper_task is not None:
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass
    await service.aclose()


app = FastAPI(
    title="Staged Signup",
    description="Email-verified signup with staged, time-limited registrations",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DeliveryError)
async def delivery_error_handler(request: Request, exc: DeliveryError) -> JSONResponse:
    logger.error("Email delivery failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Could not send email, try again later"})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Persistence failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, try again later"})


# Routers
app.include_router(auth.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
