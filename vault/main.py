"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vault.config import settings
from vault.errors import VaultError
from vault.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from vault.routers import accounts, sessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire services, run the notification workers."""
    from vault.database import async_session_factory, engine
    from vault.dependencies import build_services
    from vault.redis import close_redis_pool

    services = build_services(settings, async_session_factory)
    app.state.services = services
    services.dispatcher.start()

    yield

    # Let queued emails go out before shutting the workers down
    await services.dispatcher.join()
    await services.dispatcher.stop()
    await engine.dispose()
    await close_redis_pool()


app = FastAPI(
    title="Vault",
    description="Accounts, email verification, password reset and sessions",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(VaultError)
async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled domain error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# CORS - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware (order matters: outermost first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware)

# Routers
app.include_router(accounts.router)
app.include_router(sessions.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
