"""Main FastAPI application"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config import Settings
from routes import router as api_router
from services.expenses_service import ExpenseGateway
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response


def create_app(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Builds the gateway application.

    `transport` replaces the network transport of the upstream client, which
    lets tests point the gateway at an in-process fake.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: one pooled client for all upstream calls
        logger.info(f"Forwarding expenses to {settings.base_url} (timeout {settings.upstream_timeout}s)")
        client = httpx.AsyncClient(timeout=settings.upstream_timeout, transport=transport)
        app.state.gateway = ExpenseGateway(settings, client)
        logger.info(f"Server is running on port {settings.port}")

        yield  # Application runs here

        # Shutdown
        app.state.gateway = None
        await client.aclose()
        logger.info("Upstream client closed.")

    app = FastAPI(
        title="Expense Gateway API",
        description="Forwards expense CRUD to an upstream store and computes totals.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # --- Rate Limiter ---
    if settings.rate_limit:
        limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    else:
        limiter = Limiter(key_func=get_remote_address, enabled=False)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # --- Middleware (last added runs first) ---
    if settings.rate_limit:
        logger.info(f"Rate limiting enabled: {settings.rate_limit} per client")
        app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router)
    return app


settings = Settings.from_env()
setup_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,  # keep the Rich configuration applied above
    )
