"""FastAPI application for the tablehand API."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response
from slowapi.errors import RateLimitExceeded

from tablehand.api.concurrency import InboundGuard
from tablehand.api.dependencies import api_key_header, verify_api_key
from tablehand.api.errors import DomainError
from tablehand.api.rate_limit import limiter
from tablehand.api.routes import chat, health, memory, telegram
from tablehand.api.routes import metrics as metrics_route
from tablehand.app_version import get_app_version
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.conversation.sweeper import SessionSweeper
from tablehand.observability.logging import logger, request_id_var
from tablehand.observability.metrics import REQUEST_COUNT, REQUEST_LATENCY
from tablehand.reasoning import get_reasoning_engine
from tablehand.records import RecordToolExecutor, get_record_store


def _metrics_path(request: Request) -> str:
    """Return a low-cardinality path label for metrics."""
    route = request.scope.get("route")
    if route is not None:
        path = getattr(route, "path", None)
        if path:
            return str(path)
    return "unmatched"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after_header = exc.headers.get("Retry-After") if exc.headers else None
    retry_after = retry_after_header or "60"
    logger.warning(
        "rate_limit_exceeded",
        path=str(request.url.path),
        method=request.method,
        limit=exc.detail,
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limited",
            "detail": f"Too many requests. Retry after {retry_after} seconds.",
            "retry_after_seconds": int(retry_after) if str(retry_after).isdigit() else retry_after,
            "limit": exc.detail,
        },
        headers=exc.headers or {"Retry-After": str(retry_after)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the conversation stack on startup and start the session sweeper."""
    from tablehand.observability import init_observability

    init_observability()
    logger.info("api_starting", version=get_app_version())

    store = get_record_store()
    engine = get_reasoning_engine()
    orchestrator = Orchestrator(engine, RecordToolExecutor(store))
    sweeper = SessionSweeper(orchestrator.sessions, orchestrator.gate)

    app.state.record_store = store
    app.state.engine = engine
    app.state.orchestrator = orchestrator
    app.state.inbound_guard = InboundGuard()
    app.state.sweeper = sweeper
    sweeper.start()

    yield

    logger.info("api_stopping")
    await sweeper.stop()
    await store.aclose()


app = FastAPI(
    title="tablehand API",
    description="Chat-driven assistant for an Airtable CRM",
    version=get_app_version(),
    lifespan=lifespan,
)


@app.middleware("http")
async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Middleware to manage X-Request-ID header and contextvar propagation."""

    incoming_request_id = request.headers.get("X-Request-ID")
    request_id = incoming_request_id or str(uuid4())

    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def timing_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    path_label = _metrics_path(request)
    REQUEST_COUNT.labels(
        method=request.method,
        path=path_label,
        status=response.status_code,
    ).inc()
    REQUEST_LATENCY.labels(path=path_label).observe(duration_ms / 1000.0)
    logger.info(
        "request_complete",
        path=str(request.url.path),
        method=request.method,
        status=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Response-Time-ms"] = f"{duration_ms:.2f}"
    return response


# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)  # type: ignore[arg-type]


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return consistent error envelope."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error", "http_error")
    else:
        error_code = "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
        headers=exc.headers,
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info("domain_error", error=exc.error, status=exc.status_code, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.envelope())


# Include routers
auth_deps = [Depends(verify_api_key)]
app.include_router(health.router)  # Health check is public (for Docker/K8s)
app.include_router(chat.router, dependencies=auth_deps)
app.include_router(memory.router, dependencies=auth_deps)
app.include_router(telegram.router)  # Authenticated by the webhook secret
app.include_router(metrics_route.router)


__all__ = ["app", "verify_api_key", "api_key_header", "limiter"]
