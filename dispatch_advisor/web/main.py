"""Web chat front-end.

Initializes the FastAPI application: middleware, routers, exception
handlers and the background sweep of expired sessions.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dispatch_advisor.infrastructure.config import settings
from dispatch_advisor.infrastructure.logging_config import configure_logging
from dispatch_advisor.web.chat import router as chat_router
from dispatch_advisor.web.dependencies import (
    close_services,
    get_conversation_engine,
    get_session_store,
)
from dispatch_advisor.web.health import router as health_router
from dispatch_advisor.web.middleware import setup_middleware

logger = structlog.get_logger()

SWEEP_INTERVAL_SECONDS = 60.0


async def sweep_expired_sessions(max_age: timedelta, interval: float) -> None:
    """Periodically remove sessions idle for longer than max_age."""
    store = get_session_store()
    while True:
        await asyncio.sleep(interval)
        store.clear_expired(max_age)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    engine = get_conversation_engine()
    logger.info(
        "Starting Dispatch Advisor web",
        version=settings.api_version,
        mock_dispatch=settings.use_mock_dispatch,
        ai_available=engine.is_ai_available(),
    )

    sweeper = asyncio.create_task(
        sweep_expired_sessions(
            timedelta(minutes=settings.session_max_age_minutes),
            SWEEP_INTERVAL_SECONDS,
        )
    )

    yield

    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await close_services()
    logger.info("Shutting down Dispatch Advisor web")


app = FastAPI(
    title="Dispatch Advisor",
    description="Conversational delivery pricing advisor",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(chat_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": [],
            "request_id": request_id,
        },
    )


def main() -> None:
    """Run the web server with uvicorn."""
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.web_host, port=settings.web_port)


if __name__ == "__main__":
    main()
