"""Web middleware.

Correlates chat requests, error bodies and log lines with a request ID.
"""

import re
import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Client IDs are echoed into headers and logs, so only simple tokens are kept
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(incoming: str | None) -> str:
    """Reuse a well-formed client request ID or mint a new one.

    Args:
        incoming: Value of the request ID header, if any.

    Returns:
        The client's ID when it is a short token, otherwise a 32-character
        hex ID.
    """
    if incoming and REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log its outcome.

    The ID is stored on ``request.state`` for error handlers, bound into
    the structlog context for the handler's own log lines and returned in
    the response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.perf_counter()
        status_code = 500
        with structlog.contextvars.bound_contextvars(
            request_id=request_id, path=request.url.path
        ):
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                log = logger.warning if status_code >= 500 else logger.info
                log(
                    "Request completed",
                    method=request.method,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestIdMiddleware)
