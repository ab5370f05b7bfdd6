"""HTTP middleware for request ID propagation and timing.

Every request/response pair carries a correlation id: the incoming
X-Request-ID header (name configurable via LOG_REQUEST_ID_HEADER) or a fresh
UUID. The id is bound to contextvars for the request's logs and echoed back
together with the request duration.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from dreamgate.core.config import settings
from dreamgate.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the duration of the request and echo it back.

    Args:
        request: The incoming HTTP request.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with X-Request-ID and
            X-Request-Duration-ms headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
