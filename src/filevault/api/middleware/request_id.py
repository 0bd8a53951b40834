"""Request ID and access log middleware for the FileVault API."""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from filevault.observability.tracing import get_current_trace_id

REQUEST_ID_HEADER = "X-Request-Id"

access_logger = logging.getLogger("filevault.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request and log one access line per response.

    Behavior:
    - A non-empty incoming X-Request-Id header is reused, else a uuid4 is generated.
    - The ID is stored on request.state.request_id and echoed in the response.
    - Access lines carry method, path, status, elapsed time and trace id; never
      bodies or query strings.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming_request_id = request.headers.get(REQUEST_ID_HEADER)

        if incoming_request_id and incoming_request_id.strip():
            request_id = incoming_request_id.strip()
        else:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        start = time.monotonic()
        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        access_logger.info(
            "%s %s %d %.3fs request_id=%s trace_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            time.monotonic() - start,
            request_id,
            get_current_trace_id(),
        )
        return response
