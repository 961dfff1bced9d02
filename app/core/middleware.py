import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# read by the logging filter so every log line carries the correlation id
current_request_id: ContextVar[Optional[str]] = ContextVar("current_request_id", default=None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Correlation id per HTTP request.

    Taken from the incoming header (X-Request-Id by default) or generated,
    stored on request.state for audit rows, bound to the log context and
    echoed back on the response.
    """

    def __init__(self, app, header_name: str = "X-Request-Id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = rid
        token = current_request_id.set(rid)
        try:
            response = await call_next(request)
        finally:
            current_request_id.reset(token)

        response.headers[self.header_name] = rid
        return response
