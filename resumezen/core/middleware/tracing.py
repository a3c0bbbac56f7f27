from starlette.middleware.base import BaseHTTPMiddleware

from resumezen.core.logging import get_request_id
from resumezen.core.tracing import start_span


class TracingMiddleware(BaseHTTPMiddleware):
    """Wrap each request in an http.request span when tracing is on."""

    async def dispatch(self, request, call_next):
        request_id = getattr(request.state, "request_id", None) or get_request_id()
        with start_span(
            "http.request",
            {"http.method": request.method, "http.target": request.url.path, "request_id": request_id},
        ) as span:
            response = await call_next(request)
            if span is not None:
                span.set_attribute("http.status_code", response.status_code)
            return response
