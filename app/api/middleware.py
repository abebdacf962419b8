# app/api/middleware.py

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
import time
import uuid
from datetime import datetime, timezone

from app.utils.logger import LoggerAdapter, get_logger
from app.utils.metrics import set_api_metrics

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000


def _route_path(request: Request) -> str:
    """Route template for metric labels, so job IDs don't become label values."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags the request with an ID, echoed back in the response, and logs its outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        request_logger = LoggerAdapter(logger).bind(request_id=request_id)

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        request_logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"client_host": request.client.host if request.client else None},
        )
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """Records API metrics and reports the handling time in ``X-Process-Time-MS``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        elapsed_ms = round(duration * 1000, 2)
        response.headers["X-Process-Time-MS"] = str(elapsed_ms)
        set_api_metrics(request.method, _route_path(request), response.status_code, duration)

        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning(f"Slow request: {request.method} {request.url.path} took {elapsed_ms} ms")
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns exceptions no handler claimed into a logged 500 response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception:
            request_id = getattr(request.state, "request_id", None)
            logger.exception(
                f"Unhandled exception on {request.method} {request.url.path}",
                extra={"request_id": request_id},
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "request_id": request_id,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )


def register_middleware(app):
    # Starlette runs the last added middleware first; request context wraps everything
    app.add_middleware(TimingMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestContextMiddleware)
