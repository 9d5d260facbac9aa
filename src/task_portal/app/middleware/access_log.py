import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("portal.access")

# Health checks would drown the log.
_QUIET_PATHS = ("/health",)


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()

        # attach to request for other layers later
        request.state.request_id = request_id
        quiet = request.url.path in _QUIET_PATHS

        if not quiet:
            logger.info(
                "request.start",
                extra={
                    "category": "http",
                    "event": "request.start",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query),
                    "client": request.client.host if request.client else None,
                },
            )

        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.exception(
                "request.error",
                extra={
                    "category": "http",
                    "event": "request.error",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                },
            )
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        if not quiet:
            logger.info(
                "request.end",
                extra={
                    "category": "http",
                    "event": "request.end",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "user_id": getattr(request.state, "user_id", None),
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response
