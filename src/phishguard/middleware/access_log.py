"""One log line per incoming request and per failed request."""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log method and path on the way in; log status on server errors."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        logger.info("incoming_request", method=request.method, path=request.url.path)
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
            )
        return response
