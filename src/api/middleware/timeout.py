"""Per-request time budget; an expired request gets a 504 error body."""

import asyncio

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """
    Cancel a request once ``timeout_seconds`` elapse.

    Paths under ``exempt_prefixes`` (health checks by default) run
    unbounded. Multipart uploads count against the same budget.
    """

    def __init__(
        self,
        app,
        timeout_seconds: float = 30.0,
        exempt_prefixes: tuple[str, ...] = ("/health",),
    ):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.exempt_prefixes = exempt_prefixes

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path.startswith(self.exempt_prefixes):
            return await call_next(request)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call_next(request)
        except TimeoutError:
            logger.warning(
                "Request budget exceeded",
                method=request.method,
                path=path,
                timeout_seconds=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={"detail": "Request timed out", "error_type": "timeout"},
            )
