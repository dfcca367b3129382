"""Request logging middleware"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from logger import get_logger

logger = get_logger("http")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and timing of every request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client = request.client.host if request.client else "unknown"

        logger.debug(f"Request: {request.method} {request.url.path} | client={client}")

        response = await call_next(request)

        # Streaming responses report here once headers are sent, not when the stream ends
        process_time = time.time() - start_time
        log = logger.info if request.method != "GET" else logger.debug
        log(f"Response: {request.method} {request.url.path} | status={response.status_code} | time={process_time:.3f}s")

        return response
