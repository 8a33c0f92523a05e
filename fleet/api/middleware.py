"""Rate limiter and HTTP request logging."""

import logging
import time

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger("fleet.http")

limiter = Limiter(key_func=get_remote_address)


async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    query = f"?{request.url.query}" if request.url.query else ""
    logger.info(
        "%s %s%s -> %d (%.1f ms)",
        request.method,
        request.url.path,
        query,
        response.status_code,
        elapsed_ms,
    )
    return response
