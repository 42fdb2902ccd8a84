"""
Pixdrop Backend — Request Logging Middleware
=============================================

What:  One access log line per HTTP request on the `pixdrop.access` logger.
How:   Measures wall time around the handler; the level follows the status
       (5xx ERROR, 4xx WARNING, else INFO).

    GET /image/3f2a...-9c1e 200 1.4ms [a1b2c3d4] from 10.0.0.7

Not logged: request bodies (image payloads) and the API key. The key sits
in the URL path, so paths under /image with more than the ID are masked.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pixdrop.middleware.request_id import request_id_var

logger = logging.getLogger("pixdrop.access")


def mask_api_key(method: str, path: str) -> str:
    """
    Replace the API key segment of upload and delete paths.

    >>> mask_api_key("POST", "/image/secret")
    '/image/***'
    >>> mask_api_key("DELETE", "/image/secret/3f2a")
    '/image/***/3f2a'
    >>> mask_api_key("GET", "/image/3f2a")
    '/image/3f2a'
    """
    parts = path.split("/")
    if method in ("POST", "DELETE") and len(parts) >= 3 and parts[1] == "image":
        parts[2] = "***"
    return "/".join(parts)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = mask_api_key(method, request.url.path)

        # Probes every few seconds would drown the log
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
