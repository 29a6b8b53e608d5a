"""Request logging for the simulation API.

Every request gets a correlation id, taken from an incoming ``X-Request-ID``
header when the client sends one. Simulations can take seconds, so the
elapsed time is logged and echoed back in ``X-Elapsed-Ms``.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from goldfish.core.logging_config import get_logger

logger = get_logger(__name__)

# Polled by load balancers; not worth a log line each
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its correlation id, status and elapsed time."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        path = request.url.path
        quiet = path in QUIET_PATHS
        request_logger = get_logger(__name__, request_id=request_id, path=path)

        started = time.perf_counter()
        if not quiet:
            request_logger.info(
                f"{request.method} {path}",
                extra={
                    "extra_data": {
                        "method": request.method,
                        "client_host": request.client.host if request.client else None,
                    }
                },
            )

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"{request.method} {path} raised {type(e).__name__}",
                extra={"extra_data": {"elapsed_ms": _elapsed_ms(started), "error": str(e)}},
                exc_info=True,
            )
            raise

        elapsed = _elapsed_ms(started)
        if not quiet:
            if response.status_code >= 500:
                log = request_logger.error
            elif response.status_code >= 400:
                log = request_logger.warning
            else:
                log = request_logger.info
            log(
                f"{request.method} {path} -> {response.status_code}",
                extra={"extra_data": {"status_code": response.status_code, "elapsed_ms": elapsed}},
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Elapsed-Ms"] = str(elapsed)
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
