import logging
import time

from fastapi import Request

logger = logging.getLogger(__name__)


def _log_completed(request: Request, status_code: int, started: float) -> None:
    latency_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        'request completed status=%s method=%s path=%s query=%s latency_ms=%s client_ip=%s user_agent=%s',
        status_code,
        request.method,
        request.url.path,
        request.url.query,
        latency_ms,
        request.client.host if request.client else '',
        request.headers.get('user-agent', ''),
    )


async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # The server error handler renders the 500 after this middleware.
        _log_completed(request, 500, started)
        raise

    _log_completed(request, response.status_code, started)
    return response
