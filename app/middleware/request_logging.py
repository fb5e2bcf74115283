import time
import logging
from fastapi import Request

logger = logging.getLogger("access")


def _log_access(request: Request, status_code: int, started: float) -> None:
    process_time = (time.perf_counter() - started) * 1000

    logger.info(
        "",
        extra={
            "client_addr": request.client.host if request.client else "unknown",
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "process_time_ms": round(process_time, 2),
        },
    )


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        # Rendered as a 500 by the last-resort handler further out
        _log_access(request, 500, start_time)
        raise

    _log_access(request, response.status_code, start_time)
    return response
