import contextvars
import logging
import time
import uuid
from typing import Optional, Union

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Context var holding the current request id so any log record can include it
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Attach request_id to every LogRecord so the formatter can include it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or "-"
        return True


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger once. Calling it again only updates the level,
    so reloads and repeated app construction do not duplicate handlers.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs the start and end of every request under a fresh request id."""

    async def dispatch(self, request: Request, call_next):
        token = request_id_ctx.set(uuid.uuid4().hex[:12])
        logger = logging.getLogger("app.request")
        start = time.perf_counter()
        try:
            logger.info("%s %s started", request.method, request.url.path)
            response = await call_next(request)
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                "%s %s -> %s (%d ms)", request.method, request.url.path, response.status_code, duration_ms
            )
            return response
        finally:
            request_id_ctx.reset(token)
