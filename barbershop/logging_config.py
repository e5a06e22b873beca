"""Structured logging for the booking engine and its HTTP API.

Every event is a JSON line carrying the request ID of the HTTP call that
produced it (bound through structlog's contextvars), so a booking conflict
can be traced back to the request that hit it.
"""
import logging
import sys
import time
import uuid

import structlog

REQUEST_ID_HEADER = "X-Request-ID"


def _add_app_name(logger, method_name, event_dict):
    event_dict.setdefault("app", "barbershop")
    return event_dict


def setup_structured_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure structlog on top of the standard library.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Unknown names mean INFO.
        json_logs: JSON lines (production) or coloured console output
    """
    renderer = (
        structlog.processors.JSONRenderer() if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_app_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a module (pass __name__)."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Generate unique request ID."""
    return f"req-{uuid.uuid4().hex[:12]}"


class RequestIDMiddleware:
    """
    WSGI middleware tagging each request with an ID.

    Reuses an incoming X-Request-ID (set by a proxy) or makes one, binds it
    for every log line emitted while handling the request, echoes it in the
    response and logs one `http_request` event per call.
    """

    def __init__(self, app):
        self.app = app
        self.logger = get_logger("barbershop.http")

    def __call__(self, environ, start_response):
        request_id = environ.get("HTTP_X_REQUEST_ID") or generate_request_id()
        environ["REQUEST_ID"] = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()

        def tagged_start_response(status, headers, exc_info=None):
            headers.append((REQUEST_ID_HEADER, request_id))
            self.logger.info(
                "http_request",
                method=environ.get("REQUEST_METHOD"),
                path=environ.get("PATH_INFO"),
                status=int(status.split(" ", 1)[0]),
                duration_ms=round((time.perf_counter() - started) * 1000, 1)
            )
            return start_response(status, headers, exc_info)

        return self.app(environ, tagged_start_response)
