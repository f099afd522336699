import logging
import re
import sys
import time
from typing import Any, Dict
from uuid import uuid4

import structlog
from structlog.types import Processor

_PRD_PATH = re.compile(r"^/api/prds/(\d+)(?:/|$)")
_EPIC_PATH = re.compile(r"^/api/epics/([^/]+)")


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application"""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # merge_contextvars first, so request ids reach every service event
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def request_context(path: str) -> Dict[str, Any]:
    """PRD and epic ids addressed by a request path"""
    context: Dict[str, Any] = {}
    prd = _PRD_PATH.match(path)
    if prd:
        context["prd_id"] = int(prd.group(1))
    epic = _EPIC_PATH.match(path)
    if epic:
        context["epic_id"] = epic.group(1)
    return context


class LoggingMiddleware:
    """Logs each request and binds its id, PRD id and epic id for all events it triggers"""

    def __init__(self, app, logger_name: str = "api"):
        self.app = app
        self.logger = get_logger(logger_name)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=uuid4().hex[:12],
            **request_context(scope["path"]),
        )
        request_logger = self.logger.bind(
            method=scope["method"],
            path=scope["path"],
            client=(scope.get("client") or [None, None])[0],
        )
        request_logger.info("Request started")
        start_time = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                request_logger.info(
                    "Request completed",
                    status_code=message["status"],
                    duration_ms=int((time.perf_counter() - start_time) * 1000),
                )
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            request_logger.error(
                "Request failed",
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()


# Application loggers
security_logger = get_logger("security")
llm_logger = get_logger("llm")
generation_logger = get_logger("generation")
storage_logger = get_logger("storage")
api_logger = get_logger("api")
