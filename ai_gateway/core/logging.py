"""Root logging setup with per-request correlation ids.

Every proxied request runs inside ``correlation_context``; records emitted
while it is active carry the id and are printed with a short ``[abcd1234]``
prefix so interleaved concurrent requests can be told apart.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Loggers whose INFO output is per-connection chatter.
NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

QUIET_SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def parse_log_level(value: str) -> str:
    """Normalize a LOG_LEVEL value such as ``"debug  # verbose"``; unknown means INFO."""
    words = value.split()
    level = words[0].upper() if words else ""
    return level if level in VALID_LEVELS else "INFO"


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Let HTTP client loggers through only when the gateway runs at DEBUG."""
    level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for name in NOISY_HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level)


@contextmanager
def correlation_context(request_id: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``request_id``."""
    token = _correlation_id.set(request_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


def current_correlation_id() -> str | None:
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    """Copy the active correlation id onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = _correlation_id.get()
        if correlation_id is not None and not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id
        return True


class CorrelationFormatter(logging.Formatter):
    """Prefix the formatted message with the first 8 characters of the id."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            record.message = f"[{correlation_id[:8]}] {record.message}"
        return super().formatMessage(record)


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Re-level INFO records from the given logger prefixes to DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO and record.name.startswith(self.prefixes):
            record.levelno = logging.DEBUG
            record.levelname = "DEBUG"
        return True


def configure_root_logging(log_level: str = "INFO") -> None:
    """Install the gateway's single root handler.

    Calling it again replaces the handler rather than adding a second one.
    """
    level = parse_log_level(log_level)

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    handler.setFormatter(CorrelationFormatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_SERVER_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    set_noisy_http_logger_levels(level)
    logging.getLogger(__name__).debug(f"Root logging configured at {level}")
