"""
Structured logging for the clinic portal client.

structlog renders through rich on a terminal and as JSON lines otherwise.
Every entry carries the correlation id of the current context, and bearer
tokens are masked before anything is rendered.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

SECRET_FIELDS = ("authorization", "token", "auth_token")

# Third-party loggers that narrate every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Tag log entries of the current context; generates an id when none is given."""
    value = correlation_id or uuid.uuid4().hex[:8]
    _correlation_id.set(value)
    return value


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def add_correlation_id(logger, method_name, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def redact_secrets(logger, method_name, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask token-bearing fields, keeping the last four characters."""
    for field in SECRET_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and value:
            event_dict[field] = "***" + value[-4:] if len(value) > 8 else "***"
    return event_dict


def setup_logging(debug: bool = False, rich_output: bool = True) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        debug: Emit debug entries (request/response and cache traces)
        rich_output: Render for a terminal instead of JSON lines
    """
    level = logging.DEBUG if debug else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.set_exc_info,
    ]

    if rich_output:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.rich_traceback
            )
        )
        handler: logging.Handler = RichHandler(console=Console(stderr=True), show_path=False)
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    # Log output goes to stderr so CLI tables on stdout stay clean
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
