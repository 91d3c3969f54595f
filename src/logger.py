"""
Logging for faas-http.

Every component logs under the ``faas_http`` namespace. Invocation loggers
prefix each line with the request id the host runtime supplied, so lines of
concurrent invocations can be told apart.
"""

import logging
import os
import sys
from typing import Any, Dict, MutableMapping, Optional, TextIO, Tuple, Union

from constants import LOG_LEVEL_ENV, NAMESPACE

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]

LOG_FORMATS: Dict[int, str] = {
    logging.DEBUG: "%(asctime)s | %(levelname)-5s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
}
DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"

# Request id keys used by RunPod jobs, API gateways and plain dict contexts
REQUEST_ID_KEYS = ("request_id", "requestId", "awsRequestId", "id")

QUIET_LOGGERS = ("uvicorn.access", "httpx")


def get_log_level() -> int:
    """Level named by LOG_LEVEL, INFO when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_log_format(level: int) -> str:
    return LOG_FORMATS.get(level, DEFAULT_LOG_FORMAT)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger inside the application namespace.

    Args:
        name: Module or component name, usually ``__name__``

    Returns:
        Logger named ``faas_http.<last dotted segment of name>``
    """
    return logging.getLogger(f"{NAMESPACE}.{name.split('.')[-1]}")


class InvocationLogger(logging.LoggerAdapter):
    """Prefixes messages with ``[<request id>]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['request_id']}] {msg}", kwargs


def request_id_of(context: Any) -> Optional[str]:
    """Find a request id in a host context (dict or attribute object)."""
    if context is None:
        return None

    for key in REQUEST_ID_KEYS:
        value = context.get(key) if isinstance(context, dict) else getattr(context, key, None)
        if value:
            return str(value)
    return None


def invocation_logger(logger: LoggerLike, context: Any) -> LoggerLike:
    """Wrap ``logger`` for one invocation, unchanged when no request id is known."""
    request_id = request_id_of(context)
    if request_id is None:
        return logger
    base = logger.logger if isinstance(logger, logging.LoggerAdapter) else logger
    return InvocationLogger(base, {"request_id": request_id})


def setup_logging(
    level: Optional[Union[int, str]] = None,
    stream: TextIO = sys.stdout,
    fmt: Optional[str] = None,
) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Log level (defaults to LOG_LEVEL env var or INFO)
        stream: Output stream for logs
        fmt: Custom format string (picked from the level if None)
    """
    if level is None:
        level = get_log_level()
    elif isinstance(level, str):
        named = logging.getLevelName(level.upper())
        level = named if isinstance(named, int) else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.hasHandlers():
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt or get_log_format(level)))
        root_logger.addHandler(handler)

    # Access and client logs repeat what the pipeline already logs per invocation
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
