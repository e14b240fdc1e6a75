"""
logging.py - Structured logging for the discovery engine

Routes structlog through stdlib logging and renders each event as a single
line with key=value pairs:

    2026-01-21 10:30:45 [INFO    ] capability_discovery.index: Index built capabilities=42

Usage:
    from capability_discovery.config.logging import configure_logging, get_logger
    configure_logging(level="INFO")
    logger = get_logger("capability_discovery.my_module")
    logger.info("Graph built", nodes=12, edges=30)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import Any

import structlog


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BRIGHT_BLACK = "\033[90m"


LOG_COLORS = {
    "DEBUG": f"{Colors.BRIGHT_BLACK}{Colors.DIM}",
    "INFO": Colors.GREEN,
    "WARNING": Colors.YELLOW,
    "ERROR": f"{Colors.RED}{Colors.BOLD}",
    "CRITICAL": f"{Colors.RED}{Colors.BOLD}",
}

_RESERVED_KEYS = ("logger", "logger_name", "event", "level", "timestamp", "_colors")

_configured = False
_force_colors = False


def format_log(_logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
    """Render an event dict as one log line (final structlog processor)."""
    colors = event_dict.pop("_colors", None)
    if colors is None:
        colors = _force_colors

    msg = str(event_dict.get("event", ""))
    if colors:
        return _format_rich(method_name, msg, event_dict)
    return _format_plain(method_name, msg, event_dict)


def _extra(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in _RESERVED_KEYS}


def _format_rich(level: str, msg: str, data: dict[str, Any]) -> str:
    level_upper = level.upper()
    color = LOG_COLORS.get(level_upper, "")
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    parts = [
        f"{Colors.BRIGHT_BLACK}{timestamp}{Colors.RESET}",
        f"{color}[{level_upper:<8}]{Colors.RESET}",
    ]
    logger_name = data.get("logger", "") or data.get("logger_name", "")
    if logger_name:
        parts.append(f"{Colors.CYAN}{logger_name}:{Colors.RESET}")
    parts.append(msg)

    for key, value in _extra(data).items():
        parts.append(f"{Colors.MAGENTA}{key}={Colors.RESET}{Colors.GREEN}{value}{Colors.RESET}")
    return " ".join(parts)


def _format_plain(level: str, msg: str, data: dict[str, Any]) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    parts = [f"{timestamp} [{level.upper():<8}]"]

    logger_name = data.get("logger", "") or data.get("logger_name", "")
    if logger_name:
        parts.append(f"{logger_name}:")
    parts.append(msg)

    extra = _extra(data)
    if extra:
        parts.append(" ".join(f"{k}={v}" for k, v in extra.items()))
    return " ".join(parts)


def _setup_log_filters(level: int) -> None:
    """Quiet third-party loggers that are chatty at INFO."""
    noisy = [
        ("watchdog", logging.WARNING),
        ("watchdog.observers", logging.WARNING),
        ("httpx", logging.WARNING if level > logging.DEBUG else logging.INFO),
        ("httpcore", logging.WARNING if level > logging.DEBUG else logging.INFO),
    ]
    for name, lvl in noisy:
        logging.getLogger(name).setLevel(lvl)


def configure_logging(
    level: str = "INFO",
    colors: bool | None = None,
    verbose: bool = False,
    force: bool = False,
) -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        colors: Enable ANSI colors. If None, auto-detect from TTY.
        verbose: Shortcut for DEBUG level
        force: Reconfigure even if already configured
    """
    global _configured, _force_colors

    if _configured and not force:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)
    if verbose:
        log_level = logging.DEBUG
    os.environ["CAPABILITY_DISCOVERY_LOG_LEVEL"] = logging.getLevelName(log_level)

    if colors is None:
        colors = sys.stderr.isatty()
    _force_colors = colors

    root_logger = logging.getLogger()
    root_logger.handlers = []
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            format_log,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    _configured = True
    _setup_log_filters(log_level)


def get_logger(name: str = "capability_discovery") -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (usually the module path)

    Returns:
        BoundLogger instance for structured logging
    """
    return structlog.get_logger(name)


__all__ = ["configure_logging", "format_log", "get_logger"]
