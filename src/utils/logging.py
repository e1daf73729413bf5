"""structlog setup shared by the solver and API processes."""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install the processor chain and drop events below ``level``.

    Only the first call takes effect; scripts call this before importing
    anything that logs, so later calls from library code are no-ops.
    """
    global _configured
    if _configured:
        return
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level {level!r}")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )
    _configured = True
