"""Structured logging for flowscope build sessions.

Builders emit composition events (``stage_resolved``, ``branch_created``,
``composite_rewrite``, ``flow_planned``) through
``structlog.get_logger(__name__)``. Nothing in flowscope logs through stdlib
``logging``, so structlog writes straight to the output stream and the level
is enforced by the bound logger before an event dict is built.
"""

import logging
from typing import Any, TextIO

import structlog

from flowscope.core.config import LoggingSettings


def _drop_unset_node(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Omit ``node`` from events resolved outside any named node."""
    if "node" in event_dict and event_dict["node"] is None:
        del event_dict["node"]
    return event_dict


def configure_logging(settings: LoggingSettings | None = None, *, stream: TextIO | None = None) -> None:
    """Configure structlog from a session's logging settings.

    Args:
        settings: Level and output format; INFO console output when omitted
        stream: Destination for events; ``sys.stdout`` when omitted
    """
    settings = settings or LoggingSettings()

    renderer: list[Any]
    if settings.json_output:
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _drop_unset_node,
            structlog.processors.StackInfoRenderer(),
            *renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream),
        # Caching disabled so tests can reconfigure without stale loggers
        cache_logger_on_first_use=False,
    )
