"""Structlog configuration for the CLI and the MCP server."""

from __future__ import annotations

import logging as std_logging
import sys

import structlog

_VERBOSITY_LEVELS = (std_logging.WARNING, std_logging.INFO, std_logging.DEBUG)


def level_for_verbosity(verbosity: int) -> int:
    """Map a `-v` count to a log level: none is WARNING, `-vv` and up is DEBUG."""

    index = min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)
    return _VERBOSITY_LEVELS[index]


def _shared_processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(json_mode: bool = False, verbosity: int = 0) -> None:
    """Configure structlog, and render stdlib records through the same chain.

    Child output is relayed on stdout, so every log line goes to stderr.
    """

    level = level_for_verbosity(verbosity)
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer()
    )

    # Config loader warnings come through stdlib logging.
    handler = std_logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = std_logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
