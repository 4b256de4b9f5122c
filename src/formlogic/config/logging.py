"""Logging setup: structlog events and stdlib records through one handler.

Services log with ``structlog.get_logger``; the engine uses plain
``logging.getLogger``. Both end up in the same stderr handler so stdout
only ever carries command output.

- console (default): ``HH:MM:SS [level] event key=value`` lines
- JSON (``--log-json``): one object per line with an ISO timestamp and
  exceptions rendered as dicts

The ``formlogic`` logger runs at DEBUG under ``--verbose``, ERROR under
``--quiet`` and WARNING otherwise; evaluation warnings therefore show by
default. Third-party loggers stay at WARNING.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog
from structlog.types import Processor

_HANDLER_NAME = "formlogic"


def resolve_level(*, verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return logging.WARNING


def _pre_chain(log_json: bool) -> list[Processor]:
    """Processors applied to structlog events and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso" if log_json else "%H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _render_chain(log_json: bool, stream: IO[str]) -> list[Processor]:
    if log_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=stream.isatty())]


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    quiet: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Install the formlogic handler on the root logger.

    Calling it again replaces the handler installed last time; every
    CliRunner invocation in the tests does this.

    Args:
        verbose: DEBUG for formlogic loggers.
        log_json: JSON lines instead of console lines.
        quiet: Only errors.
        stream: Destination; defaults to the current ``sys.stderr``.
    """
    stream = stream or sys.stderr
    pre_chain = _pre_chain(log_json)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(log_json, stream),
            ],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("formlogic").setLevel(resolve_level(verbose=verbose, quiet=quiet))
