"""Logging setup: structlog rendering through stdlib handlers.

Every event, from compnav or from foreign stdlib loggers, passes the same
pre-chain and is rendered per output (JSON or console, own level).

Events logged while a resolution is in flight carry its context
(``resolution_id``, ``resource_id``, ``query``, ``cursor_line``). The context
is bound with structlog's contextvars, so the parse, index and cache events
triggered by one lookup can be grouped after the fact::

    with resolution_context("/site/page.html", "this.count", 12):
        ...  # every event here carries the four keys
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from compnav.config.models import LoggingConfig, LogOutputConfig

RESOLUTION_KEYS = ("resolution_id", "resource_id", "query", "cursor_line")

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
]


@contextmanager
def resolution_context(resource_id: str, query: str, cursor_line: int) -> Iterator[str]:
    """Bind one resolution's context for every event logged inside the block.

    Yields the generated resolution id. Nested blocks restore the outer
    context on exit.
    """
    resolution_id = uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(
        resolution_id=resolution_id,
        resource_id=resource_id,
        query=query,
        cursor_line=cursor_line,
    ):
        yield resolution_id


def current_resolution() -> dict[str, Any]:
    """Context of the enclosing resolution, empty outside one."""
    bound = structlog.contextvars.get_contextvars()
    return {key: bound[key] for key in RESOLUTION_KEYS if key in bound}


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and the root handlers.

    Pass `config` for multi-output setups; otherwise a single stderr output
    is built from `json_format` and `level`.
    """
    from compnav.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level.upper(),
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level)

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration (CLI -v, tests) must take effect on existing loggers
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    for output in config.outputs:
        handler = _handler(output.destination)
        handler.setLevel(_level(output.level or config.level))
        handler.setFormatter(_formatter(output))
        root.addHandler(handler)


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _handler(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _formatter(output: LogOutputConfig) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        tty = output.destination in ("stderr", "stdout") and stream.isatty()
        renderer = structlog.dev.ConsoleRenderer(colors=tty, pad_event_to=0, pad_level=False)
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_PRE_CHAIN)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger bound to `name` under the ``logger`` key."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
