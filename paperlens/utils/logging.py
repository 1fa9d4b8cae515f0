"""Structured logging for PaperLens.

Every module logs snake_case events with keyword fields through structlog.
:func:`configure_logging` builds one processor chain and uses it twice: for
structlog itself and, through ``ProcessorFormatter``, for stdlib loggers
(httpx, httpcore) so their records render the same way.

Rendering is JSON when ``app_env`` (or ``APP_ENV``) is ``"production"`` or
``json_output`` is set, otherwise a console renderer that colours only when
the target stream is a terminal.  Output defaults to stderr: the CLI streams
answers on stdout.

API keys must never reach a log line.  :func:`redact_secrets` runs in the
chain and masks key-like fields and ``Bearer`` tokens wherever they appear.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

REDACTED = "***"

_SECRET_FIELDS = frozenset({"api_key", "llm_api_key", "embedding_api_key", "authorization", "token"})
_BEARER_RE = re.compile(r"(Bearer\s+)[^\s\"',]+", re.IGNORECASE)

# Chatty per-request loggers kept at WARNING unless running at DEBUG.
_HTTP_LOGGERS = ("httpx", "httpcore")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential fields and inline bearer tokens in *event_dict*."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_FIELDS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, str) and "bearer" in value.lower():
            event_dict[key] = _BEARER_RE.sub(rf"\g<1>{REDACTED}", value)
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]


def _renderer(use_json: bool, stream: TextIO) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def _route_stdlib(
    shared: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
    level: int,
    stream: TextIO,
) -> None:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    http_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str | None = None,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force JSON rendering.
        app_env: Deployment environment; defaults to ``APP_ENV``
                 (``"development"`` when unset).  ``"production"`` selects JSON.
        stream: Output stream; defaults to ``sys.stderr``.

    Returns:
        A configured structlog BoundLogger.
    """
    env = app_env if app_env is not None else os.environ.get("APP_ENV", "development")
    out = stream if stream is not None else sys.stderr
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared = _shared_processors()
    renderer = _renderer(json_output or env == "production", out)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )
    _route_stdlib(shared, renderer, level, out)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*, configuring defaults if needed."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
