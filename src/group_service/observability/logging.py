"""Structured logging for the group service.

Every record is one JSON line (``LOG_FORMAT=console`` for local reading)
carrying the request id of the HTTP call that produced it. Background
onboarding polls inherit the id of the request that spawned them.

Usage::

    from group_service.observability.logging import configure_logging, get_logger

    configure_logging()  # once, at app startup
    logger = get_logger(__name__)
    logger.info("group_created", group_id="4815162342")
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Keys whose values must never reach a log sink.
_REDACTED_KEYS = frozenset({
    "api_hash",
    "session_string",
    "service_role_key",
    "access_hash",
    "password",
    "phone_code",
})

# Telethon logs every reconnect and update at INFO.
_QUIET_LOGGERS = ("telethon", "uvicorn.access", "httpx")

_configured = False


def _add_request_id(_logger: Any, _method: str, event_dict: dict) -> dict:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict.setdefault("request_id", rid)
    return event_dict


def _redact_secrets(_logger: Any, _method: str, event_dict: dict) -> dict:
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _pre_chain() -> list:
    """Processors shared by structlog loggers and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        level: Log level name. Defaults to LOG_LEVEL or INFO.
        json_output: JSON lines when True, console rendering when False.
            Defaults to LOG_FORMAT != "console".
    """
    global _configured
    if _configured:
        return
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") != "console"

    # Russian message texts stay readable in JSON output.
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
