"""structlog setup for discloser.

Every entry carries the request ID (when inside a request) and passes
through a redaction step: share tokens and Supabase credentials are cut
down before rendering, wherever the call site forgot to do it.

Usage::

    from discloser.observability.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_output=True)  # once, in create_app()
    logger = get_logger(__name__)
    logger.info("share_link_created", link_id="...", kind="status")
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

TOKEN_PREFIX_LENGTH = 8

# Event keys that may hold a full share token.
_TOKEN_KEYS = frozenset({"token", "share_token"})
# Event keys that must never be rendered at all.
_SECRET_KEYS = frozenset({
    "authorization",
    "apikey",
    "service_role_key",
    "supabase_service_role_key",
})

_configured = False


def redact_token(token: str | None) -> str:
    """Truncate a token to a correlation prefix.

    Returns ``<prefix>...`` or ``<redacted>`` for missing/short tokens.
    """
    if not token or len(token) < TOKEN_PREFIX_LENGTH:
        return "<redacted>"
    return f"{token[:TOKEN_PREFIX_LENGTH]}..."


def _redact_sensitive(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for key in _TOKEN_KEYS & event_dict.keys():
        value = event_dict[key]
        event_dict[key] = redact_token(value if isinstance(value, str) else None)
    for key in _SECRET_KEYS & event_dict.keys():
        event_dict[key] = "<redacted>"
    return event_dict


def _add_request_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Configure structlog on top of stdlib logging. Idempotent.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Falls back to LOG_LEVEL, then INFO.
        json_output: JSON lines when True, console rendering when False.
            Falls back to LOG_FORMAT == "json".
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") == "json"

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_request_id,
            _redact_sensitive,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Access and httpx logs carry full URLs, and URLs carry share tokens.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
