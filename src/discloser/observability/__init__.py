"""Logging and request correlation."""

from .logging import configure_logging, get_logger, redact_token, request_id_ctx
from .middleware import RequestIdMiddleware

__all__ = [
    "RequestIdMiddleware",
    "configure_logging",
    "get_logger",
    "redact_token",
    "request_id_ctx",
]
