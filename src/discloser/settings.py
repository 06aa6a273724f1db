"""Discloser service configuration settings.

DiscloserSettings is the single configuration object accepted by create_app().
It is intentionally a plain dataclass (not env-coupled) so tests can inject config
without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .sharing.model import MAX_DURATION_HOURS
from .sharing.service import DEFAULT_SHARE_BASE_URL

_DEFAULT_CORS_ORIGINS = (
    "http://localhost:8081",
    "http://localhost:3000",
)
_DEFAULT_EXPIRY_HOURS = 24


@dataclass(frozen=True, slots=True)
class DiscloserSettings:
    """Configuration for the share-link FastAPI application.

    All fields have sensible defaults for local development, where links are
    kept in memory. Non-local environments must supply Supabase credentials.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    """Supabase project URL (e.g. https://xyz.supabase.co)."""

    supabase_service_role_key: str = ""
    """Supabase service-role key for PostgREST calls. Never log this."""

    # ── Sharing ────────────────────────────────────────────────────
    share_base_url: str = DEFAULT_SHARE_BASE_URL
    """Public base URL recipients open; links are {base}/share|status/{token}."""

    default_expiry_hours: int = _DEFAULT_EXPIRY_HOURS
    """Link lifetime used when a create request omits duration_hours."""

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: tuple[str, ...] = _DEFAULT_CORS_ORIGINS

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.default_expiry_hours <= 0:
            errors.append("default_expiry_hours must be positive")
        elif self.default_expiry_hours > MAX_DURATION_HOURS:
            errors.append(
                f"default_expiry_hours must be at most {MAX_DURATION_HOURS}"
            )
        if not self.share_base_url.startswith(("http://", "https://")):
            errors.append("share_base_url must be an http(s) URL")
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(
                    f"{self.environment}: supabase_service_role_key is required"
                )
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> DiscloserSettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct DiscloserSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = tuple(o.strip() for o in cors_raw.split(",") if o.strip()) if cors_raw else _DEFAULT_CORS_ORIGINS

        expiry_raw = env.get("DEFAULT_EXPIRY_HOURS", "")
        expiry = int(expiry_raw) if expiry_raw.strip() else _DEFAULT_EXPIRY_HOURS

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            share_base_url=(env.get("SHARE_BASE_URL", "") or DEFAULT_SHARE_BASE_URL).strip(),
            default_expiry_hours=expiry,
            cors_origins=cors,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_json=env.get("LOG_FORMAT", "json") == "json",
        )
