"""Async PostgREST client wrapper for Supabase.

This is the single point of Supabase HTTP interaction for share-link storage.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)

FilterSpec = Mapping[str, "tuple[str, Any] | Any"]


def _encode_filter_value(op: str, value: Any) -> str:
    if op == "is":
        if value is None:
            return "null"
        return "true" if value else "false"
    if value is None:
        raise ValueError(f"{op} does not support None; use op='is' with value=None")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _filters_to_params(filters: FilterSpec | None) -> dict[str, str]:
    """``{"owner_id": "u1", "expires_at": ("gt", ts)}`` → PostgREST params."""
    params: dict[str, str] = {}
    for col, spec in (filters or {}).items():
        if isinstance(spec, tuple) and len(spec) == 2:
            op, val = spec
        else:
            op, val = "eq", spec
        params[str(col)] = f"{op}.{_encode_filter_value(str(op), val)}"
    return params


class SupabaseClient:
    """Minimal async PostgREST client (service role) with typed results."""

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._supabase_url = supabase_url.rstrip("/")
        self._service_role_key = service_role_key
        self._timeout_seconds = float(timeout_seconds)
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None

    @property
    def base_rest_url(self) -> str:
        return f"{self._supabase_url}/rest/v1"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, *, representation: bool = False) -> dict[str, str]:
        # Never log these headers.
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    def _raise_for_error(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text
        code = details = hint = None

        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message") or message
                code = payload.get("code")
                details = payload.get("details")
                hint = payload.get("hint")
        except ValueError:
            pass

        err_cls: type[SupabaseError]
        if resp.status_code in (401, 403):
            err_cls = SupabaseAuthError
        elif resp.status_code == 404:
            err_cls = SupabaseNotFoundError
        elif resp.status_code == 409:
            err_cls = SupabaseConflictError
        else:
            err_cls = SupabaseError

        raise err_cls(
            status_code=resp.status_code,
            message=message,
            code=code,
            details=details,
            hint=hint,
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        resp = await self._client.request(
            method, url, timeout=self._timeout_seconds, **kwargs,
        )
        self._raise_for_error(resp)
        return resp.json()

    async def _request_list(self, method: str, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        payload = await self._request(method, f"{self.base_rest_url}/{table}", **kwargs)
        if not isinstance(payload, list):
            raise SupabaseError(
                status_code=500,
                message=f"expected list response from {method} {table}",
            )
        return payload

    async def select(
        self,
        table: str,
        filters: FilterSpec | None = None,
        *,
        columns: str = "*",
        limit: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params = _filters_to_params(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))
        if order:
            params["order"] = order
        return await self._request_list(
            "GET", table, params=params, headers=self._headers(),
        )

    async def insert(
        self, table: str, data: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        return await self._request_list(
            "POST", table, json=dict(data), headers=self._headers(representation=True),
        )

    async def delete(
        self, table: str, filters: FilterSpec,
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        return await self._request_list(
            "DELETE",
            table,
            params=_filters_to_params(filters),
            headers=self._headers(representation=True),
        )

    async def rpc(
        self, function_name: str, params: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._request(
            "POST",
            f"{self.base_rest_url}/rpc/{function_name}",
            json=dict(params or {}),
            headers=self._headers(),
        )
