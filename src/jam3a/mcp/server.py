"""MCP server exposing jam3a deal capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

import httpx
from fastmcp import FastMCP

from jam3a.core.settings import get_settings

DealStatusFilter = Literal[
    "pending", "active", "completed", "cancelled", "expired", "all"
]
DealSortField = Literal["created_at", "discount", "participants"]
ParamValue = str | int | float | bool | None
ParamsMapping = Mapping[str, ParamValue]

USER_ID_HEADER = "X-User-Id"


class APIRequester(Protocol):
    """Transport seam between MCP tools and the REST API."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class HTTPAPIRequester:
    """Calls the jam3a REST API and unwraps its JSON answers."""

    base_url: str
    timeout_seconds: float
    transport: httpx.AsyncBaseTransport | None = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            transport=self.transport,
            headers=dict(headers or {}),
        ) as client:
            response = await client.request(
                method,
                path,
                params=params,
                json=dict(json_body) if json_body else None,
            )

        if not response.is_success:
            raise RuntimeError(_build_api_error(response))
        payload = _decode(response)
        if payload is None:
            raise RuntimeError(
                f"Expected JSON from {method} {path}, got status "
                f"{response.status_code} without a JSON body."
            )
        return payload


def _decode(response: httpx.Response) -> object | None:
    try:
        return response.json()
    except ValueError:
        return None


def _build_api_error(response: httpx.Response) -> str:
    """Summarize a failed call, preferring the jam3a error envelope."""

    payload = _decode(response)
    if isinstance(payload, Mapping) and payload.get("success") is False:
        summary = f"API error {payload.get('code')}: {payload.get('message')}"
        details = payload.get("details")
        return f"{summary} | details={details}" if details else summary

    body = payload if payload is not None else response.text.strip()
    if body:
        return f"API request failed with status {response.status_code}: {body}"
    return f"API request failed with status {response.status_code}."


def create_mcp_server(
    *,
    api_base_url: str | None = None,
    timeout_seconds: float | None = None,
    requester: APIRequester | None = None,
) -> FastMCP:
    """Build the Jam3a MCP server; every tool is a single REST call."""

    settings = get_settings()
    resolved_base_url = (api_base_url or settings.mcp_api_base_url).rstrip("/")
    resolved_timeout = (
        settings.mcp_api_timeout_seconds if timeout_seconds is None else timeout_seconds
    )
    if resolved_timeout <= 0:
        raise ValueError("MCP API timeout must be greater than zero.")

    mcp = FastMCP(name="Jam3a")
    api_requester: APIRequester = requester or HTTPAPIRequester(
        base_url=resolved_base_url,
        timeout_seconds=resolved_timeout,
    )

    @mcp.tool
    async def list_deals(
        status: DealStatusFilter = "active",
        category_id: str | None = None,
        featured: bool | None = None,
        query: str | None = None,
        sort: DealSortField = "created_at",
        limit: int = 50,
        offset: int = 0,
    ) -> object:
        """List group-buying deals, active ones by default."""

        params: dict[str, ParamValue] = {
            "status": status,
            "sort": sort,
            "limit": limit,
            "offset": offset,
        }
        if category_id is not None:
            params["category_id"] = category_id
        if featured is not None:
            params["featured"] = featured
        if query is not None:
            params["q"] = query

        return await api_requester.request("GET", "/v1/deals", params=params)

    @mcp.tool
    async def list_featured_deals(limit: int | None = None) -> object:
        """List active featured deals."""

        return await api_requester.request(
            "GET",
            "/v1/deals/featured",
            params={"limit": limit} if limit is not None else None,
        )

    @mcp.tool
    async def get_deal(deal_id: str) -> object:
        """Return one deal with its category, slots and countdown."""

        return await api_requester.request("GET", f"/v1/deals/{deal_id}")

    @mcp.tool
    async def join_deal(
        deal_id: str,
        user_id: str,
        product_id: str | None = None,
    ) -> object:
        """Join a deal on behalf of a user, optionally picking a product."""

        payload: dict[str, object] = {}
        if product_id is not None:
            payload["product_id"] = product_id

        return await api_requester.request(
            "POST",
            f"/v1/deals/{deal_id}/join",
            json_body=payload,
            headers={USER_ID_HEADER: user_id},
        )

    @mcp.tool
    async def list_categories() -> object:
        """List active catalog categories."""

        return await api_requester.request("GET", "/v1/categories")

    return mcp
