from __future__ import annotations

from typing import Any, Literal

from coursehub_client.api.client import ApiClient
from coursehub_client.api.query import build_query

ReviewAction = Literal["approve", "reject"]


async def fetch_overview(client: ApiClient) -> dict[str, Any]:
    return await client.api.get("/admin/overview-stats/")


async def fetch_users(
    client: ApiClient,
    *,
    search: str | None = None,
    role: str | None = None,
    is_active: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict[str, Any]:
    qs = build_query(
        {"search": search, "role": role, "is_active": is_active, "page": page, "page_size": page_size}
    )
    return await client.api.get(f"/admin/users/{qs}")


async def fetch_courses(
    client: ApiClient,
    *,
    search: str | None = None,
    status: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict[str, Any]:
    qs = build_query({"search": search, "status": status, "page": page, "page_size": page_size})
    return await client.api.get(f"/admin/courses/{qs}")


async def fetch_payments(
    client: ApiClient,
    *,
    status: str | None = None,
    provider: str | None = None,
    search: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict[str, Any]:
    qs = build_query(
        {"status": status, "provider": provider, "search": search, "page": page, "page_size": page_size}
    )
    return await client.api.get(f"/admin/payments/{qs}")


async def fetch_applications(
    client: ApiClient,
    *,
    status: str | None = None,
    role: str | None = None,
    search: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict[str, Any]:
    qs = build_query(
        {"status": status, "role": role, "search": search, "page": page, "page_size": page_size}
    )
    return await client.api.get(f"/admin/applications/{qs}")


async def review_application(
    client: ApiClient, application_id: str, action: ReviewAction
) -> dict[str, Any]:
    return await client.api.post(f"/admin/applications/{application_id}/review/", {"action": action})
