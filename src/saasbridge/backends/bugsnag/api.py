"""Thin typed wrapper over the error monitoring REST API.

One method per endpoint; no caching, validation or defaults live here. List
methods taking a PageQuery honour its cursor: when present the cursor URL is
requested with its own query intact and only `per_page` overridden.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
import orjson
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from saasbridge.adapters import EventField, Organization, PageQuery, Project, to_query_params
from saasbridge.foundation.errors import ParseFailure
from saasbridge.transport import ApiResponse, HttpTransport

Params = list[tuple[str, Any]]
M = TypeVar("M", bound=BaseModel)


def _page_params(query: PageQuery, **extra: Any) -> Params:
    params: Params = [
        ("sort", query.sort),
        ("direction", query.direction),
        ("per_page", query.page_size),
        ("offset", query.offset),
    ]
    params.extend(extra.items())
    params.extend(query.filter_params())
    return params


def _cursor_url(cursor: str, page_size: int | None) -> str:
    url = httpx.URL(cursor)
    return str(url if page_size is None else url.copy_set_param("per_page", page_size))


class BugsnagApi:
    """Endpoints used by the client, grouped by resource."""

    __slots__ = ("_http",)

    def __init__(self, http: HttpTransport) -> None:
        self._http = http

    @property
    def http(self) -> HttpTransport:
        return self._http

    async def _page(self, path: str, query: PageQuery, **extra: Any) -> ApiResponse:
        if query.cursor:
            return await self._http.get(_cursor_url(query.cursor, query.page_size))
        return await self._http.get(path, params=_page_params(query, **extra))

    def _models(self, model: type[M], response: ApiResponse) -> list[M]:
        """Validate a list body; a shape the models reject is a malformed success."""
        try:
            return [model.model_validate(item) for item in response.body or []]
        except (PydanticValidationError, TypeError) as e:
            raise ParseFailure(
                f"Unexpected {model.__name__} payload from {response.url}: {e}",
                raw_body=orjson.dumps(response.body).decode(),
                backend=self._http.backend,
                status_code=response.status_code,
            ) from e

    # ─────────────────────────────────────────────────────────────────
    # Current user / projects
    # ─────────────────────────────────────────────────────────────────

    async def list_organizations(self) -> list[Organization]:
        return self._models(Organization, await self._http.get("/user/organizations"))

    async def list_projects(self, organization_id: str) -> list[Project]:
        return self._models(Project, await self._http.request_all(f"/organizations/{organization_id}/projects"))

    async def list_event_fields(self, project_id: str) -> list[EventField]:
        return self._models(EventField, await self._http.get(f"/projects/{project_id}/event_fields"))

    # ─────────────────────────────────────────────────────────────────
    # Errors & events
    # ─────────────────────────────────────────────────────────────────

    async def list_project_errors(self, project_id: str, query: PageQuery) -> ApiResponse:
        return await self._page(f"/projects/{project_id}/errors", query)

    async def view_error(self, project_id: str, error_id: str) -> ApiResponse:
        return await self._http.get(f"/projects/{project_id}/errors/{error_id}")

    async def update_error(self, project_id: str, error_id: str, changes: dict[str, Any]) -> ApiResponse:
        return await self._http.patch(f"/projects/{project_id}/errors/{error_id}", json=changes)

    async def latest_event(self, project_id: str, filters: dict[str, list[dict[str, Any]]]) -> Any | None:
        params: Params = [("sort", "timestamp"), ("direction", "desc"), ("per_page", 1), ("full_reports", True)]
        params.extend(to_query_params(filters))
        response = await self._http.get(f"/projects/{project_id}/events", params=params)
        events = response.body or []
        return events[0] if events else None

    async def error_pivots(
        self, project_id: str, error_id: str, filters: dict[str, list[dict[str, Any]]], summary_size: int = 5,
    ) -> list[Any]:
        params: Params = [("summary_size", summary_size), *to_query_params(filters)]
        response = await self._http.get(f"/projects/{project_id}/errors/{error_id}/pivots", params=params)
        return list(response.body or [])

    async def view_event(self, project_id: str, event_id: str) -> ApiResponse:
        return await self._http.get(f"/projects/{project_id}/events/{event_id}")

    # ─────────────────────────────────────────────────────────────────
    # Releases & builds
    # ─────────────────────────────────────────────────────────────────

    async def list_release_groups(
        self, project_id: str, query: PageQuery, *, release_stage: str, visible_only: bool, top_only: bool = False,
    ) -> ApiResponse:
        return await self._page(
            f"/projects/{project_id}/release_groups", query,
            release_stage_name=release_stage, visible_only=visible_only, top_only=top_only,
        )

    async def get_release_group(self, release_group_id: str) -> ApiResponse:
        return await self._http.get(f"/release_groups/{release_group_id}")

    async def list_builds_in_release(self, release_group_id: str) -> list[Any]:
        response = await self._http.request_all(f"/release_groups/{release_group_id}/releases")
        return list(response.body or [])

    async def list_builds(self, project_id: str, query: PageQuery, *, release_stage: str | None) -> ApiResponse:
        return await self._page(f"/projects/{project_id}/releases", query, release_stage=release_stage)

    async def get_build(self, project_id: str, build_id: str) -> ApiResponse:
        return await self._http.get(f"/projects/{project_id}/releases/{build_id}")
