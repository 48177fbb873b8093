"""Registry bindings: one params model and one handler per error monitoring operation."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from saasbridge.foundation.registry import OperationRegistry

from .client import MAX_PER_PAGE, BugsnagClient, Direction, ErrorSort, UpdateOperation

Filters = dict[str, list[dict[str, Any]]]
PerPage = Annotated[int, Field(ge=1, le=MAX_PER_PAGE)]


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectScoped(_Params):
    project_id: str | None = Field(default=None, description="Required unless a project API key is configured")


class ListProjectsParams(_Params):
    page_size: Annotated[int, Field(ge=1)] | None = None
    page: Annotated[int, Field(ge=1)] | None = None


class ListProjectErrorsParams(ProjectScoped):
    filters: Filters | None = None
    sort: ErrorSort = "last_seen"
    direction: Direction = "desc"
    per_page: PerPage = 30
    next_url: str | None = None


class GetErrorParams(ProjectScoped):
    error_id: str
    filters: Filters | None = None


class GetEventDetailsParams(_Params):
    link: str


class UpdateErrorParams(ProjectScoped):
    error_id: str
    operation: UpdateOperation


class ListReleasesParams(ProjectScoped):
    release_stage: str = "production"
    visible_only: bool = True
    per_page: PerPage = 30
    next_url: str | None = None


class GetReleaseParams(ProjectScoped):
    release_id: str


class ListBuildsParams(ProjectScoped):
    release_stage: str | None = None
    per_page: PerPage | None = None
    next_url: str | None = None


class GetBuildParams(ProjectScoped):
    build_id: str


def register_operations(registry: OperationRegistry, client: BugsnagClient) -> None:
    """Register every error monitoring operation against `client`."""

    @registry.operation("bugsnag.list_projects", "List projects in the organization", ListProjectsParams)
    async def list_projects(p: ListProjectsParams) -> Any:
        return await client.list_projects(p.page_size, p.page)

    @registry.operation(
        "bugsnag.list_project_errors",
        "List and search errors in a project using filters and pagination",
        ListProjectErrorsParams,
    )
    async def list_project_errors(p: ListProjectErrorsParams) -> Any:
        page = await client.list_project_errors(
            p.project_id, filters=p.filters, sort=p.sort, direction=p.direction,
            per_page=p.per_page, next_url=p.next_url,
        )
        return page.model_dump()

    @registry.operation(
        "bugsnag.get_error",
        "Get full details on an error, including its latest event and summaries",
        GetErrorParams,
    )
    async def get_error(p: GetErrorParams) -> Any:
        return await client.get_error(p.error_id, p.project_id, filters=p.filters)

    @registry.operation(
        "bugsnag.get_event_details",
        "Get detailed information about an event from its dashboard URL",
        GetEventDetailsParams,
    )
    async def get_event_details(p: GetEventDetailsParams) -> Any:
        return await client.get_event_details(p.link)

    @registry.operation(
        "bugsnag.list_project_event_filters",
        "Get the event filter fields available for a project",
        ProjectScoped,
    )
    async def list_project_event_filters(p: ProjectScoped) -> Any:
        return await client.list_project_event_filters(p.project_id)

    @registry.operation("bugsnag.update_error", "Update the status or severity of an error", UpdateErrorParams)
    async def update_error(p: UpdateErrorParams) -> Any:
        return await client.update_error(p.error_id, p.operation, p.project_id)

    @registry.operation("bugsnag.list_releases", "List releases for a project with stability data", ListReleasesParams)
    async def list_releases(p: ListReleasesParams) -> Any:
        page = await client.list_releases(
            p.project_id, release_stage=p.release_stage, visible_only=p.visible_only,
            per_page=p.per_page, next_url=p.next_url,
        )
        return page.model_dump()

    @registry.operation("bugsnag.get_release", "Get a release and its builds with stability data", GetReleaseParams)
    async def get_release(p: GetReleaseParams) -> Any:
        return await client.get_release(p.release_id, p.project_id)

    @registry.operation("bugsnag.list_builds", "List builds for a project with stability data", ListBuildsParams)
    async def list_builds(p: ListBuildsParams) -> Any:
        page = await client.list_builds(
            p.project_id, release_stage=p.release_stage, per_page=p.per_page, next_url=p.next_url,
        )
        return page.model_dump()

    @registry.operation("bugsnag.get_build", "Get a build by its ID with stability data", GetBuildParams)
    async def get_build(p: GetBuildParams) -> Any:
        return await client.get_build(p.build_id, p.project_id)
