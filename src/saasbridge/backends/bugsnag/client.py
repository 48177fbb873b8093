"""Error monitoring backend: organization context, errors, events, releases and builds.

Composes the shared adapter components over one tenant:

    EndpointResolver  -> api/app base URLs from the tenant key and override
    ContextCache      -> organization, projects, fixed project, event fields
    PaginatedListExecutor -> errors, releases and builds listings
    StabilityCalculator   -> release and build stability decoration
    ResilientWriter       -> error status updates
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx

from saasbridge.adapters import (
    ContextCache,
    EndpointResolver,
    GetInput,
    Organization,
    PageRequest,
    PageResult,
    PaginatedListExecutor,
    Project,
    ResilientWriter,
    StabilityCalculator,
    UpdateIntent,
    enum_prompt,
    eq,
    to_query_params,
)
from saasbridge.foundation.config import AdapterSettings, BugsnagSettings, HttpSettings
from saasbridge.foundation.errors import InvalidURL, NotFoundError, TransportError, ValidationError
from saasbridge.io.cache import MemoryCache
from saasbridge.runtime.observability import get_logger, timed
from saasbridge.transport import HttpConfig, HttpTransport, NoAuth, TokenAuth

from .api import BugsnagApi

BACKEND = "bugsnag"

HUB_PREFIX = "00000"
HUB_DOMAIN = "bugsnag.smartbear.com"
DEFAULT_DOMAIN = "bugsnag.com"

DEFAULT_ERROR_FILTERS: dict[str, list[dict[str, Any]]] = {
    "error.status": eq("open"),
    "event.since": eq("30d"),
}

ErrorSort = Literal["first_seen", "last_seen", "events", "users", "unsorted"]
Direction = Literal["asc", "desc"]
UpdateOperation = Literal["override_severity", "open", "fix", "ignore", "discard", "undiscard"]

UPDATE_OPERATIONS: tuple[str, ...] = ("override_severity", "open", "fix", "ignore", "discard", "undiscard")
SEVERITIES: list[str] = ["info", "warning", "error"]

# Error status an operation leaves behind, checked when a write must be verified.
OPERATION_STATUS: dict[str, str] = {"open": "open", "fix": "fixed", "ignore": "ignored"}

MAX_PER_PAGE = 100


def _check_per_page(per_page: int | None) -> None:
    if per_page is not None and not 1 <= per_page <= MAX_PER_PAGE:
        raise ValidationError(f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}", backend=BACKEND)


class BugsnagClient:
    """One error monitoring tenant.

    Args:
        settings: Tenant credential, fixed-project key and endpoint override
        http: Timeout and User-Agent
        cache: Context store; a fresh MemoryCache when omitted
        transport: httpx transport override (tests pass httpx.MockTransport)
        get_input: Prompt callback for values the caller did not supply

    Example:
        >>> client = BugsnagClient.from_settings(get_settings())
        >>> await client.configure()
        >>> page = await client.list_project_errors(sort="users", per_page=10)
    """

    name = BACKEND

    def __init__(
        self,
        settings: BugsnagSettings,
        *,
        http: HttpSettings | None = None,
        cache: MemoryCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        get_input: GetInput | None = None,
    ) -> None:
        http = http or HttpSettings()
        resolver = EndpointResolver(HUB_PREFIX, HUB_DOMAIN, DEFAULT_DOMAIN)
        key = settings.project_api_key
        self.api_endpoint = resolver.resolve("api", key, settings.endpoint)
        self.app_endpoint = resolver.resolve("app", key, settings.endpoint)

        token = settings.auth_token
        self._http = HttpTransport(
            HttpConfig(
                base_url=self.api_endpoint,
                auth=TokenAuth(token=token) if token is not None else NoAuth(),
                default_headers={
                    "User-Agent": http.user_agent,
                    "X-Bugsnag-API": "true",
                    "X-Version": "2",
                },
                timeout=http.timeout,
                strip_links=True,
            ),
            backend=BACKEND,
            transport=transport,
        )
        self.api = BugsnagApi(self._http)
        self.context = ContextCache(self.api, cache or MemoryCache(), fixed_project_key=key, backend=BACKEND)
        self._errors = PaginatedListExecutor(default_filters=DEFAULT_ERROR_FILTERS, backend=BACKEND)
        self._pages = PaginatedListExecutor(backend=BACKEND)
        self._writer = ResilientWriter(backend=BACKEND)
        self._get_input = get_input
        self._log = get_logger("bugsnag")

    @classmethod
    def from_settings(cls, settings: AdapterSettings, **kw: Any) -> BugsnagClient:
        cache = MemoryCache(default_ttl=settings.cache.ttl, enabled=settings.cache.enabled)
        return cls(settings.bugsnag, http=settings.http, cache=cache, **kw)

    async def configure(self) -> bool:
        """Warm the organization and project context. Never raises on upstream failure."""
        return await self.context.warm()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Context
    # ─────────────────────────────────────────────────────────────────

    async def get_organization(self) -> Organization:
        return await self.context.get_organization()

    async def get_projects(self) -> list[Project]:
        return await self.context.get_projects()

    async def get_current_project(self) -> Project | None:
        return await self.context.get_current_project()

    async def get_input_project(self, project_id: str | None = None) -> Project:
        return await self.context.get_input_project(project_id)

    async def dashboard_url(self, project: Project) -> str:
        org = await self.context.get_organization()
        return f"{self.app_endpoint}/{org.slug}/{project.slug}"

    async def error_url(self, project: Project, error_id: str, filters: dict[str, Any] | None = None) -> str:
        query = urlencode(to_query_params(filters))
        return f"{await self.dashboard_url(project)}/errors/{error_id}" + (f"?{query}" if query else "")

    # ─────────────────────────────────────────────────────────────────
    # Projects
    # ─────────────────────────────────────────────────────────────────

    async def list_projects(self, page_size: int | None = None, page: int | None = None) -> dict[str, Any]:
        projects = await self.context.get_projects()
        if page_size or page:
            size, number = page_size or 10, page or 1
            projects = projects[(number - 1) * size:number * size]
        return {"data": [p.to_dict() for p in projects], "count": len(projects)}

    async def list_project_event_filters(self, project_id: str | None = None) -> list[dict[str, Any]]:
        project = await self.context.get_input_project(project_id)
        return [f.to_dict() for f in await self.context.get_event_fields(project)]

    # ─────────────────────────────────────────────────────────────────
    # Errors & events
    # ─────────────────────────────────────────────────────────────────

    @timed()
    async def list_project_errors(
        self,
        project_id: str | None = None,
        *,
        filters: dict[str, list[dict[str, Any]]] | None = None,
        sort: ErrorSort = "last_seen",
        direction: Direction = "desc",
        per_page: int = 30,
        next_url: str | None = None,
    ) -> PageResult:
        _check_per_page(per_page)
        project = await self.context.get_input_project(project_id)
        request = PageRequest(
            page_size=per_page, cursor=self._cursor(next_url), filters=filters, sort=sort, direction=direction,
        )
        valid_keys = await self.context.get_filter_fields(project)
        return await self._errors.list(
            lambda q: self.api.list_project_errors(project.id, q), request, valid_keys=valid_keys,
        )

    async def get_error(
        self,
        error_id: str,
        project_id: str | None = None,
        *,
        filters: dict[str, list[dict[str, Any]]] | None = None,
    ) -> dict[str, Any]:
        """Error details, its latest event, the top pivots and a dashboard link."""
        project = await self.context.get_input_project(project_id)
        if filters:
            self._errors.validate_filters(filters, await self.context.get_filter_fields(project))
        details = (await self.api.view_error(project.id, error_id)).body
        if not details:
            raise NotFoundError(f"Error with ID {error_id} not found in project {project.id}.", backend=BACKEND)

        scoped = {"error": eq(error_id), **(filters or {})}
        latest_event = None
        try:
            latest_event = await self.api.latest_event(project.id, scoped)
        except TransportError as e:
            self._log.warning("failed to fetch latest event", error_id=error_id, error=str(e))
        return {
            "error_details": details,
            "latest_event": latest_event,
            "pivots": await self.api.error_pivots(project.id, error_id, scoped),
            "url": await self.error_url(project, error_id, scoped),
        }

    async def get_event(self, event_id: str, project_id: str | None = None) -> Any | None:
        """The event from `project_id`, or from whichever project holds it."""
        project_ids = [project_id] if project_id else [p.id for p in await self.context.get_projects()]

        async def lookup(pid: str) -> Any | None:
            try:
                return (await self.api.view_event(pid, event_id)).body
            except TransportError as e:
                if e.status_code == 404:
                    return None
                raise

        found = await asyncio.gather(*(lookup(pid) for pid in project_ids))
        return next((event for event in found if event), None)

    async def get_event_details(self, link: str) -> Any:
        """Resolve a dashboard link `…/<org>/<project-slug>/errors/<id>?event_id=<id>`."""
        try:
            parts = urlsplit(link)
        except ValueError as e:
            raise InvalidURL(link, str(e), backend=BACKEND) from e
        segments = parts.path.split("/")
        project_slug = segments[2] if len(segments) > 2 else ""
        event_id = (parse_qs(parts.query).get("event_id") or [""])[0]
        if not project_slug or not event_id:
            raise ValidationError("Both projectSlug and eventId must be present in the link", backend=BACKEND)

        project = await self.context.get_project_by_slug(project_slug)
        if project is None:
            raise NotFoundError("Project with the specified slug not found.", backend=BACKEND)
        event = await self.get_event(event_id, project.id)
        if event is None:
            raise NotFoundError(f"Event with ID {event_id} not found in project {project.id}.", backend=BACKEND)
        return event

    async def update_error(
        self,
        error_id: str,
        operation: UpdateOperation,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        if operation not in UPDATE_OPERATIONS:
            raise ValidationError(f"Unknown operation: {operation}", backend=BACKEND)
        project = await self.context.get_input_project(project_id)

        changes: dict[str, Any] = {"operation": operation}
        expected: dict[str, Any] = {}
        if operation == "override_severity":
            severity = self._prompt_severity()
            if severity is not None:
                changes["severity"] = expected["severity"] = severity
        elif operation in OPERATION_STATUS:
            expected["status"] = OPERATION_STATUS[operation]

        async def fetch(eid: str) -> Any:
            return (await self.api.view_error(project.id, eid)).body

        result = await self._writer.write(
            UpdateIntent(entity_id=error_id, changes=changes, expected=expected),
            lambda intent: self.api.update_error(project.id, intent.entity_id, intent.changes),
            fetch,
        )
        return {"success": True, "error": result.unwrap()}

    def _prompt_severity(self) -> str | None:
        if self._get_input is None:
            return None
        answer = self._get_input(enum_prompt(
            "Please provide the new severity for the error (e.g. 'info', 'warning', 'error')",
            "severity", SEVERITIES, "The new severity level for the error",
        ))
        return answer.accepted_value("severity")

    # ─────────────────────────────────────────────────────────────────
    # Releases & builds
    # ─────────────────────────────────────────────────────────────────

    async def list_releases(
        self,
        project_id: str | None = None,
        *,
        release_stage: str = "production",
        visible_only: bool = True,
        per_page: int = 30,
        next_url: str | None = None,
    ) -> PageResult:
        _check_per_page(per_page)
        project = await self.context.get_input_project(project_id)
        page = await self._pages.list(
            lambda q: self.api.list_release_groups(
                project.id, q, release_stage=release_stage, visible_only=visible_only,
            ),
            PageRequest(page_size=per_page, cursor=self._cursor(next_url)),
        )
        return self._decorated(page, project)

    async def get_release(self, release_id: str, project_id: str | None = None) -> dict[str, Any]:
        project = await self.context.get_input_project(project_id)
        release = (await self.api.get_release_group(release_id)).body
        if not release:
            raise NotFoundError(f"No release for {release_id} found.", backend=BACKEND)
        stability = StabilityCalculator.for_project(project)
        builds = await self.api.list_builds_in_release(release_id)
        return {"release": stability.decorate(release), "builds": stability.decorate_all(builds)}

    async def list_builds(
        self,
        project_id: str | None = None,
        *,
        release_stage: str | None = None,
        per_page: int | None = None,
        next_url: str | None = None,
    ) -> PageResult:
        _check_per_page(per_page)
        project = await self.context.get_input_project(project_id)
        page = await self._pages.list(
            lambda q: self.api.list_builds(project.id, q, release_stage=release_stage),
            PageRequest(page_size=per_page, cursor=self._cursor(next_url)),
        )
        return self._decorated(page, project)

    async def get_build(self, build_id: str, project_id: str | None = None) -> dict[str, Any]:
        project = await self.context.get_input_project(project_id)
        build = (await self.api.get_build(project.id, build_id)).body
        if not build:
            raise NotFoundError(f"No build for {build_id} found.", backend=BACKEND)
        return StabilityCalculator.for_project(project).decorate(build)

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _cursor(self, next_url: str | None) -> str | None:
        """Accept only cursors pointing back into this tenant's API."""
        if not next_url:
            return None
        if next_url.startswith("/") or next_url.startswith(self._http.base_url + "/"):
            return next_url
        raise InvalidURL(next_url, "next URL must point to the configured API endpoint", backend=BACKEND)

    @staticmethod
    def _decorated(page: PageResult, project: Project) -> PageResult:
        stability = StabilityCalculator.for_project(project)
        return page.model_copy(update={"data": stability.decorate_all(page.data)})
