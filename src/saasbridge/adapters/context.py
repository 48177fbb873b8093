"""Memoized tenant context: organization -> projects -> current project -> filter fields.

Each level is fetched lazily on a cache miss by first resolving the level
above it. Cache reads and writes are not serialized across awaits;
concurrent cold callers may each refetch, and the last write wins.
"""

from __future__ import annotations

from typing import Protocol

from saasbridge.foundation.errors import (
    AdapterException,
    NoCurrentProject,
    NoOrganizations,
    NotFoundError,
    ProjectNotFound,
)
from saasbridge.io.cache import MemoryCache
from saasbridge.runtime.observability import get_logger

from .models import EventField, Organization, Project

# Human free-text search across several fields; exposing it as a filter over-matches.
EXCLUDED_FILTER_FIELDS: frozenset[str] = frozenset({"search"})


class ContextSource(Protocol):
    """Upstream fetchers the cache populates itself from."""

    async def list_organizations(self) -> list[Organization]: ...
    async def list_projects(self, organization_id: str) -> list[Project]: ...
    async def list_event_fields(self, project_id: str) -> list[EventField]: ...


class ContextCache:
    """Per-tenant context chain with controlled fixed-project demotion.

    Args:
        source: Upstream fetchers
        cache: TTL store; pass an isolated instance per tenant (and per test)
        fixed_project_key: Key selecting one project implicitly for every call
        backend: Backend name for errors and log context
        excluded_fields: Filter keys never exposed to callers
    """

    ORG = "org"
    PROJECTS = "projects"
    CURRENT_PROJECT = "current_project"
    FIELDS = "event_fields:{project_id}"

    def __init__(
        self,
        source: ContextSource,
        cache: MemoryCache,
        *,
        fixed_project_key: str | None = None,
        backend: str = "adapter",
        excluded_fields: frozenset[str] = EXCLUDED_FILTER_FIELDS,
    ) -> None:
        self._source = source
        self._cache = cache
        self._fixed_key = fixed_project_key or None
        self._backend = backend
        self._excluded = excluded_fields
        self._log = get_logger("context", backend=backend)

    @property
    def fixed_project_key(self) -> str | None:
        return self._fixed_key

    @property
    def fixed_project_mode(self) -> bool:
        return self._fixed_key is not None

    # ─────────────────────────────────────────────────────────────────
    # Chain
    # ─────────────────────────────────────────────────────────────────

    async def get_organization(self) -> Organization:
        org = self._cache.get(self.ORG)
        if org is None:
            orgs = await self._source.list_organizations()
            if not orgs:
                raise NoOrganizations(backend=self._backend)
            org = orgs[0]
            # One organization per tenant for the life of the process.
            self._cache.set(self.ORG, org, ttl=None)
        return org

    async def get_projects(self) -> list[Project]:
        projects = self._cache.get(self.PROJECTS)
        if projects is None:
            org = await self.get_organization()
            projects = list(await self._source.list_projects(org.id))
            self._cache.set(self.PROJECTS, projects)
        return projects

    async def get_project(self, project_id: str) -> Project | None:
        return next((p for p in await self.get_projects() if p.id == project_id), None)

    async def get_project_by_slug(self, slug: str) -> Project | None:
        return next((p for p in await self.get_projects() if p.slug == slug), None)

    async def get_current_project(self) -> Project | None:
        """The fixed project, or None when fixed-project mode is off.

        The first time the configured key matches no project the mode is
        demoted: the key is cleared for the rest of the process.
        """
        project = self._cache.get(self.CURRENT_PROJECT)
        if project is not None or self._fixed_key is None:
            return project

        projects = await self.get_projects()
        project = next((p for p in projects if p.api_key == self._fixed_key), None)
        if project is None:
            self._demote()
            return None
        self._cache.set(self.CURRENT_PROJECT, project)
        await self.get_filter_fields(project)
        return project

    async def get_input_project(self, candidate_id: str | None = None) -> Project:
        """Resolve the project a call targets: explicit id first, then the fixed project."""
        if candidate_id is not None:
            project = await self.get_project(candidate_id)
            if project is None:
                raise ProjectNotFound(candidate_id, backend=self._backend)
            return project
        current = await self.get_current_project()
        if current is None:
            raise NoCurrentProject(backend=self._backend)
        return current

    # ─────────────────────────────────────────────────────────────────
    # Derived per-project metadata
    # ─────────────────────────────────────────────────────────────────

    async def get_event_fields(self, project: Project) -> list[EventField]:
        key = self.FIELDS.format(project_id=project.id)
        fields = self._cache.get(key)
        if fields is None:
            fetched = await self._source.list_event_fields(project.id)
            if not fetched:
                raise NotFoundError(f"No event fields found for project {project.name or project.id}.",
                                    backend=self._backend)
            fields = [f for f in fetched if f.display_id and f.display_id not in self._excluded]
            self._cache.set(key, fields)
        return fields

    async def get_filter_fields(self, project: Project) -> frozenset[str]:
        """Filter keys valid for `project`, read from that project's own cache entry."""
        return frozenset(f.display_id for f in await self.get_event_fields(project) if f.display_id)

    # ─────────────────────────────────────────────────────────────────
    # Startup
    # ─────────────────────────────────────────────────────────────────

    async def warm(self) -> bool:
        """Establish the initial context. Failures are logged, never raised.

        Returns True when the organization and project list were reachable.
        """
        try:
            await self.get_projects()
        except AdapterException as e:
            self._log.error(
                "unable to reach backend; its tools will fail until the credential is fixed",
                kind=e.error.kind.value, error=str(e),
            )
            return False
        except Exception:
            self._log.exception("unexpected failure establishing backend context")
            return False
        if self._fixed_key is not None:
            try:
                await self.get_current_project()
            except AdapterException as e:
                self._log.error("unable to load current project context", kind=e.error.kind.value, error=str(e))
            except Exception:
                self._log.exception("unexpected failure loading current project context")
        return True

    def _demote(self) -> None:
        self._log.warning(
            "configured project not found; continuing across all projects in the organization",
            project_key=_mask(self._fixed_key),
        )
        self._fixed_key = None
        self._cache.delete(self.CURRENT_PROJECT)


def _mask(key: str | None) -> str:
    if not key:
        return ""
    return f"{key[:4]}..." if len(key) > 4 else "***"
