"""Test management backend: projects, test cases, cycles, executions, folders and metadata.

Two pagination styles coexist upstream. Classic list endpoints take
`startAt`/`maxResults` and report `total`; the next-gen endpoints take
`limit`/`startAtId` and hand back `nextStartAtId`, which is surfaced as the
page cursor.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from saasbridge.adapters import (
    PageQuery,
    PageRequest,
    PageResult,
    PageShape,
    PaginatedListExecutor,
    ResilientWriter,
    UpdateIntent,
)
from saasbridge.foundation.config import AdapterSettings, HttpSettings, ZephyrSettings
from saasbridge.foundation.errors import InvalidEntityKey, ValidationError
from saasbridge.runtime.observability import get_logger
from saasbridge.transport import ApiResponse, BearerAuth, HttpConfig, HttpTransport, NoAuth

BACKEND = "zephyr"

PROJECT_KEY = re.compile(r"^[A-Z][A-Z_0-9]+$")
TEST_CASE_KEY = re.compile(r"^[A-Z][A-Z_0-9]+-T\d+$")
TEST_CYCLE_KEY = re.compile(r"^[A-Z][A-Z_0-9]+-R\d+$")
TEST_EXECUTION_KEY = re.compile(r"^[A-Z][A-Z_0-9]+-E\d+$")
NUMERIC_ID = re.compile(r"^\d+$")

OFFSET_SHAPE = PageShape(items_key="values", cursor_key=None, total_key="total")
CURSOR_SHAPE = PageShape(items_key="values", cursor_key="nextStartAtId", total_key=None)


class _Body(BaseModel):
    """Request body sent with camelCase field names."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True, alias_generator=to_camel)

    def payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


B = TypeVar("B", bound=_Body)


class NewTestCase(_Body):
    project_key: Annotated[str, Field(pattern=PROJECT_KEY.pattern)]
    name: Annotated[str, Field(min_length=1, max_length=255)]
    objective: str | None = None
    precondition: str | None = None
    estimated_time: Annotated[int, Field(ge=0)] | None = None
    component_id: int | None = None
    priority_name: str | None = None
    status_name: str | None = None
    folder_id: Annotated[int, Field(ge=1)] | None = None
    owner_id: str | None = None
    labels: list[str] | None = None
    custom_fields: dict[str, Any] | None = None


class NewTestScript(_Body):
    type: Literal["plain", "bdd"]
    text: Annotated[str, Field(min_length=1)]


class NewTestCycle(_Body):
    project_key: Annotated[str, Field(pattern=PROJECT_KEY.pattern)]
    name: Annotated[str, Field(min_length=1, max_length=255)]
    description: str | None = None
    planned_start_date: str | None = None
    planned_end_date: str | None = None
    jira_project_version: Annotated[int, Field(ge=1)] | None = None
    status_name: str | None = None
    folder_id: Annotated[int, Field(ge=1)] | None = None
    owner_id: str | None = None
    custom_fields: dict[str, Any] | None = None


class NewFolder(_Body):
    """`parent_id=None` creates a root folder; it is always sent."""

    project_key: Annotated[str, Field(pattern=PROJECT_KEY.pattern)]
    name: Annotated[str, Field(min_length=1, max_length=255)]
    folder_type: Literal["TEST_CASE", "TEST_PLAN", "TEST_CYCLE"]
    parent_id: Annotated[int, Field(ge=1)] | None = None

    def payload(self) -> dict[str, Any]:
        return {"parentId": self.parent_id, **super().payload()}


def _body(model: type[B], data: B | Mapping[str, Any]) -> B:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__} body: {e}", backend=BACKEND) from e


def deep_merge(target: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Merge `updates` into a copy of `target`.

    Nested mappings merge key by key; lists, scalars and None replace.
    """
    result = copy.deepcopy(dict(target))
    for key, value in updates.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _check_key(value: str, *patterns: re.Pattern[str], expected: str) -> str:
    if not any(p.match(value) for p in patterns):
        raise InvalidEntityKey(value, expected, backend=BACKEND)
    return value


def _offset_params(q: PageQuery) -> list[tuple[str, Any]]:
    return [("startAt", q.offset), ("maxResults", q.page_size)]


def _cursor_params(q: PageQuery) -> list[tuple[str, Any]]:
    return [("startAtId", q.cursor), ("limit", q.page_size)]


class ZephyrClient:
    """One test management tenant authenticated with a bearer token.

    Example:
        >>> client = ZephyrClient(ZephyrSettings(access_token="..."))
        >>> page = await client.list_test_cases("PROJ", page_size=10)
        >>> await client.update_test_case("PROJ-T10", {"name": "Check axial pump"})
    """

    name = BACKEND

    def __init__(
        self,
        settings: ZephyrSettings,
        *,
        http: HttpSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        http = http or HttpSettings()
        token = settings.access_token
        self._http = HttpTransport(
            HttpConfig(
                base_url=settings.base_url,
                auth=BearerAuth(token=token) if token is not None else NoAuth(),
                default_headers={"User-Agent": http.user_agent},
                timeout=http.timeout,
            ),
            backend=BACKEND,
            transport=transport,
        )
        self._offset = PaginatedListExecutor(shape=OFFSET_SHAPE, backend=BACKEND)
        self._cursor = PaginatedListExecutor(shape=CURSOR_SHAPE, backend=BACKEND)
        self._writer = ResilientWriter(backend=BACKEND)
        self._log = get_logger("zephyr")

    @classmethod
    def from_settings(cls, settings: AdapterSettings, **kw: Any) -> ZephyrClient:
        return cls(settings.zephyr, http=settings.http, **kw)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _list_offset(self, path: str, offset: int | None, page_size: int | None, **params: Any) -> PageResult:
        async def call(q: PageQuery) -> ApiResponse:
            return await self._http.get(path, params=[*params.items(), *_offset_params(q)])

        return await self._offset.list(call, PageRequest(offset=offset, page_size=page_size))

    async def _list_cursor(self, path: str, cursor: str | None, page_size: int | None, **params: Any) -> PageResult:
        async def call(q: PageQuery) -> ApiResponse:
            return await self._http.get(path, params=[*params.items(), *_cursor_params(q)])

        return await self._cursor.list(call, PageRequest(cursor=cursor, page_size=page_size))

    async def _get(self, path: str) -> Any:
        return (await self._http.get(path)).body

    # ─────────────────────────────────────────────────────────────────
    # Projects
    # ─────────────────────────────────────────────────────────────────

    async def list_projects(self, *, offset: int | None = None, page_size: int | None = None) -> PageResult:
        return await self._list_offset("/projects", offset, page_size)

    async def get_project(self, project_id_or_key: str) -> Any:
        _check_key(project_id_or_key, PROJECT_KEY, NUMERIC_ID, expected="[PROJECT] or a numeric id")
        return await self._get(f"/projects/{project_id_or_key}")

    # ─────────────────────────────────────────────────────────────────
    # Test cases
    # ─────────────────────────────────────────────────────────────────

    async def list_test_cases(
        self,
        project_key: str | None = None,
        *,
        folder_id: int | None = None,
        page_size: int | None = None,
        offset: int | None = None,
        cursor: str | None = None,
    ) -> PageResult:
        """Cursor pagination by default; pass `offset` for the classic endpoint."""
        if offset is not None:
            return await self._list_offset(
                "/testcases", offset, page_size, projectKey=project_key, folderId=folder_id,
            )
        return await self._list_cursor(
            "/testcases/nextgen", cursor, page_size, projectKey=project_key, folderId=folder_id,
        )

    async def get_test_case(self, test_case_key: str) -> Any:
        _check_key(test_case_key, TEST_CASE_KEY, expected="[PROJECT]-T[NUMBER]")
        return await self._get(f"/testcases/{test_case_key}")

    async def update_test_case(self, test_case_key: str, changes: Mapping[str, Any]) -> Any:
        """Read-merge-write: PUT replaces the whole resource, so unspecified fields are carried over.

        Set a field to None to clear it; lists replace rather than append.
        """
        _check_key(test_case_key, TEST_CASE_KEY, expected="[PROJECT]-T[NUMBER]")
        current = await self._get(f"/testcases/{test_case_key}") or {}
        merged = deep_merge(current, changes)
        intent = UpdateIntent(entity_id=test_case_key, changes=merged, expected=dict(changes))
        result = await self._writer.write(
            intent,
            lambda i: self._http.put(f"/testcases/{i.entity_id}", json=i.changes),
            lambda key: self._get(f"/testcases/{key}"),
        )
        entity = result.unwrap()
        self._log.info("test case updated", key=test_case_key, fields=sorted(changes))
        # PUT answers with an empty body; the merged payload is what was stored.
        return entity if entity is not None else merged

    # ─────────────────────────────────────────────────────────────────
    # Creation
    # ─────────────────────────────────────────────────────────────────

    async def _create(self, path: str, body: _Body, event: str, **ctx: Any) -> Any:
        created = (await self._http.post(path, json=body.payload())).body
        self._log.info(event, **ctx)
        return created

    async def create_test_case(self, body: NewTestCase | Mapping[str, Any]) -> Any:
        case = _body(NewTestCase, body)
        return await self._create("/testcases", case, "test case created", project=case.project_key)

    async def create_test_script(self, test_case_key: str, body: NewTestScript | Mapping[str, Any]) -> Any:
        """Attach a plain-text or BDD script to an existing test case."""
        _check_key(test_case_key, TEST_CASE_KEY, expected="[PROJECT]-T[NUMBER]")
        script = _body(NewTestScript, body)
        return await self._create(
            f"/testcases/{test_case_key}/testscript", script, "test script created",
            key=test_case_key, type=script.type,
        )

    async def create_test_cycle(self, body: NewTestCycle | Mapping[str, Any]) -> Any:
        cycle = _body(NewTestCycle, body)
        return await self._create("/testcycles", cycle, "test cycle created", project=cycle.project_key)

    async def create_folder(self, body: NewFolder | Mapping[str, Any]) -> Any:
        folder = _body(NewFolder, body)
        return await self._create(
            "/folders", folder, "folder created", project=folder.project_key, folder_type=folder.folder_type,
        )

    # ─────────────────────────────────────────────────────────────────
    # Cycles & executions
    # ─────────────────────────────────────────────────────────────────

    async def list_test_cycles(
        self,
        project_key: str | None = None,
        *,
        folder_id: int | None = None,
        jira_project_version_id: int | None = None,
        offset: int | None = None,
        page_size: int | None = None,
    ) -> PageResult:
        return await self._list_offset(
            "/testcycles", offset, page_size,
            projectKey=project_key, folderId=folder_id, jiraProjectVersionId=jira_project_version_id,
        )

    async def get_test_cycle(self, id_or_key: str) -> Any:
        _check_key(id_or_key, TEST_CYCLE_KEY, NUMERIC_ID, expected="[PROJECT]-R[NUMBER] or a numeric id")
        return await self._get(f"/testcycles/{id_or_key}")

    async def list_test_executions(
        self,
        project_key: str | None = None,
        *,
        test_cycle: str | None = None,
        test_case: str | None = None,
        only_last_executions: bool | None = None,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> PageResult:
        if test_case is not None:
            _check_key(test_case, TEST_CASE_KEY, expected="[PROJECT]-T[NUMBER]")
        return await self._list_cursor(
            "/testexecutions/nextgen", cursor, page_size,
            projectKey=project_key, testCycle=test_cycle, testCase=test_case,
            onlyLastExecutions=only_last_executions,
        )

    async def get_test_execution(self, id_or_key: str) -> Any:
        _check_key(id_or_key, TEST_EXECUTION_KEY, NUMERIC_ID, expected="[PROJECT]-E[NUMBER] or a numeric id")
        return await self._get(f"/testexecutions/{id_or_key}")

    # ─────────────────────────────────────────────────────────────────
    # Metadata
    # ─────────────────────────────────────────────────────────────────

    async def list_statuses(
        self,
        project_key: str | None = None,
        *,
        status_type: str | None = None,
        offset: int | None = None,
        page_size: int | None = None,
    ) -> PageResult:
        return await self._list_offset("/statuses", offset, page_size, projectKey=project_key, statusType=status_type)

    async def list_priorities(
        self, project_key: str | None = None, *, offset: int | None = None, page_size: int | None = None,
    ) -> PageResult:
        return await self._list_offset("/priorities", offset, page_size, projectKey=project_key)

    async def list_environments(
        self, project_key: str | None = None, *, offset: int | None = None, page_size: int | None = None,
    ) -> PageResult:
        return await self._list_offset("/environments", offset, page_size, projectKey=project_key)
