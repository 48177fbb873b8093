"""Registry bindings for test management operations."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from saasbridge.foundation.registry import OperationRegistry

from .client import NewFolder, NewTestCase, NewTestCycle, ZephyrClient

PageSize = Annotated[int, Field(ge=1, le=1000)]
Offset = Annotated[int, Field(ge=0)]


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class OffsetPage(_Params):
    project_key: str | None = None
    offset: Offset | None = None
    page_size: PageSize | None = None


class ListProjectsParams(_Params):
    offset: Offset | None = None
    page_size: PageSize | None = None


class KeyParams(_Params):
    key: str


class ListTestCasesParams(_Params):
    project_key: str | None = None
    folder_id: int | None = None
    page_size: PageSize | None = None
    offset: Offset | None = None
    cursor: str | None = None


class UpdateTestCaseParams(_Params):
    key: str
    changes: dict[str, Any] = Field(min_length=1)


class CreateTestScriptParams(_Params):
    key: str
    type: Literal["plain", "bdd"]
    text: str = Field(min_length=1)


class ListTestCyclesParams(OffsetPage):
    folder_id: int | None = None
    jira_project_version_id: int | None = None


class ListTestExecutionsParams(_Params):
    project_key: str | None = None
    test_cycle: str | None = None
    test_case: str | None = None
    only_last_executions: bool | None = None
    page_size: PageSize | None = None
    cursor: str | None = None


class ListStatusesParams(OffsetPage):
    status_type: str | None = None


def _dump(result: Any) -> Any:
    return result.model_dump() if isinstance(result, BaseModel) else result


def register_operations(registry: OperationRegistry, client: ZephyrClient) -> None:
    """Register every test management operation against `client`."""

    @registry.operation("zephyr.list_projects", "List projects in the test management account", ListProjectsParams)
    async def list_projects(p: ListProjectsParams) -> Any:
        return _dump(await client.list_projects(offset=p.offset, page_size=p.page_size))

    @registry.operation("zephyr.get_project", "Get a project by its id or key", KeyParams)
    async def get_project(p: KeyParams) -> Any:
        return await client.get_project(p.key)

    @registry.operation("zephyr.list_test_cases", "List test cases, optionally by project or folder", ListTestCasesParams)
    async def list_test_cases(p: ListTestCasesParams) -> Any:
        return _dump(await client.list_test_cases(
            p.project_key, folder_id=p.folder_id, page_size=p.page_size, offset=p.offset, cursor=p.cursor,
        ))

    @registry.operation("zephyr.get_test_case", "Get a test case by its key", KeyParams)
    async def get_test_case(p: KeyParams) -> Any:
        return await client.get_test_case(p.key)

    @registry.operation(
        "zephyr.update_test_case",
        "Update fields of a test case, leaving unspecified fields unchanged",
        UpdateTestCaseParams,
    )
    async def update_test_case(p: UpdateTestCaseParams) -> Any:
        return await client.update_test_case(p.key, p.changes)

    @registry.operation("zephyr.list_test_cycles", "List test cycles, optionally by project", ListTestCyclesParams)
    async def list_test_cycles(p: ListTestCyclesParams) -> Any:
        return _dump(await client.list_test_cycles(
            p.project_key, folder_id=p.folder_id, jira_project_version_id=p.jira_project_version_id,
            offset=p.offset, page_size=p.page_size,
        ))

    @registry.operation("zephyr.get_test_cycle", "Get a test cycle by its id or key", KeyParams)
    async def get_test_cycle(p: KeyParams) -> Any:
        return await client.get_test_cycle(p.key)

    @registry.operation("zephyr.list_test_executions", "List test executions with cursor pagination", ListTestExecutionsParams)
    async def list_test_executions(p: ListTestExecutionsParams) -> Any:
        return _dump(await client.list_test_executions(
            p.project_key, test_cycle=p.test_cycle, test_case=p.test_case,
            only_last_executions=p.only_last_executions, page_size=p.page_size, cursor=p.cursor,
        ))

    @registry.operation("zephyr.get_test_execution", "Get a test execution by its id or key", KeyParams)
    async def get_test_execution(p: KeyParams) -> Any:
        return await client.get_test_execution(p.key)

    @registry.operation("zephyr.list_statuses", "List statuses available to test entities", ListStatusesParams)
    async def list_statuses(p: ListStatusesParams) -> Any:
        return _dump(await client.list_statuses(
            p.project_key, status_type=p.status_type, offset=p.offset, page_size=p.page_size,
        ))

    @registry.operation("zephyr.list_priorities", "List priorities available to test cases", OffsetPage)
    async def list_priorities(p: OffsetPage) -> Any:
        return _dump(await client.list_priorities(p.project_key, offset=p.offset, page_size=p.page_size))

    @registry.operation("zephyr.list_environments", "List environments available to test executions", OffsetPage)
    async def list_environments(p: OffsetPage) -> Any:
        return _dump(await client.list_environments(p.project_key, offset=p.offset, page_size=p.page_size))

    @registry.operation("zephyr.create_test_case", "Create a test case in a project", NewTestCase)
    async def create_test_case(p: NewTestCase) -> Any:
        return await client.create_test_case(p)

    @registry.operation("zephyr.create_test_script", "Attach a plain or BDD script to a test case", CreateTestScriptParams)
    async def create_test_script(p: CreateTestScriptParams) -> Any:
        return await client.create_test_script(p.key, {"type": p.type, "text": p.text})

    @registry.operation("zephyr.create_test_cycle", "Create a test cycle in a project", NewTestCycle)
    async def create_test_cycle(p: NewTestCycle) -> Any:
        return await client.create_test_cycle(p)

    @registry.operation("zephyr.create_folder", "Create a test case, plan or cycle folder", NewFolder)
    async def create_folder(p: NewFolder) -> Any:
        return await client.create_folder(p)
