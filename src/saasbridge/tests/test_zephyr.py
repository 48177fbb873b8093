"""Tests for the test management backend."""

from __future__ import annotations

import orjson
import pytest

from saasbridge.backends.zephyr import NewFolder, NewTestCase, ZephyrClient, deep_merge, register_operations
from saasbridge.foundation.config import ZephyrSettings
from saasbridge.foundation.errors import ErrorKind, InvalidEntityKey, ValidationError, VerificationFailure
from saasbridge.foundation.registry import OperationRegistry

from conftest import FakeApi

BASE = "https://zephyr.test/v2"

TEST_CASE = {
    "id": 1,
    "key": "PROJ-T1",
    "name": "Login works",
    "objective": "Check login",
    "labels": ["smoke", "auth"],
    "priority": {"id": 10, "self": "https://zephyr.test/v2/priorities/10"},
    "customFields": {"Component": "auth", "Owner": "qa"},
}


def make_client(fake_api: FakeApi) -> ZephyrClient:
    return ZephyrClient(ZephyrSettings(access_token="ztok", base_url=BASE), transport=fake_api.transport)


class TestDeepMerge:
    def test_nested_mappings_merge(self) -> None:
        merged = deep_merge(TEST_CASE, {"customFields": {"Owner": "dev"}})
        assert merged["customFields"] == {"Component": "auth", "Owner": "dev"}
        assert merged["name"] == "Login works"

    def test_lists_and_none_replace(self) -> None:
        merged = deep_merge(TEST_CASE, {"labels": ["regression"], "objective": None})
        assert merged["labels"] == ["regression"]
        assert merged["objective"] is None

    def test_target_is_not_mutated(self) -> None:
        before = orjson.dumps(TEST_CASE)
        deep_merge(TEST_CASE, {"customFields": {"Owner": "dev"}, "labels": []})
        assert orjson.dumps(TEST_CASE) == before


class TestKeys:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["PROJ-1", "proj-T1", "PROJ-T", "PROJ-R1", "T1"])
    async def test_malformed_test_case_key(self, fake_api: FakeApi, key: str) -> None:
        with pytest.raises(InvalidEntityKey) as exc_info:
            await make_client(fake_api).get_test_case(key)
        assert exc_info.value.error.kind is ErrorKind.VALIDATION
        assert "[PROJECT]-T[NUMBER]" in str(exc_info.value)
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_cycle_accepts_key_or_numeric_id(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcycles/PROJ-R7", {"key": "PROJ-R7"})
        fake_api.add("GET", "/v2/testcycles/42", {"id": 42})
        client = make_client(fake_api)
        assert await client.get_test_cycle("PROJ-R7") == {"key": "PROJ-R7"}
        assert await client.get_test_cycle("42") == {"id": 42}
        with pytest.raises(InvalidEntityKey):
            await client.get_test_cycle("PROJ-E7")

    @pytest.mark.asyncio
    async def test_project_by_key_or_id(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/projects/PROJ", {"key": "PROJ"})
        client = make_client(fake_api)
        assert await client.get_project("PROJ") == {"key": "PROJ"}
        with pytest.raises(InvalidEntityKey):
            await client.get_project("proj")

    @pytest.mark.asyncio
    async def test_execution_key(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testexecutions/PROJ-E3", {"key": "PROJ-E3"})
        assert await make_client(fake_api).get_test_execution("PROJ-E3") == {"key": "PROJ-E3"}


class TestListing:
    @pytest.mark.asyncio
    async def test_test_cases_default_to_cursor_pages(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcases/nextgen", {"values": [{"key": "PROJ-T1"}], "nextStartAtId": 77, "limit": 1})
        page = await make_client(fake_api).list_test_cases("PROJ", page_size=1)
        assert page.data == [{"key": "PROJ-T1"}]
        assert page.next_cursor == "77"

        request = fake_api.requests[0]
        assert request.headers["Authorization"] == "Bearer ztok"
        assert request.url.params.multi_items() == [("projectKey", "PROJ"), ("limit", "1")]

    @pytest.mark.asyncio
    async def test_cursor_is_sent_as_start_at_id(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcases/nextgen", {"values": [], "nextStartAtId": None})
        page = await make_client(fake_api).list_test_cases(cursor="77")
        assert page.next_cursor is None
        assert fake_api.requests[0].url.params["startAtId"] == "77"

    @pytest.mark.asyncio
    async def test_offset_selects_classic_endpoint(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcases", {"values": [{"key": "PROJ-T2"}], "total": 12, "startAt": 10})
        page = await make_client(fake_api).list_test_cases("PROJ", offset=10, page_size=5)
        assert page.total_count == 12
        assert page.data_count == 1
        sent = fake_api.requests[0].url.params
        assert (sent["startAt"], sent["maxResults"]) == ("10", "5")

    @pytest.mark.asyncio
    async def test_executions_filters(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testexecutions/nextgen", {"values": []})
        await make_client(fake_api).list_test_executions(
            "PROJ", test_case="PROJ-T1", only_last_executions=True,
        )
        assert fake_api.requests[0].url.params.multi_items() == [
            ("projectKey", "PROJ"), ("testCase", "PROJ-T1"), ("onlyLastExecutions", "true"),
        ]

    @pytest.mark.asyncio
    async def test_metadata_lists(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/statuses", {"values": [{"name": "Pass"}], "total": 1})
        fake_api.add("GET", "/v2/priorities", {"values": [{"name": "High"}], "total": 1})
        fake_api.add("GET", "/v2/environments", {"values": [], "total": 0})
        client = make_client(fake_api)
        assert (await client.list_statuses("PROJ", status_type="TEST_EXECUTION")).data == [{"name": "Pass"}]
        assert (await client.list_priorities("PROJ")).data == [{"name": "High"}]
        assert (await client.list_environments("PROJ")).total_count == 0
        assert fake_api.requests[0].url.params["statusType"] == "TEST_EXECUTION"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_read_merge_put(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcases/PROJ-T1", TEST_CASE)
        fake_api.add("PUT", "/v2/testcases/PROJ-T1", status=200)
        out = await make_client(fake_api).update_test_case("PROJ-T1", {"customFields": {"Owner": "dev"}})

        (put,) = fake_api.calls("PUT", "/v2/testcases/PROJ-T1")
        sent = orjson.loads(put.content)
        assert sent["name"] == "Login works"
        assert sent["labels"] == ["smoke", "auth"]
        assert sent["customFields"] == {"Component": "auth", "Owner": "dev"}
        assert out == sent

    @pytest.mark.asyncio
    async def test_undecodable_put_response_is_verified(self, fake_api: FakeApi) -> None:
        updated = {**TEST_CASE, "name": "Login still works"}
        fake_api.add("GET", "/v2/testcases/PROJ-T1", TEST_CASE)
        fake_api.add("GET", "/v2/testcases/PROJ-T1", updated)
        fake_api.add("PUT", "/v2/testcases/PROJ-T1", content=b"<ok/>")
        out = await make_client(fake_api).update_test_case("PROJ-T1", {"name": "Login still works"})
        assert out == updated
        assert len(fake_api.calls("GET", "/v2/testcases/PROJ-T1")) == 2

    @pytest.mark.asyncio
    async def test_unreflected_put_raises(self, fake_api: FakeApi) -> None:
        fake_api.add("GET", "/v2/testcases/PROJ-T1", TEST_CASE)
        fake_api.add("PUT", "/v2/testcases/PROJ-T1", content=b"<ok/>")
        with pytest.raises(VerificationFailure) as exc_info:
            await make_client(fake_api).update_test_case("PROJ-T1", {"customFields": {"Owner": "dev"}})
        assert [m.field for m in exc_info.value.mismatches] == ["customFields.Owner"]

    @pytest.mark.asyncio
    async def test_invalid_key_issues_no_request(self, fake_api: FakeApi) -> None:
        with pytest.raises(InvalidEntityKey):
            await make_client(fake_api).update_test_case("PROJ-1", {"name": "x"})
        assert fake_api.requests == []


class TestCreate:
    @pytest.mark.asyncio
    async def test_test_case_body_is_camel_cased(self, fake_api: FakeApi) -> None:
        fake_api.add("POST", "/v2/testcases", {"id": 7, "key": "MM2-T7"}, status=201)
        created = await make_client(fake_api).create_test_case(NewTestCase(
            project_key="MM2", name="Automated Test Case", labels=["automated"], priority_name="High",
        ))
        assert created == {"id": 7, "key": "MM2-T7"}
        assert orjson.loads(fake_api.requests[0].content) == {
            "projectKey": "MM2", "name": "Automated Test Case", "priorityName": "High", "labels": ["automated"],
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"name": "No project"}, {"projectKey": "sa", "name": "x"}, {"projectKey": "SA"}])
    async def test_invalid_test_case_body(self, fake_api: FakeApi, body: dict[str, str]) -> None:
        with pytest.raises(ValidationError, match="Invalid NewTestCase body"):
            await make_client(fake_api).create_test_case(body)
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_test_script_goes_under_its_test_case(self, fake_api: FakeApi) -> None:
        fake_api.add("POST", "/v2/testcases/SA-T1/testscript", {"id": 3}, status=201)
        await make_client(fake_api).create_test_script("SA-T1", {"type": "bdd", "text": "Given a pump"})
        assert orjson.loads(fake_api.requests[0].content) == {"type": "bdd", "text": "Given a pump"}
        with pytest.raises(InvalidEntityKey):
            await make_client(fake_api).create_test_script("SA-1", {"type": "plain", "text": "x"})

    @pytest.mark.asyncio
    async def test_test_cycle(self, fake_api: FakeApi) -> None:
        fake_api.add("POST", "/v2/testcycles", {"id": 9, "key": "SA-R9"}, status=201)
        await make_client(fake_api).create_test_cycle({
            "projectKey": "SA", "name": "Check axial pump strength",
            "customFields": {"Axial pump strength": 5}, "jiraProjectVersion": 10001,
        })
        sent = orjson.loads(fake_api.requests[0].content)
        assert sent["customFields"] == {"Axial pump strength": 5}
        assert sent["jiraProjectVersion"] == 10001

    @pytest.mark.asyncio
    async def test_root_folder_sends_null_parent(self, fake_api: FakeApi) -> None:
        fake_api.add("POST", "/v2/folders", {"id": 18}, status=201)
        await make_client(fake_api).create_folder(NewFolder(project_key="TIS", name="Regression Cycles", folder_type="TEST_CYCLE"))
        assert orjson.loads(fake_api.requests[0].content) == {
            "parentId": None, "projectKey": "TIS", "name": "Regression Cycles", "folderType": "TEST_CYCLE",
        }

    @pytest.mark.asyncio
    async def test_folder_type_is_checked(self, fake_api: FakeApi) -> None:
        with pytest.raises(ValidationError):
            await make_client(fake_api).create_folder({"projectKey": "SA", "name": "x", "folderType": "TEST_RUN"})


class TestOperations:
    @pytest.mark.asyncio
    async def test_registered_and_dispatched(self, fake_api: FakeApi) -> None:
        registry = OperationRegistry()
        register_operations(registry, make_client(fake_api))
        assert len(registry.names(backend="zephyr")) == 16

        fake_api.add("GET", "/v2/projects", {"values": [{"key": "PROJ"}], "total": 1})
        page = (await registry.execute("zephyr.list_projects", {})).unwrap()
        assert page["data"] == [{"key": "PROJ"}]

    @pytest.mark.asyncio
    async def test_empty_changes_rejected(self, fake_api: FakeApi) -> None:
        registry = OperationRegistry()
        register_operations(registry, make_client(fake_api))
        error = (await registry.execute("zephyr.update_test_case", {"key": "PROJ-T1", "changes": {}})).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_create_operations_accept_camel_case_arguments(self, fake_api: FakeApi) -> None:
        registry = OperationRegistry()
        register_operations(registry, make_client(fake_api))
        fake_api.add("POST", "/v2/testcases", {"key": "SA-T2"}, status=201)
        fake_api.add("POST", "/v2/testcases/SA-T2/testscript", {"id": 1}, status=201)

        created = await registry.execute("zephyr.create_test_case", {"projectKey": "SA", "name": "New Test Case"})
        assert created.unwrap() == {"key": "SA-T2"}
        script = await registry.execute("zephyr.create_test_script", {"key": "SA-T2", "type": "plain", "text": "1. Go"})
        assert script.unwrap() == {"id": 1}

        error = (await registry.execute("zephyr.create_folder", {"projectKey": "SA", "name": "x"})).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION
