"""Mutating calls with reconciliation for ambiguous success responses.

Some update endpoints apply a change server-side yet answer 2xx with a body
that cannot be decoded. Only that outcome (ParseFailure) triggers a single
re-fetch and a field-by-field comparison against the intent. Every other
failure, including any non-2xx status, is returned unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from saasbridge.foundation.errors import (
    AdapterException,
    Err,
    FieldMismatch,
    Ok,
    ParseFailure,
    Result,
    VerificationFailure,
)
from saasbridge.runtime.observability import get_logger
from saasbridge.transport import ApiResponse


class UpdateIntent(BaseModel):
    """An entity id plus the partial field set the caller wants changed.

    `changes` is what is sent; `expected` is what the entity should look like
    afterwards when that differs from the request payload (e.g. an operation
    name that becomes a status). Defaults to `changes`.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    changes: dict[str, Any] = Field(default_factory=dict)
    expected: dict[str, Any] | None = None

    @property
    def fields_to_verify(self) -> dict[str, Any]:
        return self.expected if self.expected is not None else self.changes


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    entity: Any = None
    mismatches: list[FieldMismatch] = Field(default_factory=list)


def compare_fields(expected: Mapping[str, Any], actual: Any, prefix: str = "") -> list[FieldMismatch]:
    """Mismatches of `actual` against `expected`, in `expected` order.

    Nested mappings are compared as subsets and reported by dotted path.
    """
    mismatches: list[FieldMismatch] = []
    source = actual if isinstance(actual, Mapping) else {}
    for key, want in expected.items():
        path = f"{prefix}{key}"
        got = source.get(key)
        if isinstance(want, Mapping) and isinstance(got, Mapping):
            mismatches.extend(compare_fields(want, got, f"{path}."))
        elif got != want:
            mismatches.append(FieldMismatch(field=path, expected=want, actual=got))
    return mismatches


WriteCall = Callable[[UpdateIntent], Awaitable[ApiResponse]]
FetchCall = Callable[[str], Awaitable[Any]]


class ResilientWriter:
    """Issue a write; verify by re-fetch only when the success body is undecodable."""

    __slots__ = ("_backend", "_log")

    def __init__(self, *, backend: str = "adapter") -> None:
        self._backend = backend
        self._log = get_logger("writer", backend=backend)

    async def write(self, intent: UpdateIntent, write_call: WriteCall, fetch: FetchCall) -> Result[Any, AdapterException]:
        """Returns Ok(entity) where entity is the response body or the re-fetched
        entity, or Err carrying the original exception or a VerificationFailure."""
        try:
            response = await write_call(intent)
        except ParseFailure as e:
            self._log.warning("write response undecodable; verifying by re-fetch", entity_id=intent.entity_id)
            return await self._reconcile(intent, fetch, e)
        except AdapterException as e:
            return Err(e)
        return Ok(response.body)

    async def verify(self, intent: UpdateIntent, fetch: FetchCall) -> VerificationResult:
        entity = await fetch(intent.entity_id)
        mismatches = compare_fields(intent.fields_to_verify, entity)
        if mismatches:
            return VerificationResult(success=False, mismatches=mismatches)
        return VerificationResult(success=True, entity=entity)

    async def _reconcile(self, intent: UpdateIntent, fetch: FetchCall, cause: ParseFailure) -> Result[Any, AdapterException]:
        try:
            result = await self.verify(intent, fetch)
        except AdapterException as e:
            self._log.error("verification re-fetch failed", entity_id=intent.entity_id, error=str(e))
            return Err(e)
        if result.success:
            self._log.info("write confirmed by re-fetch", entity_id=intent.entity_id)
            return Ok(result.entity)
        failure = VerificationFailure(intent.entity_id, result.mismatches, backend=self._backend)
        failure.__cause__ = cause
        self._log.warning(
            "write not reflected upstream",
            entity_id=intent.entity_id, fields=[m.field for m in result.mismatches],
        )
        return Err(failure)
