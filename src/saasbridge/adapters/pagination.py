"""One pagination and filtering contract over heterogeneous list endpoints.

The executor owns everything that happens before and after the network call:
filter-key validation, default-filter merging, cursor precedence and output
normalization. The call itself only turns a PageQuery into an ApiResponse.

Example:
    >>> executor = PaginatedListExecutor(default_filters={"error.status": eq("open")})
    >>> async def call(q: PageQuery) -> ApiResponse:
    ...     return await transport.get(f"/projects/{pid}/errors", params=q.params())
    >>> page = await executor.list(call, PageRequest(page_size=10), valid_keys=fields)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Collection, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from saasbridge.foundation.errors import InvalidFilterKey, ParseFailure
from saasbridge.transport import ApiResponse

from .filters import merge_filters, to_query_params

Direction = Literal["asc", "desc"]
Filters = dict[str, list[dict[str, Any]]]


class PageRequest(BaseModel):
    """What the caller asked for. A cursor supersedes everything but page_size."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: Annotated[int, Field(ge=0)] | None = None
    page_size: Annotated[int, Field(ge=1)] | None = None
    cursor: str | None = None
    filters: Filters | None = None
    sort: str | None = None
    direction: Direction | None = None


class PageQuery(BaseModel):
    """What the call receives after merging and cursor precedence are applied."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: int | None = None
    page_size: int | None = None
    cursor: str | None = None
    filters: Filters = Field(default_factory=dict)
    sort: str | None = None
    direction: Direction | None = None

    def filter_params(self) -> list[tuple[str, str]]:
        return to_query_params(self.filters)


class PageResult(BaseModel):
    """Normalized page: `{data, next_cursor, data_count, total_count}`."""

    model_config = ConfigDict(frozen=True)

    data: list[Any] = Field(default_factory=list)
    next_cursor: str | None = None
    total_count: int | None = None

    @computed_field
    @property
    def data_count(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class PageShape:
    """Where an envelope-style (dict) body keeps its items, cursor and total.

    List bodies ignore the shape and read the cursor from the `Link` header
    and the total from `X-Total-Count`.
    """

    items_key: str = "values"
    cursor_key: str | None = None
    total_key: str | None = "total"


PageCall = Callable[[PageQuery], Awaitable[ApiResponse]]


class PaginatedListExecutor:
    """Wrap list calls with validation, default filters and normalization.

    Args:
        default_filters: Filters the backend mandates; caller values override per key
        shape: Envelope layout for dict bodies
        backend: Backend name for raised errors
    """

    __slots__ = ("_defaults", "_shape", "_backend")

    def __init__(
        self,
        *,
        default_filters: Mapping[str, list[dict[str, Any]]] | None = None,
        shape: PageShape | None = None,
        backend: str = "adapter",
    ) -> None:
        self._defaults: Filters = {k: list(v) for k, v in (default_filters or {}).items()}
        self._shape = shape or PageShape()
        self._backend = backend

    @property
    def default_filters(self) -> Filters:
        return dict(self._defaults)

    def validate_filters(self, filters: Mapping[str, Any] | None, valid_keys: Collection[str] | None) -> None:
        """Reject the first unknown key. `valid_keys=None` disables the check."""
        if not filters or valid_keys is None:
            return
        for key in filters:
            if key not in valid_keys:
                raise InvalidFilterKey(key, backend=self._backend)

    def build_query(self, request: PageRequest) -> PageQuery:
        if request.cursor:
            return PageQuery(cursor=request.cursor, page_size=request.page_size)
        return PageQuery(
            offset=request.offset,
            page_size=request.page_size,
            filters=merge_filters(self._defaults, request.filters),
            sort=request.sort,
            direction=request.direction,
        )

    async def list(
        self,
        call: PageCall,
        request: PageRequest,
        *,
        valid_keys: Collection[str] | None = None,
    ) -> PageResult:
        """Run one page of `call`. Filters are validated unless a cursor makes them moot."""
        if not request.cursor:
            self.validate_filters(request.filters, valid_keys)
        response = await call(self.build_query(request))
        return self.normalize(response)

    def normalize(self, response: ApiResponse) -> PageResult:
        body = response.body
        if body is None:
            return PageResult(data=[], total_count=response.total_count)
        if isinstance(body, list):
            return PageResult(data=body, next_cursor=response.next_url, total_count=response.total_count)
        if isinstance(body, dict):
            items = body.get(self._shape.items_key) or []
            cursor = body.get(self._shape.cursor_key) if self._shape.cursor_key else None
            total = body.get(self._shape.total_key) if self._shape.total_key else None
            return PageResult(
                data=list(items),
                next_cursor=str(cursor) if cursor is not None else response.next_url,
                total_count=total if isinstance(total, int) else response.total_count,
            )
        raise ParseFailure(
            f"Unexpected list body of type {type(body).__name__} from {response.url}",
            backend=self._backend,
            status_code=response.status_code,
        )
