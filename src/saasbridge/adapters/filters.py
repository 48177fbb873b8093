"""Filter objects and their query-string encoding.

A filter object maps a field to a list of conditions; conditions on one field
are OR'd by the backend, fields are AND'd:

    {"error.status": [{"type": "eq", "value": "open"}]}

encodes to `filters[error.status][][type]=eq&filters[error.status][][value]=open`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, RootModel

FilterType = Literal["eq", "ne", "empty"]


class FilterValue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: FilterType
    value: str | bool | int | float


class FilterObject(RootModel[dict[str, list[FilterValue]]]):
    """Validated mapping of field name to its conditions."""

    def keys(self) -> list[str]:
        return list(self.root)

    def to_plain(self) -> dict[str, list[dict[str, Any]]]:
        return {k: [v.model_dump() for v in conds] for k, conds in self.root.items()}


def eq(value: str | bool | int | float) -> list[dict[str, Any]]:
    """Shorthand for a single equality condition."""
    return [{"type": "eq", "value": value}]


def merge_filters(
    defaults: Mapping[str, list[dict[str, Any]]] | None,
    overrides: Mapping[str, list[dict[str, Any]]] | None,
) -> dict[str, list[dict[str, Any]]]:
    """Defaults first, caller values win per key."""
    return {**(defaults or {}), **(overrides or {})}


def to_query_params(filters: Mapping[str, list[Mapping[str, Any]]] | None) -> list[tuple[str, str]]:
    """Encode a filter object into ordered query pairs."""
    if not filters:
        return []
    pairs: list[tuple[str, str]] = []
    for field, conditions in filters.items():
        for cond in conditions:
            value = cond["value"]
            pairs.append((f"filters[{field}][][type]", str(cond["type"])))
            pairs.append((f"filters[{field}][][value]", str(value).lower() if isinstance(value, bool) else str(value)))
    return pairs
