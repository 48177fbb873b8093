"""Context records shared by adapters.

Upstream payloads carry far more than these fields; extra keys are kept so
records can be returned to the caller verbatim.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

JsonDict = dict[str, Any]


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    def to_dict(self) -> JsonDict:
        return self.model_dump(mode="json", exclude_none=True)


class Organization(_Record):
    id: str
    name: str = ""
    slug: str = ""


class StabilityTarget(_Record):
    value: float = 0.0


class Project(_Record):
    """A project with its fixed-project key and stability thresholds."""

    id: str
    name: str = ""
    slug: str = ""
    api_key: str | None = None
    stability_target_type: Literal["user", "session"] = "user"
    target_stability: StabilityTarget | None = None
    critical_stability: StabilityTarget | None = None


class EventField(_Record):
    """A filterable event field; `display_id` is the filter key."""

    display_id: str | None = None
    custom: bool = False
    filter_options: JsonDict | None = None
    pivot_options: JsonDict | None = None
