"""Synchronous prompt callback supplied by the tool-dispatch layer.

Operations that need a value the caller did not pass (a severity level, say)
ask for it through a GetInput callable. A declined or cancelled prompt means
the value stays absent; it is never defaulted.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class InputRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    requested_schema: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class InputResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["accept", "decline", "cancel"]
    content: dict[str, Any] | None = None

    def accepted_value(self, key: str) -> Any | None:
        """`content[key]` when the prompt was accepted, else None."""
        if self.action != "accept" or not self.content:
            return None
        return self.content.get(key) or None


GetInput = Callable[[InputRequest], InputResult]


def enum_prompt(message: str, field: str, choices: list[str], description: str = "") -> InputRequest:
    """A single required string field restricted to `choices`."""
    return InputRequest(
        message=message,
        requested_schema={
            "type": "object",
            "properties": {field: {"type": "string", "enum": choices, "description": description}},
        },
        required=[field],
    )
