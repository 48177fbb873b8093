"""Central registry of backend operations.

Maps a symbolic identifier (`bugsnag.list_project_errors`) to a statically
typed handler: a pydantic params model plus an async callable taking an
instance of it. Everything is checked at registration time, so dispatch is a
dictionary lookup followed by argument validation.

Example:
    >>> registry = OperationRegistry()
    >>> registry.register(
    ...     "bugsnag.get_error", "Get full details on an error, including its latest event",
    ...     GetErrorParams, client.get_error_op,
    ... )
    >>> result = await registry.execute("bugsnag.get_error", {"error_id": "abc"})
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from saasbridge.foundation.errors import AdapterError, AdapterException, Err, ErrorKind, Ok, Result
from saasbridge.runtime.observability import get_logger, log_context

OPERATION_NAME = re.compile(r"^[a-z][a-z0-9_]*\.[a-z][a-z0-9_]*$")
MIN_DESCRIPTION_LENGTH = 10

Handler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Operation:
    name: str
    description: str
    params_model: type[BaseModel]
    handler: Handler

    @property
    def backend(self) -> str:
        return self.name.split(".", 1)[0]


class OperationRegistry:
    """Name -> typed handler table with validated registration and Result dispatch."""

    __slots__ = ("_operations", "_log")

    def __init__(self) -> None:
        self._operations: dict[str, Operation] = {}
        self._log = get_logger("registry")

    def register(
        self,
        name: str,
        description: str,
        params_model: type[BaseModel],
        handler: Handler,
    ) -> Operation:
        """Register an operation. Raises ValueError/TypeError on an invalid definition."""
        if not OPERATION_NAME.match(name):
            raise ValueError(f"Operation name '{name}' must look like 'backend.operation_name'.")
        if name in self._operations:
            raise ValueError(f"Operation '{name}' already registered. Use unregister() first.")
        if len(description.strip()) < MIN_DESCRIPTION_LENGTH:
            raise ValueError(f"Operation '{name}' description too short.")
        if not (isinstance(params_model, type) and issubclass(params_model, BaseModel)):
            raise TypeError(f"Operation '{name}' params model must be a pydantic BaseModel subclass.")
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Operation '{name}' handler must be an async function.")
        op = Operation(name, description.strip(), params_model, handler)
        self._operations[name] = op
        return op

    def operation(self, name: str, description: str, params_model: type[BaseModel]) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            self.register(name, description, params_model, handler)
            return handler
        return decorator

    def unregister(self, name: str) -> bool:
        return self._operations.pop(name, None) is not None

    def get(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def names(self, backend: str | None = None) -> list[str]:
        return sorted(n for n, op in self._operations.items() if backend is None or op.backend == backend)

    def __contains__(self, name: str) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations.values())

    async def execute(self, name: str, args: dict[str, Any] | BaseModel) -> Result[Any, AdapterError]:
        """Validate `args` against the operation's params model and run its handler.

        Adapter failures come back as Err(AdapterError); anything else propagates.
        Log entries emitted while the handler runs carry the operation name.
        """
        op = self._operations.get(name)
        if op is None:
            return Err(AdapterError(
                backend=name.split(".", 1)[0] or "registry",
                message=f"Operation '{name}' not found in registry",
                kind=ErrorKind.NOT_FOUND,
            ))
        try:
            params = args if isinstance(args, op.params_model) else op.params_model.model_validate(
                args.model_dump() if isinstance(args, BaseModel) else args
            )
        except PydanticValidationError as e:
            return Err(AdapterError(backend=op.backend, message=f"Invalid parameters: {e}", kind=ErrorKind.VALIDATION))

        with log_context(operation=name):
            try:
                value = await op.handler(params)
            except AdapterException as e:
                self._log.info("operation failed", kind=e.error.kind.value)
                return Err(e.error)
        return Ok(value)
