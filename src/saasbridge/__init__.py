"""saasbridge - Adapter layer over SaaS backends for a tool-dispatch host.

Each configured backend (error monitoring, test management, contract testing)
becomes a client built on shared components: endpoint resolution, a context
cache, one pagination contract, stability metrics and a write path that
reconciles ambiguous success responses. Operations are exposed through a
registry of typed handlers.

Quick Start:
    >>> from saasbridge import init_backends
    >>>
    >>> backends = await init_backends()          # reads BUGSNAG_*, ZEPHYR_*, PACT_BROKER_*
    >>> result = await backends.registry.execute(
    ...     "bugsnag.list_project_errors", {"sort": "users", "per_page": 10},
    ... )
    >>> result.unwrap()["data_count"]
    10

Direct Client Use:
    >>> from saasbridge.backends import BugsnagClient
    >>> from saasbridge.foundation.config import get_settings
    >>>
    >>> client = BugsnagClient.from_settings(get_settings())
    >>> await client.configure()
    >>> await client.update_error("6863e2af8c857c0a5023b411", "fix")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .adapters import (
    ContextCache,
    EndpointResolver,
    GetInput,
    InputRequest,
    InputResult,
    PageRequest,
    PageResult,
    PaginatedListExecutor,
    ResilientWriter,
    StabilityCalculator,
    UpdateIntent,
    decorate,
)
from .backends import BugsnagClient, PactflowClient, ZephyrClient
from .backends import bugsnag, pactflow, zephyr
from .foundation.config import AdapterSettings, get_settings
from .foundation.errors import (
    AdapterError,
    AdapterException,
    ConfigurationError,
    Err,
    ErrorKind,
    NotFoundError,
    Ok,
    ParseFailure,
    Result,
    TransportError,
    ValidationError,
    VerificationFailure,
)
from .foundation.registry import OperationRegistry
from .io.cache import MemoryCache
from .runtime.observability import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    # Components
    "EndpointResolver",
    "ContextCache",
    "PaginatedListExecutor",
    "PageRequest",
    "PageResult",
    "StabilityCalculator",
    "decorate",
    "ResilientWriter",
    "UpdateIntent",
    "GetInput",
    "InputRequest",
    "InputResult",
    # Backends
    "BugsnagClient",
    "ZephyrClient",
    "PactflowClient",
    # Registry
    "OperationRegistry",
    # Errors
    "ErrorKind",
    "AdapterError",
    "AdapterException",
    "ConfigurationError",
    "NotFoundError",
    "ValidationError",
    "TransportError",
    "ParseFailure",
    "VerificationFailure",
    "Result",
    "Ok",
    "Err",
    # Infrastructure
    "MemoryCache",
    "AdapterSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Convenience
    "Backends",
    "init_backends",
]


@dataclass
class Backends:
    """Configured clients and the registry their operations live in."""

    registry: OperationRegistry
    clients: list[Any] = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


async def init_backends(
    settings: AdapterSettings | None = None,
    *,
    get_input: GetInput | None = None,
    **transports: Any,
) -> Backends:
    """Build every configured backend and register its operations.

    A backend is skipped when its credential is absent. Startup context
    failures are logged, not raised, so the host keeps serving.

    Args:
        settings: Root settings (default: get_settings())
        get_input: Prompt callback forwarded to backends that ask for input
        **transports: Per-backend httpx transport overrides, keyed by backend name

    Example:
        >>> backends = await init_backends(get_input=ask_user)
        >>> backends.registry.names("zephyr")
        ['zephyr.get_project', 'zephyr.get_test_case', ...]
    """
    settings = settings or get_settings()
    configure_logging(settings.logging.format, settings.logging.level)
    log = get_logger("saasbridge")
    registry = OperationRegistry()
    backends = Backends(registry)

    factories = (
        (settings.bugsnag.configured, bugsnag.register_operations,
         lambda: BugsnagClient.from_settings(settings, get_input=get_input, transport=transports.get("bugsnag"))),
        (settings.zephyr.configured, zephyr.register_operations,
         lambda: ZephyrClient.from_settings(settings, transport=transports.get("zephyr"))),
        (settings.pactflow.configured, pactflow.register_operations,
         lambda: PactflowClient.from_settings(settings, transport=transports.get("pactflow"))),
    )
    for configured, register, build in factories:
        if not configured:
            continue
        try:
            client = build()
        except AdapterException as e:
            log.error("backend configuration rejected", backend=e.error.backend, error=str(e))
            continue
        if isinstance(client, BugsnagClient):
            await client.configure()
        register(registry, client)
        backends.clients.append(client)

    log.info("backends initialized", backends=[c.name for c in backends.clients], operations=len(registry))
    return backends
