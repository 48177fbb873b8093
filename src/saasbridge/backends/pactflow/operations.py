"""Registry bindings for contract testing operations."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from saasbridge.foundation.registry import OperationRegistry

from .client import MatrixSelector, PactflowClient


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProviderStatesParams(_Params):
    provider: Annotated[str, Field(min_length=1)]


class CanIDeployParams(_Params):
    pacticipant: Annotated[str, Field(min_length=1)]
    version: Annotated[str, Field(min_length=1)]
    environment: Annotated[str, Field(min_length=1)]


class MatrixParams(_Params):
    q: Annotated[list[MatrixSelector], Field(min_length=1, max_length=2)]
    latestby: Literal["cvp", "cvpv"] | None = None
    limit: Annotated[int, Field(ge=1, le=1000)] | None = None


def register_operations(registry: OperationRegistry, client: PactflowClient) -> None:
    """Register every contract testing operation against `client`."""

    @registry.operation(
        "pactflow.get_provider_states",
        "List the provider states the consumers of a provider expect",
        ProviderStatesParams,
    )
    async def get_provider_states(p: ProviderStatesParams) -> Any:
        return await client.get_provider_states(p.provider)

    @registry.operation(
        "pactflow.can_i_deploy",
        "Check whether a pacticipant version is safe to deploy to an environment",
        CanIDeployParams,
    )
    async def can_i_deploy(p: CanIDeployParams) -> Any:
        return await client.can_i_deploy(p.pacticipant, p.version, p.environment)

    @registry.operation(
        "pactflow.get_matrix",
        "Get the verification matrix for one or two pacticipant selectors",
        MatrixParams,
    )
    async def get_matrix(p: MatrixParams) -> Any:
        return await client.get_matrix(list(p.q), latestby=p.latestby, limit=p.limit)
