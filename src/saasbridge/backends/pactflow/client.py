"""Contract testing backend: provider states, can-i-deploy and the verification matrix.

Works against PactFlow (bearer token) and a self-hosted Pact Broker (basic auth).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from saasbridge.foundation.config import AdapterSettings, HttpSettings, PactflowSettings
from saasbridge.foundation.errors import ConfigurationError, ValidationError
from saasbridge.transport import AuthStrategy, BasicAuth, BearerAuth, HttpConfig, HttpTransport, NoAuth

BACKEND = "pactflow"


class MatrixSelector(BaseModel):
    """One `q[]` selector: a pacticipant plus optional version qualifiers."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    pacticipant: Annotated[str, Field(min_length=1)]
    version: str | None = None
    branch: str | None = None
    environment: str | None = None
    latest: bool | None = None
    tag: str | None = None
    main_branch: bool | None = Field(default=None, alias="mainBranch")

    def params(self) -> list[tuple[str, Any]]:
        return [
            ("q[]pacticipant", self.pacticipant),
            ("q[]version", self.version),
            ("q[]branch", self.branch),
            ("q[]environment", self.environment),
            ("q[]latest", self.latest),
            ("q[]tag", self.tag),
            ("q[]mainBranch", self.main_branch),
        ]


class MatrixQuery(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    q: Annotated[list[MatrixSelector], Field(min_length=1, max_length=2)]
    latestby: Literal["cvp", "cvpv"] | None = None
    limit: Annotated[int, Field(ge=1, le=1000)] | None = None

    def params(self) -> list[tuple[str, Any]]:
        params: list[tuple[str, Any]] = [("latestby", self.latestby), ("limit", self.limit)]
        for selector in self.q:
            params.extend(selector.params())
        return params

    def query_string(self) -> str:
        """Encode in order; the broker pairs each `q[]` qualifier with the pacticipant before it."""
        pairs = [(k, str(v).lower() if isinstance(v, bool) else v) for k, v in self.params() if v is not None]
        return urlencode(pairs, safe="[]", quote_via=quote)


def _auth(settings: PactflowSettings) -> AuthStrategy:
    if settings.token is not None:
        return BearerAuth(token=settings.token)
    if settings.username and settings.password is not None:
        return BasicAuth(username=settings.username, password=settings.password)
    return NoAuth()


class PactflowClient:
    """One contract testing tenant.

    Example:
        >>> client = PactflowClient(PactflowSettings(base_url="https://acme.pactflow.io", token="..."))
        >>> result = await client.can_i_deploy("checkout", "1.4.2", "production")
        >>> result["summary"]["deployable"]
        True
    """

    name = BACKEND

    def __init__(
        self,
        settings: PactflowSettings,
        *,
        http: HttpSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.base_url:
            raise ConfigurationError("A Pact Broker base URL is required.", backend=BACKEND)
        http = http or HttpSettings()
        self._http = HttpTransport(
            HttpConfig(
                base_url=settings.base_url,
                auth=_auth(settings),
                default_headers={"User-Agent": http.user_agent, "Accept": "application/hal+json"},
                timeout=http.timeout,
            ),
            backend=BACKEND,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: AdapterSettings, **kw: Any) -> PactflowClient:
        return cls(settings.pactflow, http=settings.http, **kw)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_provider_states(self, provider: str) -> Any:
        response = await self._http.get(f"/pacts/provider/{quote(provider, safe='')}/provider-states")
        return response.body

    async def can_i_deploy(self, pacticipant: str, version: str, environment: str) -> Any:
        """Whether `pacticipant` at `version` is safe to deploy to `environment`."""
        params = [("pacticipant", pacticipant), ("version", version), ("environment", environment)]
        return (await self._http.get("/can-i-deploy", params=params)).body

    async def get_matrix(
        self,
        selectors: list[MatrixSelector | dict[str, Any]],
        *,
        latestby: Literal["cvp", "cvpv"] | None = None,
        limit: int | None = None,
    ) -> Any:
        try:
            query = MatrixQuery.model_validate({"q": selectors, "latestby": latestby, "limit": limit})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid matrix query: {e}", backend=BACKEND) from e
        return (await self._http.get(f"/matrix?{query.query_string()}")).body
