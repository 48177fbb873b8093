"""HTTP transport shared by every backend adapter.

Wraps an httpx.AsyncClient per tenant and turns every outcome into either an
ApiResponse or an AdapterException whose kind is fixed here, where the
status code and body are known:

- non-2xx status                  -> TransportError (status_code set)
- connection/timeout failure      -> TransportError (status_code None)
- 2xx with an undecodable body    -> ParseFailure
- 2xx with an empty body          -> ApiResponse(body=None)

Example:
    >>> transport = HttpTransport(HttpConfig(
    ...     base_url="https://api.bugsnag.com",
    ...     auth=TokenAuth(token="secret"),
    ... ), backend="bugsnag")
    >>> response = await transport.get("/user/organizations")
"""

from __future__ import annotations

import base64
from typing import Annotated, Any, Literal

import httpx
import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    SecretStr,
    Tag,
    computed_field,
    field_serializer,
)

from saasbridge.foundation.errors import InvalidURL, ParseFailure, TransportError
from saasbridge.runtime.observability import get_logger

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


# ─────────────────────────────────────────────────────────────────────────────
# Authentication Strategies
# ─────────────────────────────────────────────────────────────────────────────

class NoAuth(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["none"] = "none"

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        return headers


class TokenAuth(BaseModel):
    """`Authorization: token <value>` scheme used by the error monitoring API."""

    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["token"] = "token"
    token: SecretStr

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers["Authorization"] = f"token {self.token.get_secret_value()}"
        return headers

    @field_serializer("token", when_used="json")
    def _mask_token(self, v: SecretStr) -> str:
        return "***"


class BearerAuth(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["bearer"] = "bearer"
    token: SecretStr

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"
        return headers

    @field_serializer("token", when_used="json")
    def _mask_token(self, v: SecretStr) -> str:
        secret = v.get_secret_value()
        return f"{secret[:4]}...{secret[-4:]}" if len(secret) > 8 else "***"


class BasicAuth(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    auth_type: Literal["basic"] = "basic"
    username: Annotated[str, Field(min_length=1)]
    password: SecretStr

    def apply(self, headers: dict[str, str]) -> dict[str, str]:
        credentials = base64.b64encode(
            f"{self.username}:{self.password.get_secret_value()}".encode()
        ).decode()
        headers["Authorization"] = f"Basic {credentials}"
        return headers

    @field_serializer("password", when_used="json")
    def _mask_password(self, v: SecretStr) -> str:
        return "***"


def _auth_discriminator(v: dict[str, object] | BaseModel) -> str:
    if isinstance(v, dict):
        return str(v.get("auth_type", "none"))
    return getattr(v, "auth_type", "none")


AuthStrategy = Annotated[
    Annotated[NoAuth, Tag("none")]
    | Annotated[TokenAuth, Tag("token")]
    | Annotated[BearerAuth, Tag("bearer")]
    | Annotated[BasicAuth, Tag("basic")],
    Discriminator(_auth_discriminator),
]


# ─────────────────────────────────────────────────────────────────────────────
# Configuration & Response
# ─────────────────────────────────────────────────────────────────────────────

class HttpConfig(BaseModel):
    """Per-tenant transport configuration. Immutable once created.

    Attributes:
        base_url: Resolved base URL; relative request paths are joined to it.
        auth: Credential header strategy, applied to every request.
        default_headers: Headers added to every request.
        timeout: Request timeout in seconds.
        strip_links: Drop string values in response bodies that point back
            into base_url (API self-links are noise for the caller).
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    base_url: Annotated[str, Field(min_length=1)]
    auth: AuthStrategy = Field(default_factory=NoAuth)
    default_headers: dict[str, str] = Field(default_factory=dict)
    timeout: Annotated[float, Field(ge=0.1, le=300.0)] = 30.0
    strip_links: bool = False


class ApiResponse(BaseModel):
    """Decoded response with pagination metadata lifted out of the headers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: Annotated[int, Field(ge=100, le=599)]
    url: str
    body: Any = Field(default=None, repr=False)
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    next_url: str | None = None
    total_count: int | None = None

    @computed_field
    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


# ─────────────────────────────────────────────────────────────────────────────
# Transport
# ─────────────────────────────────────────────────────────────────────────────

class HttpTransport:
    """Async HTTP client bound to one tenant's base URL and credential.

    Args:
        config: Tenant transport configuration
        backend: Backend name recorded on every raised error
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    __slots__ = ("_config", "_backend", "_client", "_log")

    def __init__(
        self,
        config: HttpConfig,
        *,
        backend: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._backend = backend
        headers = config.auth.apply(dict(config.default_headers))
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=config.timeout,
            transport=transport,
            follow_redirects=True,
        )
        self._log = get_logger("transport", backend=backend)

    @property
    def config(self) -> HttpConfig:
        return self._config

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def url_for(self, path: str) -> str:
        """Join a relative path to the base URL; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────

    async def request(
        self,
        method: HttpMethod,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
    ) -> ApiResponse:
        url = self.url_for(path)
        content = orjson.dumps(json) if json is not None else None
        headers = {"Content-Type": "application/json"} if content is not None else None
        try:
            response = await self._client.request(
                method, url, params=_clean_params(params), content=content, headers=headers,
            )
        except httpx.InvalidURL as e:
            raise InvalidURL(url, str(e), backend=self._backend) from e
        except httpx.TimeoutException as e:
            self._log.warning("request timed out", method=method, url=url)
            raise TransportError(
                f"{method} {url} timed out after {self._config.timeout}s", backend=self._backend,
            ) from e
        except httpx.TransportError as e:
            self._log.warning("request failed", method=method, url=url, error=str(e))
            raise TransportError(f"{method} {url} failed: {e}", backend=self._backend) from e

        self._log.debug("response received", method=method, url=url, status=response.status_code)
        if not response.is_success:
            raise TransportError(
                f"Request failed with status {response.status_code}: {response.text}",
                backend=self._backend,
                status_code=response.status_code,
                details=f"{method} {url}",
            )
        return ApiResponse(
            status_code=response.status_code,
            url=str(response.url),
            body=self._decode(response, method, url),
            headers=dict(response.headers),
            next_url=response.links.get("next", {}).get("url"),
            total_count=_int_header(response.headers.get("X-Total-Count")),
        )

    async def get(self, path: str, *, params: Any = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def put(self, path: str, *, json: Any = None) -> ApiResponse:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, *, json: Any = None) -> ApiResponse:
        return await self.request("PATCH", path, json=json)

    async def post(self, path: str, *, json: Any = None) -> ApiResponse:
        return await self.request("POST", path, json=json)

    async def request_all(self, path: str, *, params: Any = None) -> ApiResponse:
        """GET a list endpoint and follow `Link: rel="next"` until exhausted."""
        first = await self.get(path, params=params)
        items: list[Any] = list(first.body or [])
        next_url = first.next_url
        while next_url:
            page = await self.get(next_url)
            items.extend(page.body or [])
            next_url = page.next_url
        return first.model_copy(update={"body": items, "next_url": None, "total_count": len(items)})

    # ─────────────────────────────────────────────────────────────────
    # Decoding
    # ─────────────────────────────────────────────────────────────────

    def _decode(self, response: httpx.Response, method: str, url: str) -> Any:
        raw = response.content
        if not raw.strip():
            return None
        try:
            body = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._log.warning("undecodable success body", method=method, url=url, status=response.status_code)
            raise ParseFailure(
                f"{method} {url} returned {response.status_code} with an undecodable body: {e}",
                raw_body=response.text,
                backend=self._backend,
                status_code=response.status_code,
            ) from e
        if self._config.strip_links:
            _strip_links(body, self.base_url)
        return body


def _clean_params(params: Any) -> Any:
    """Drop None values; stringify booleans the way the APIs expect."""
    if params is None:
        return None
    pairs = params.items() if hasattr(params, "items") else params
    cleaned = []
    for key, value in pairs:
        if value is None:
            continue
        cleaned.append((key, str(value).lower() if isinstance(value, bool) else value))
    return cleaned


def _int_header(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _strip_links(node: Any, prefix: str) -> None:
    """Remove, in place, every string value that starts with prefix."""
    if isinstance(node, dict):
        for key in [k for k, v in node.items() if isinstance(v, str) and v.startswith(prefix)]:
            del node[key]
        for value in node.values():
            _strip_links(value, prefix)
    elif isinstance(node, list):
        for item in node:
            _strip_links(item, prefix)
