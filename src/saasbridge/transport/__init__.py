"""HTTP transport: auth strategies, tenant client, decoded responses."""

from .http import (
    ApiResponse,
    AuthStrategy,
    BasicAuth,
    BearerAuth,
    HttpConfig,
    HttpTransport,
    NoAuth,
    TokenAuth,
)

__all__ = [
    "ApiResponse",
    "AuthStrategy",
    "BasicAuth",
    "BearerAuth",
    "HttpConfig",
    "HttpTransport",
    "NoAuth",
    "TokenAuth",
]
