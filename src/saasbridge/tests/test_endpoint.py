"""Tests for tenant base URL resolution."""

import pytest

from saasbridge.adapters import EndpointResolver
from saasbridge.foundation.errors import ErrorKind, InvalidURL

HUB = "bugsnag.smartbear.com"
DEFAULT = "bugsnag.com"


@pytest.fixture
def resolver() -> EndpointResolver:
    return EndpointResolver(hub_prefix="00000", hub_domain=HUB, default_domain=DEFAULT)


@pytest.mark.parametrize("key", ["00000", "00000abcdef", "00000" + "f" * 27])
def test_hub_prefixed_key_routes_to_hub(resolver: EndpointResolver, key: str) -> None:
    assert resolver.resolve("api", key) == f"https://api.{HUB}"


@pytest.mark.parametrize("key", [None, "", "abcdef", "0000abc", "x00000"])
def test_other_keys_route_to_default(resolver: EndpointResolver, key: str | None) -> None:
    assert resolver.resolve("api", key) == f"https://api.{DEFAULT}"


def test_subdomain_is_used_verbatim(resolver: EndpointResolver) -> None:
    assert resolver.resolve("app", "00000abc") == f"https://app.{HUB}"
    assert resolver.resolve("app") == f"https://app.{DEFAULT}"


def test_known_domain_override_discards_port_and_path(resolver: EndpointResolver) -> None:
    assert resolver.resolve("api", "anything", f"https://staging.{HUB}:8080/x") == f"https://api.{HUB}"


def test_known_domain_override_ignores_key_prefix(resolver: EndpointResolver) -> None:
    # The override's domain decides, not the key.
    assert resolver.resolve("api", "00000abc", f"http://user:pw@eu.{DEFAULT}/path?q=1#f") == f"https://api.{DEFAULT}"


def test_exact_known_domain_override(resolver: EndpointResolver) -> None:
    assert resolver.resolve("app", None, f"https://{HUB}") == f"https://app.{HUB}"
    assert resolver.resolve("app", None, f"https://{DEFAULT}") == f"https://app.{DEFAULT}"


def test_custom_domain_returned_untouched(resolver: EndpointResolver) -> None:
    assert resolver.resolve("api", "key", "https://my.own.host/x?y=1") == "https://my.own.host/x?y=1"


def test_lookalike_domain_is_custom(resolver: EndpointResolver) -> None:
    override = "https://notbugsnag.com:9000/api"
    assert resolver.resolve("api", None, override) == override


def test_resolution_is_deterministic(resolver: EndpointResolver) -> None:
    results = {resolver.resolve("api", "00000k", "https://a.example.org/p") for _ in range(5)}
    assert results == {"https://a.example.org/p"}


@pytest.mark.parametrize("override", ["not a url", "bugsnag.com", "https://host:notaport/x"])
def test_unparsable_override_raises_invalid_url(resolver: EndpointResolver, override: str) -> None:
    with pytest.raises(InvalidURL) as exc_info:
        resolver.resolve("api", None, override)
    assert exc_info.value.error.kind is ErrorKind.VALIDATION
