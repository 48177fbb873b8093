"""Physical base URL resolution for a tenant's logical subdomains."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from saasbridge.foundation.errors import InvalidURL


@dataclass(frozen=True, slots=True)
class EndpointResolver:
    """Decide the base URL for `subdomain` given a tenant key and optional override.

    Without an override, keys starting with `hub_prefix` route to the hub
    domain and everything else (including no key) to the default domain.
    An override on either known domain, or any subdomain of one, is
    normalized to `https://{subdomain}.{domain}`; any other override is a
    custom domain and is returned unmodified.

    Example:
        >>> resolver = EndpointResolver("00000", "bugsnag.smartbear.com", "bugsnag.com")
        >>> resolver.resolve("api", "00000abc")
        'https://api.bugsnag.smartbear.com'
        >>> resolver.resolve("api", None, "https://bugsnag.internal.corp/api")
        'https://bugsnag.internal.corp/api'
    """

    hub_prefix: str
    hub_domain: str
    default_domain: str

    def resolve(self, subdomain: str, tenant_key: str | None = None, override: str | None = None) -> str:
        if not override:
            domain = self.hub_domain if tenant_key and tenant_key.startswith(self.hub_prefix) else self.default_domain
            return f"https://{subdomain}.{domain}"

        host = self._host_of(override)
        # Hub first: it is the more specific of the two known domains.
        for domain in (self.hub_domain, self.default_domain):
            if host == domain or host.endswith(f".{domain}"):
                return f"https://{subdomain}.{domain}"
        return override

    @staticmethod
    def _host_of(url: str) -> str:
        try:
            parts = urlsplit(url)
            host = parts.hostname
            parts.port  # noqa: B018 - raises ValueError on a malformed port
        except ValueError as e:
            raise InvalidURL(url, str(e)) from e
        if not parts.scheme or not host:
            raise InvalidURL(url, "expected an absolute URL with a host")
        return host.rstrip(".")
