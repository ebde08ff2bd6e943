"""
Request URL construction.

A SafeURL keeps two renderings of the same URL: the one actually requested,
which carries the ``token`` query parameter, and the one shown in logs and
errors, where the token value is blank.
"""

import time
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote

from .errors import ValidationError
from .types import ServiceTopology, TrustTier


@dataclass(frozen=True)
class SafeURL:
    """Credential-bearing request URL plus its redacted display form."""

    request_url: str
    display_url: str

    @classmethod
    def of(cls, base_url: str, token: Optional[str] = None) -> "SafeURL":
        """Append ``token=<token>`` to ``base_url``; the display form keeps ``token=``."""
        separator = "&" if "?" in base_url else "?"
        blank = f"{base_url}{separator}token="
        if not token:
            return cls(blank, blank)
        return cls(blank + quote(token, safe=""), blank)

    @classmethod
    def direct(cls, url: str) -> "SafeURL":
        """A URL that carries no token at all."""
        return cls(url, url)

    def __str__(self) -> str:
        return self.display_url

    def __repr__(self) -> str:
        return f"SafeURL({self.display_url!r})"


def current_timestamp() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def select_host_and_token(
    tier: TrustTier,
    topology: ServiceTopology,
    master_token: Optional[str] = None,
    limited_token: Optional[str] = None,
    force_https: bool = False,
) -> Tuple[str, Optional[str]]:
    """
    Decide which host to call and which token to send for a trust tier.

    FULL always uses the secure host with the master token (or none).
    READ_ONLY prefers the fast host with the limited token and otherwise
    behaves exactly like FULL. NONE uses the secure host with no token.
    """
    if tier == TrustTier.READ_ONLY:
        if limited_token:
            return topology.fast_host(force_https), limited_token
        tier = TrustTier.FULL

    if tier == TrustTier.FULL:
        return topology.secure_host, master_token or None
    if tier == TrustTier.NONE:
        return topology.secure_host, None

    raise ValidationError(f"Unknown trust tier: {tier!r}")


def build_url(
    host: str,
    path: str,
    token: Optional[str],
    timestamp: Optional[int] = None,
    include_token: bool = True,
) -> SafeURL:
    """
    Build a SafeURL for ``path`` on ``host``.

    A ``timestamp`` parameter is always appended so intermediaries never serve
    a cached answer. ``include_token=False`` leaves the token parameter out.
    """
    if not path or not path.startswith("/"):
        raise ValidationError(f"Endpoint path must start with '/': {path!r}")

    stamp = current_timestamp() if timestamp is None else timestamp
    separator = "&" if "?" in path else "?"
    base = f"{host.rstrip('/')}{path}{separator}timestamp={stamp}"

    if not include_token:
        return SafeURL.direct(base)
    return SafeURL.of(base, token)
