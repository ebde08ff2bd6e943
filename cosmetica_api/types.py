"""
Cosmetica API Type Definitions

Configuration, topology, credential and outcome types shared by the client,
the handshake and the transport.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union
from urllib.parse import urlparse

from .errors import ApplicationError, ConfigurationError, FatalServerError, TransportError


T = TypeVar("T")

DEFAULT_BOOTSTRAP_URL = "http://cosmetica.cc/getapi"
DEFAULT_SESSION_JOIN_URL = "https://sessionserver.mojang.com/session/minecraft/join"
DEFAULT_TIMEOUT_SECONDS = 20.0

VERIFY_FOR_AUTH_TOKENS_PATH = "/client/verifyforauthtokens"
IDENTITY_KEY_PATH = "/key"
IDENTITY_VERIFY_PATH = "/verify"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class CosmeticaConfig:
    """Client configuration."""

    # Well-known discovery URL; switched to https when force_https is set
    bootstrap_url: str = DEFAULT_BOOTSTRAP_URL
    # File the raw discovery body is persisted to (None disables the cache)
    cache_path: Optional[str] = None
    # Serve fast-insecure traffic over https too
    force_https: bool = False
    # Request timeout in seconds, applied to connect/read/write/pool
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    # Identity provider session-join endpoint
    session_join_url: str = DEFAULT_SESSION_JOIN_URL
    # Optional client name sent on token exchange
    client_name: Optional[str] = None
    user_agent: Optional[str] = None
    # Custom headers to include in requests
    headers: Optional[Dict[str, str]] = None
    # Enable debug logging (default: False)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "CosmeticaConfig":
        """Create a configuration from ``COSMETICA_*`` environment variables.

        Raises:
            ConfigurationError: If a value is present but invalid.
        """
        timeout_raw = os.environ.get("COSMETICA_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ConfigurationError(f"COSMETICA_TIMEOUT is not a number: {timeout_raw}")

        return cls(
            bootstrap_url=os.environ.get("COSMETICA_BOOTSTRAP_URL", DEFAULT_BOOTSTRAP_URL),
            cache_path=os.environ.get("COSMETICA_CACHE_PATH") or None,
            force_https=os.environ.get("COSMETICA_FORCE_HTTPS", "").lower() in _TRUTHY,
            timeout=timeout,
            client_name=os.environ.get("COSMETICA_CLIENT") or None,
            debug=os.environ.get("COSMETICA_DEBUG", "").lower() in _TRUTHY,
        ).validate()

    def validate(self) -> "CosmeticaConfig":
        """Check values for consistency, returning self."""
        parsed = urlparse(self.bootstrap_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Invalid bootstrap_url: {self.bootstrap_url}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive: {self.timeout}")
        return self


@dataclass(frozen=True)
class ServiceTopology:
    """Hosts advertised by bootstrap discovery."""

    secure_host: str
    fast_insecure_host: str
    identity_api_host: str
    website_host: str
    message: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceTopology":
        """Create from the ``/getapi`` payload."""
        api = str(data["api"]).rstrip("/")
        return cls(
            secure_host=api,
            fast_insecure_host=with_scheme(api, "http"),
            identity_api_host=str(data["auth-api"]).rstrip("/"),
            website_host=str(data["website"]).rstrip("/"),
            message=str(data["message"]),
        )

    def fast_host(self, force_https: bool) -> str:
        """The fast-insecure host, upgraded to https when forced."""
        if force_https:
            return with_scheme(self.fast_insecure_host, "https")
        return self.fast_insecure_host


def with_scheme(url: str, scheme: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme:
        return f"{scheme}://{url}"
    return parsed._replace(scheme=scheme).geturl()


class TrustTier(str, Enum):
    """Minimum credential strength an endpoint requires."""
    NONE = "none"
    READ_ONLY = "read_only"
    FULL = "full"


class CredentialKind(str, Enum):
    NONE = "none"
    LIMITED = "limited"
    MASTER = "master"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class Credential:
    """A tagged token value."""

    kind: CredentialKind
    token: Optional[str] = None

    @classmethod
    def none(cls) -> "Credential":
        return cls(CredentialKind.NONE)

    @classmethod
    def limited(cls, token: str) -> "Credential":
        return cls(CredentialKind.LIMITED, token)

    @classmethod
    def master(cls, token: str) -> "Credential":
        return cls(CredentialKind.MASTER, token)

    @classmethod
    def temporary(cls, token: str) -> "Credential":
        return cls(CredentialKind.TEMPORARY, token)

    def __repr__(self) -> str:
        # tokens never appear in reprs
        return f"Credential({self.kind.value})"


@dataclass(frozen=True)
class LoginInfo:
    """Information retrieved on login."""

    is_new_player: bool
    has_special_cape: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginInfo":
        return cls(
            is_new_player=bool(data.get("is_new_player", False)),
            has_special_cape=bool(data.get("has_special_cape", False)),
        )


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class Value(Generic[T]):
    """A successful response."""

    value: T
    source_url: str

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class RecoverableError:
    """A transport fault or an application error embedded in the response."""

    kind: str
    message: str
    source_url: str
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False

    def to_exception(self) -> Union[TransportError, ApplicationError]:
        if self.kind == "transport":
            return TransportError(self.message, self.source_url)
        return ApplicationError(self.message, self.source_url, self.status_code or 200)

    def unwrap(self) -> Any:
        raise self.to_exception()


@dataclass(frozen=True)
class FatalError:
    """A 5xx response with a non-JSON body."""

    status_code: int
    source_url: str

    @property
    def ok(self) -> bool:
        return False

    def to_exception(self) -> FatalServerError:
        return FatalServerError(self.status_code, self.source_url)

    def unwrap(self) -> Any:
        raise self.to_exception()


Outcome = Union[Value[T], RecoverableError, FatalError]
