"""
Cosmetica API Client

Synchronous client for the Cosmetica web API. Builds credential-safe request
URLs for each trust tier, performs token exchanges and returns every response
as an Outcome.
"""

import logging
from typing import Any, Dict, Optional, Union

import httpx

from .errors import ValidationError
from .handshake import Handshake, PlayerId
from .storage import CredentialStore
from .topology import ServiceContext, default_context
from .transport import RequestExecutor, UrlLogger
from .types import (
    CosmeticaConfig,
    Credential,
    LoginInfo,
    Outcome,
    RecoverableError,
    TrustTier,
    Value,
)
from .urls import SafeURL, build_url, select_host_and_token


logger = logging.getLogger("cosmetica_api")


class CosmeticaClient:
    """
    Cosmetica API Client - synchronous SDK entry point.

    One instance per logical player session. Credentials are mutated only by
    a successful token exchange; do not share an instance across threads
    while an exchange is in flight.
    """

    def __init__(
        self,
        context: Optional[ServiceContext] = None,
        credentials: Optional[Union[CredentialStore, Credential]] = None,
        config: Optional[CosmeticaConfig] = None,
    ) -> None:
        """Initialize the client. Resolves the service topology if needed."""
        self._context = context or default_context()
        self._config = (config or self._context.config).validate()
        # Fails here, not on first request, when discovery is impossible
        self._context.resolve()

        if isinstance(credentials, Credential):
            credentials = CredentialStore.from_credential(credentials)
        self._credentials = credentials or CredentialStore()

        self._debug = self._config.debug
        self._force_https: Optional[bool] = None
        self._login_info: Optional[LoginInfo] = None

        headers = dict(self._config.headers or {})
        if self._config.user_agent:
            headers["User-Agent"] = self._config.user_agent

        # HTTP executor
        self._executor = RequestExecutor(
            timeout=self._config.timeout,
            headers=headers,
            transport=self._context.transport,
        )
        self._handshake = Handshake(self._context, self._executor, self._credentials)

        self._log(f"CosmeticaClient initialized ({self._credentials!r})")

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[Cosmetica] {message}", *args)

    # =========================================================================
    # Authentication Methods
    # =========================================================================

    @property
    def login_info(self) -> Optional[LoginInfo]:
        """Login information recorded by the first successful token exchange."""
        return self._login_info

    def exchange_tokens(
        self, player_id: PlayerId, client_name: Optional[str] = None
    ) -> Outcome[LoginInfo]:
        """
        Exchange the temporary token held by this instance for master and limited tokens.

        The temporary token is kept after a transport or fatal failure so the
        call can be retried, and discarded once the server accepts or rejects it.

        Raises:
            ValidationError: If no temporary token is held.
        """
        temporary_token = self._credentials.temporary_token
        if temporary_token is None:
            raise ValidationError("No temporary token to exchange; call set_auth_token first")

        self._log(f"Exchanging tokens for {player_id}")
        outcome = self._handshake.exchange_tokens(
            temporary_token, player_id, client_name or self._config.client_name
        )
        if isinstance(outcome, Value):
            self._record_login(outcome.value)
        elif isinstance(outcome, RecoverableError) and outcome.kind == "application":
            self._credentials.clear_tokens()
        return outcome

    def identity_exchange(
        self,
        access_token: str,
        username: str,
        player_id: PlayerId,
        client_name: Optional[str] = None,
    ) -> Outcome[LoginInfo]:
        """Authenticate through the identity provider and store the resulting tokens."""
        self._log(f"Identity exchange for {username}")
        outcome = self._handshake.identity_exchange(
            access_token, username, player_id, client_name or self._config.client_name
        )
        if isinstance(outcome, Value):
            self._record_login(outcome.value)
        return outcome

    def set_auth_token(self, token: str) -> None:
        """Set a new temporary token. Master and limited tokens are dropped until exchange_tokens."""
        if not token:
            raise ValidationError("token must not be empty")
        self._credentials.set_temporary_token(token)

    def _record_login(self, info: LoginInfo) -> None:
        if self._login_info is None:
            self._login_info = info
        self._log(f"Login successful (new_player={info.is_new_player})")

    # =========================================================================
    # State Methods
    # =========================================================================

    def is_fully_authenticated(self) -> bool:
        """Check if this instance holds a master token."""
        return self._credentials.master_token is not None

    def is_authenticated(self) -> bool:
        """Check if this instance holds a master or limited token."""
        return self.is_fully_authenticated() or self._credentials.limited_token is not None

    @property
    def master_token(self) -> Optional[str]:
        """The master token, for the rare caller that must hand it on directly."""
        return self._credentials.master_token

    @property
    def context(self) -> ServiceContext:
        return self._context

    def is_https_forced(self) -> bool:
        if self._force_https is None:
            return self._context.force_https
        return self._force_https

    def set_force_https(self, force_https: Optional[bool]) -> None:
        """Override the context's force-HTTPS flag for this instance (None to inherit)."""
        self._force_https = force_https

    def set_request_timeout(self, timeout: float) -> None:
        """Set the per-request timeout, in seconds."""
        if timeout <= 0:
            raise ValidationError(f"timeout must be positive: {timeout}")
        self._executor.timeout = timeout

    def set_url_logger(self, url_logger: Optional[UrlLogger]) -> None:
        """Pass a callable invoked with the display URL of every request."""
        self._executor.url_logger = url_logger

    # =========================================================================
    # Request Methods
    # =========================================================================

    def build_url(
        self,
        path: str,
        tier: TrustTier = TrustTier.FULL,
        timestamp: Optional[int] = None,
    ) -> SafeURL:
        """Build the URL for ``path`` with the host and token the tier calls for."""
        if not isinstance(tier, TrustTier):
            raise ValidationError(f"Unknown trust tier: {tier!r}")

        host, token = select_host_and_token(
            tier,
            self._context.resolve(),
            master_token=self._credentials.master_token,
            limited_token=self._credentials.limited_token,
            force_https=self.is_https_forced(),
        )
        return build_url(host, path, token, timestamp)

    def get(
        self,
        path: str,
        tier: TrustTier = TrustTier.FULL,
        timestamp: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Outcome[Any]:
        """GET ``path`` and classify the response."""
        return self._executor.execute(self.build_url(path, tier, timestamp), "GET", timeout=timeout)

    def post(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        tier: TrustTier = TrustTier.FULL,
        timestamp: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Outcome[Any]:
        """POST ``body`` as JSON to ``path`` and classify the response."""
        return self._executor.execute(
            self.build_url(path, tier, timestamp), "POST", body or {}, timeout
        )

    @staticmethod
    def require_lookup_key(player_id: Optional[PlayerId], username: Optional[str]) -> None:
        """Reject lookups that name neither a player id nor a username."""
        if not player_id and not username:
            raise ValidationError("Both player_id and username are missing")

    def close(self) -> None:
        """Close the HTTP client."""
        self._executor.close()

    def __enter__(self) -> "CosmeticaClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def from_temp_token(
        cls,
        temporary_token: str,
        player_id: PlayerId,
        context: Optional[ServiceContext] = None,
        client_name: Optional[str] = None,
    ) -> "CosmeticaClient":
        """
        Create a client by exchanging a temporary token.

        Raises:
            TransportError, ApplicationError, FatalServerError: If the exchange fails.
        """
        client = cls(context, Credential.temporary(temporary_token))
        try:
            client.exchange_tokens(player_id, client_name).unwrap()
        except Exception:
            client.close()
            raise
        return client

    @classmethod
    def from_identity_token(
        cls,
        access_token: str,
        username: str,
        player_id: PlayerId,
        context: Optional[ServiceContext] = None,
        client_name: Optional[str] = None,
    ) -> "CosmeticaClient":
        """Create a client through the identity-provider exchange."""
        client = cls(context)
        try:
            client.identity_exchange(access_token, username, player_id, client_name).unwrap()
        except Exception:
            client.close()
            raise
        return client

    @classmethod
    def from_tokens(
        cls,
        master_token: Optional[str] = None,
        limited_token: Optional[str] = None,
        context: Optional[ServiceContext] = None,
    ) -> "CosmeticaClient":
        """Create a client from tokens obtained earlier."""
        return cls(context, CredentialStore(master_token, limited_token))

    @classmethod
    def unauthenticated(cls, context: Optional[ServiceContext] = None) -> "CosmeticaClient":
        """Create a client without credentials."""
        return cls(context)


# =============================================================================
# Factory Functions
# =============================================================================

def create_client(
    context: Optional[ServiceContext] = None,
    master_token: Optional[str] = None,
    limited_token: Optional[str] = None,
) -> CosmeticaClient:
    """Create a new client from stored tokens (or none)."""
    return CosmeticaClient.from_tokens(master_token, limited_token, context)


def create_context(
    config: Optional[CosmeticaConfig] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ServiceContext:
    """Create and initialize a service context."""
    return ServiceContext(config, transport).initialize()
