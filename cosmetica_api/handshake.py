"""
Credential exchange.

Two flows upgrade a player to master + limited tokens:

* the direct exchange trades a single-use temporary token for them;
* the identity exchange proves account ownership to the identity provider
  (the Minecraft session-join protocol) and receives a temporary token,
  then runs the direct exchange.

The identity exchange is an ordered list of HandshakeStep objects. Each step
carries a StepPolicy saying whether its failure aborts the flow or is only
logged.
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import quote
from uuid import UUID

from .errors import (
    ApplicationError,
    CosmeticaError,
    FatalServerError,
    HandshakeError,
    TransportError,
    ValidationError,
)
from .storage import CredentialStore
from .topology import ServiceContext
from .transport import RequestExecutor
from .types import (
    IDENTITY_KEY_PATH,
    IDENTITY_VERIFY_PATH,
    VERIFY_FOR_AUTH_TOKENS_PATH,
    FatalError,
    LoginInfo,
    Outcome,
    RecoverableError,
    Value,
)
from .urls import SafeURL, build_url


logger = logging.getLogger("cosmetica_api")

PlayerId = Union[UUID, str]

SECRET_LENGTH = 16


def server_hash(*parts: bytes) -> str:
    """
    Minecraft session-join digest.

    SHA-1 over the concatenated parts, rendered as a signed two's-complement
    hex number: negative digests get a leading ``-`` and no zero padding.
    """
    digest = hashlib.sha1(b"".join(parts)).digest()
    return format(int.from_bytes(digest, "big", signed=True), "x")


def undashed(player_id: PlayerId) -> str:
    """The player id as 32 hex digits, the form the session server expects."""
    return str(player_id).replace("-", "")


class StepPolicy(str, Enum):
    """What a failing handshake step does to the flow."""
    ABORT = "abort"
    LOG_AND_CONTINUE = "log_and_continue"


@dataclass
class HandshakeState:
    """Values threaded through the identity exchange steps."""

    access_token: str
    username: str
    player_id: PlayerId
    client_name: Optional[str] = None
    public_key: bytes = b""
    secret: bytes = b""
    server_hash: str = ""
    temporary_token: Optional[str] = None
    login_info: Optional[LoginInfo] = None
    exchange_url: str = ""
    skipped: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"HandshakeState(username={self.username!r}, player_id={str(self.player_id)!r})"


@dataclass(frozen=True)
class HandshakeStep:
    name: str
    action: Callable[[HandshakeState], None]
    policy: StepPolicy = StepPolicy.ABORT


def run_steps(steps: List[HandshakeStep], state: HandshakeState) -> HandshakeState:
    """
    Run steps in order.

    A failing ABORT step stops the flow: CosmeticaErrors propagate unchanged
    so callers can tell transport, application and fatal failures apart, and
    anything else is wrapped in HandshakeError. A failing LOG_AND_CONTINUE
    step is logged and recorded in ``state.skipped``.
    """
    for step in steps:
        try:
            step.action(state)
        except Exception as e:
            if step.policy == StepPolicy.LOG_AND_CONTINUE:
                logger.warning("Handshake step %s failed, continuing: %s", step.name, e)
                state.skipped.append(step.name)
                continue
            if isinstance(e, CosmeticaError):
                raise
            raise HandshakeError(step.name, str(e)) from e
    return state


def _as_outcome(error: Union[TransportError, ApplicationError, FatalServerError]) -> Outcome[Any]:
    source_url = error.source_url or ""
    if isinstance(error, TransportError):
        return RecoverableError("transport", error.message, source_url)
    if isinstance(error, ApplicationError):
        return RecoverableError("application", error.reason, source_url, error.status_code)
    return FatalError(error.status_code, source_url)


class Handshake:
    """Performs token exchanges for one client session."""

    def __init__(
        self,
        context: ServiceContext,
        executor: RequestExecutor,
        credentials: CredentialStore,
    ) -> None:
        self._context = context
        self._executor = executor
        self._credentials = credentials

    # =========================================================================
    # Direct exchange
    # =========================================================================

    def exchange_tokens(
        self,
        temporary_token: str,
        player_id: PlayerId,
        client_name: Optional[str] = None,
    ) -> Outcome[LoginInfo]:
        """
        Trade a temporary token for master and limited tokens.

        Replaces the tokens held by the credential store on success. A
        rejected token, an unreachable server and a server fault come back
        as the corresponding Outcome and leave the store untouched.

        Raises:
            ValidationError: If the token or player id is empty.
            HandshakeError: If a successful response lacks the tokens.
        """
        if not temporary_token:
            raise ValidationError("A temporary token is required for token exchange")
        if not player_id:
            raise ValidationError("A player id is required for token exchange")

        path = (
            f"{VERIFY_FOR_AUTH_TOKENS_PATH}?uuid={quote(str(player_id), safe='')}"
            f"&client={quote(client_name or '', safe='')}"
        )
        url = build_url(self._context.secure_host, path, temporary_token)
        outcome = self._executor.execute(url)
        if not isinstance(outcome, Value):
            return outcome

        data = outcome.value
        try:
            master_token = str(data["master_token"])
            limited_token = str(data["limited_token"])
        except (KeyError, TypeError) as e:
            raise HandshakeError("exchange_tokens", f"missing {e} in response") from e

        self._credentials.set_tokens(master_token, limited_token)
        return Value(LoginInfo.from_dict(data), outcome.source_url)

    # =========================================================================
    # Identity-provider exchange
    # =========================================================================

    def identity_exchange(
        self,
        access_token: str,
        username: str,
        player_id: PlayerId,
        client_name: Optional[str] = None,
    ) -> Outcome[LoginInfo]:
        """
        Prove account ownership to the identity provider, then exchange tokens.

        A transport, application or fatal failure in an aborting step comes
        back as the corresponding Outcome; the steps after it do not run.
        """
        if not access_token or not username or not player_id:
            raise ValidationError("access_token, username and player_id are required")

        state = HandshakeState(
            access_token=access_token,
            username=username,
            player_id=player_id,
            client_name=client_name,
        )
        try:
            run_steps(self.identity_steps(), state)
        except (TransportError, ApplicationError, FatalServerError) as e:
            return _as_outcome(e)

        if state.login_info is None:
            raise HandshakeError("exchange_temporary_token", "token exchange did not complete")
        return Value(state.login_info, state.exchange_url)

    def identity_steps(self) -> List[HandshakeStep]:
        # TODO: confirm with the service owners whether a failed session join
        # should abort; the server-side verify step rejects unjoined players anyway.
        return [
            HandshakeStep("fetch_public_key", self._fetch_public_key),
            HandshakeStep("generate_secret", self._generate_secret),
            HandshakeStep("compute_server_hash", self._compute_server_hash),
            HandshakeStep("join_session", self._join_session, StepPolicy.LOG_AND_CONTINUE),
            HandshakeStep("verify_with_identity_api", self._verify_with_identity_api),
            HandshakeStep("exchange_temporary_token", self._exchange_temporary_token),
        ]

    def _fetch_public_key(self, state: HandshakeState) -> None:
        url = SafeURL.direct(self._context.identity_api_host + IDENTITY_KEY_PATH)
        state.public_key = self._executor.execute_raw(url).unwrap()

    def _generate_secret(self, state: HandshakeState) -> None:
        state.secret = secrets.token_bytes(SECRET_LENGTH)

    def _compute_server_hash(self, state: HandshakeState) -> None:
        state.server_hash = server_hash(b"", state.secret, state.public_key)

    def _join_session(self, state: HandshakeState) -> None:
        url = SafeURL.direct(self._context.config.session_join_url)
        body: Dict[str, Any] = {
            "accessToken": state.access_token,
            "selectedProfile": undashed(state.player_id),
            "serverId": state.server_hash,
        }
        self._executor.execute_raw(url, "POST", body).unwrap()

    def _verify_with_identity_api(self, state: HandshakeState) -> None:
        url = SafeURL.direct(self._context.identity_api_host + IDENTITY_VERIFY_PATH)
        body = {
            "secret": base64.b64encode(state.secret).decode("ascii"),
            "username": state.username,
        }
        data = self._executor.execute(url, "POST", body).unwrap()
        state.temporary_token = str(data["token"])

    def _exchange_temporary_token(self, state: HandshakeState) -> None:
        if not state.temporary_token:
            raise HandshakeError("exchange_temporary_token", "no temporary token from the identity API")
        outcome = self.exchange_tokens(state.temporary_token, state.player_id, state.client_name)
        state.login_info = outcome.unwrap()
        state.exchange_url = outcome.source_url
