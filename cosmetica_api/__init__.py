"""
Cosmetica API Python Client

Client library for the Cosmetica cosmetics service: service discovery with an
offline cache, tiered credentials (temporary, limited, master), credential-safe
request URLs and uniform response outcomes.
"""

from .client import CosmeticaClient, create_client, create_context
from .types import (
    CosmeticaConfig,
    ServiceTopology,
    TrustTier,
    Credential,
    CredentialKind,
    LoginInfo,
    Outcome,
    Value,
    RecoverableError,
    FatalError,
)
from .errors import (
    CosmeticaError,
    InitializationError,
    TransportError,
    ApplicationError,
    FatalServerError,
    ValidationError,
    ConfigurationError,
    HandshakeError,
    is_cosmetica_error,
    is_retryable_error,
)
from .handshake import Handshake, HandshakeStep, StepPolicy, server_hash
from .storage import BootstrapCache, CacheEntry, CredentialStore
from .topology import ServiceContext, default_context, set_default_context
from .transport import RequestExecutor, classify_response
from .urls import SafeURL, build_url, select_host_and_token

__version__ = "1.0.0"
__all__ = [
    # Client
    "CosmeticaClient",
    "create_client",
    "create_context",
    # Types
    "CosmeticaConfig",
    "ServiceTopology",
    "TrustTier",
    "Credential",
    "CredentialKind",
    "LoginInfo",
    "Outcome",
    "Value",
    "RecoverableError",
    "FatalError",
    # Errors
    "CosmeticaError",
    "InitializationError",
    "TransportError",
    "ApplicationError",
    "FatalServerError",
    "ValidationError",
    "ConfigurationError",
    "HandshakeError",
    "is_cosmetica_error",
    "is_retryable_error",
    # Core
    "Handshake",
    "HandshakeStep",
    "StepPolicy",
    "server_hash",
    "BootstrapCache",
    "CacheEntry",
    "CredentialStore",
    "ServiceContext",
    "default_context",
    "set_default_context",
    "RequestExecutor",
    "classify_response",
    "SafeURL",
    "build_url",
    "select_host_and_token",
]
