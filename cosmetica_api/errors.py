"""
Cosmetica API Error Classes

Exceptions raised by the client. Request helpers that return an Outcome
never raise TransportError, ApplicationError or FatalServerError; those come
only from ``Outcome.unwrap()``, which the client factories call.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class CosmeticaError(Exception):
    """Base error class for the Cosmetica API client."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
        source_url: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.source_url = source_url
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "source_url": self.source_url,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class InitializationError(CosmeticaError):
    """Service discovery failed and no usable cache was available."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("INITIALIZATION_FAILED", message, 0, details)


class TransportError(CosmeticaError):
    """Network error (connection issues, timeouts, DNS)."""

    def __init__(
        self,
        message: str,
        source_url: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ):
        super().__init__("TRANSPORT_ERROR", message, 0, details, source_url)
        self.retryable = retryable


class ApplicationError(CosmeticaError):
    """The server answered with an embedded ``error`` field."""

    def __init__(
        self,
        message: str,
        source_url: Optional[str] = None,
        status_code: int = 200,
        details: Optional[Dict[str, Any]] = None,
    ):
        if source_url:
            text = f"API server request to {source_url} responded with error: {message}"
        else:
            text = message
        super().__init__("APPLICATION_ERROR", text, status_code, details, source_url)
        self.reason = message


class FatalServerError(CosmeticaError):
    """5xx response whose body is not JSON (infrastructure fault)."""

    def __init__(self, status_code: int, source_url: Optional[str] = None):
        super().__init__(
            "FATAL_SERVER_ERROR",
            f"Fatal server error {status_code} from {source_url}",
            status_code,
            None,
            source_url,
        )


class ValidationError(CosmeticaError):
    """Invalid caller input, rejected before any network call."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, 0, details)


class ConfigurationError(CosmeticaError):
    """Configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, 0, details)


class HandshakeError(CosmeticaError):
    """An aborting handshake step failed. The underlying error is ``__cause__``."""

    def __init__(self, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("HANDSHAKE_FAILED", f"Handshake step '{step}' failed: {message}", 0, details)
        self.step = step


def is_cosmetica_error(error: Any) -> bool:
    """Check if error is a CosmeticaError."""
    return isinstance(error, CosmeticaError)


def is_retryable_error(error: Any) -> bool:
    """Check if error is worth retrying (possibly against another host)."""
    if isinstance(error, TransportError):
        return error.retryable
    if isinstance(error, FatalServerError):
        return True
    if isinstance(error, HandshakeError):
        return is_retryable_error(error.__cause__)
    return False
