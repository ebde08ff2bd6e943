"""
Request execution and response classification.

Every call returns an Outcome: a parsed value, a recoverable error
(transport fault or server-embedded application error) or a fatal
server error. Nothing here retries.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

import httpx

from .errors import ValidationError
from .types import DEFAULT_TIMEOUT_SECONDS, FatalError, Outcome, RecoverableError, Value
from .urls import SafeURL


logger = logging.getLogger("cosmetica_api")

UrlLogger = Callable[[str], None]

_METHODS = ("GET", "POST")


def _parse_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text.strip())
    except ValueError:
        return False, None


def classify_response(status_code: int, text: str, source_url: str) -> Outcome[Any]:
    """
    Turn a status code and body into an Outcome.

    A top-level ``error`` field is an application error whatever the status.
    A 5xx body that is not JSON is fatal. Any other JSON body is a value.
    """
    is_json, data = _parse_json(text)

    if not is_json:
        if status_code >= 500:
            return FatalError(status_code, source_url)
        return RecoverableError(
            "application",
            f"Malformed response (HTTP {status_code})",
            source_url,
            status_code,
        )

    if isinstance(data, dict) and "error" in data:
        return RecoverableError("application", str(data["error"]), source_url, status_code)

    return Value(data, source_url)


class RequestExecutor:
    """Blocking GET/POST over a single ``httpx.Client``."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Optional[Dict[str, str]] = None,
        url_logger: Optional[UrlLogger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.url_logger = url_logger
        self._http_client = httpx.Client(
            headers=headers or {},
            transport=transport,
            follow_redirects=True,
        )

    def execute(
        self,
        url: SafeURL,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Outcome[Any]:
        """Perform the request and classify the response."""
        response = self._send(url, method, body, timeout)
        if not isinstance(response, httpx.Response):
            return response
        return classify_response(response.status_code, response.text, url.display_url)

    def execute_raw(
        self,
        url: SafeURL,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Outcome[bytes]:
        """Perform the request and return the raw body for non-JSON endpoints."""
        response = self._send(url, method, body, timeout)
        if not isinstance(response, httpx.Response):
            return response

        if not response.is_success:
            outcome = classify_response(response.status_code, response.text, url.display_url)
            if isinstance(outcome, Value):
                return RecoverableError(
                    "application",
                    f"HTTP {response.status_code}",
                    url.display_url,
                    response.status_code,
                )
            return outcome
        return Value(response.content, url.display_url)

    def _send(
        self,
        url: SafeURL,
        method: str,
        body: Optional[Dict[str, Any]],
        timeout: Optional[float],
    ) -> Union[httpx.Response, RecoverableError]:
        method = method.upper()
        if method not in _METHODS:
            raise ValidationError(f"Unsupported method: {method}")

        logger.debug("%s %s", method, url.display_url)
        if self.url_logger:
            self.url_logger(url.display_url)

        effective = self.timeout if timeout is None else timeout
        try:
            return self._http_client.request(
                method,
                url.request_url,
                json=body if method == "POST" else None,
                timeout=httpx.Timeout(effective),
            )
        except httpx.TimeoutException:
            return RecoverableError(
                "transport", f"Request timed out after {effective}s", url.display_url
            )
        except httpx.HTTPError as e:
            # httpx error text may echo the request URL, so report the type only
            return RecoverableError(
                "transport", f"{type(e).__name__} contacting server", url.display_url
            )

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
