"""
Service discovery.

A ServiceContext owns the discovered ServiceTopology for every client built
on it. Discovery runs once: a plaintext GET to the well-known bootstrap URL,
falling back to the on-disk cache when the service cannot be reached.
"""

import json
import logging
import threading
from typing import Any, Optional

import httpx

from .errors import InitializationError
from .storage import BootstrapCache
from .types import CosmeticaConfig, FatalError, RecoverableError, ServiceTopology, with_scheme
from .urls import SafeURL
from .transport import RequestExecutor


logger = logging.getLogger("cosmetica_api")


class ServiceContext:
    """
    Embedder-owned holder of the service topology.

    ``resolve()`` is idempotent and thread-safe: concurrent first callers are
    serialized and the first successful discovery is kept. ``force_https`` is
    read whenever a URL is built, so toggling it never re-runs discovery.
    """

    def __init__(
        self,
        config: Optional[CosmeticaConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = (config or CosmeticaConfig()).validate()
        self._transport = transport
        self._cache = BootstrapCache(self._config.cache_path) if self._config.cache_path else None
        self._topology: Optional[ServiceTopology] = None
        self._lock = threading.Lock()
        self.force_https = self._config.force_https

    @property
    def config(self) -> CosmeticaConfig:
        return self._config

    @property
    def transport(self) -> Optional[httpx.BaseTransport]:
        return self._transport

    @property
    def cache(self) -> Optional[BootstrapCache]:
        return self._cache

    @property
    def is_initialized(self) -> bool:
        return self._topology is not None

    def initialize(self) -> "ServiceContext":
        """Resolve the topology now (or load it from cache) and return self."""
        self.resolve()
        return self

    def shutdown(self) -> None:
        """Forget the topology; the next ``resolve()`` discovers again."""
        with self._lock:
            self._topology = None

    def resolve(self) -> ServiceTopology:
        """Return the topology, discovering it on first use."""
        topology = self._topology
        if topology is not None:
            return topology

        with self._lock:
            if self._topology is None:
                self._topology = self._discover()
            return self._topology

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def message(self) -> str:
        return self.resolve().message

    @property
    def website(self) -> str:
        return self.resolve().website_host

    @property
    def secure_host(self) -> str:
        return self.resolve().secure_host

    @property
    def fast_insecure_host(self) -> str:
        return self.resolve().fast_host(self.force_https)

    @property
    def identity_api_host(self) -> str:
        return self.resolve().identity_api_host

    # =========================================================================
    # Discovery
    # =========================================================================

    def _bootstrap_url(self) -> str:
        url = self._config.bootstrap_url
        if self.force_https:
            return with_scheme(url, "https")
        return url

    def _fetch_live(self) -> Optional[str]:
        url = SafeURL.direct(self._bootstrap_url())
        with RequestExecutor(
            timeout=self._config.timeout,
            headers=self._config.headers,
            transport=self._transport,
        ) as executor:
            outcome = executor.execute_raw(url)

        if isinstance(outcome, RecoverableError):
            reason = outcome.message
        elif isinstance(outcome, FatalError):
            reason = f"HTTP {outcome.status_code}"
        else:
            body = outcome.value.decode("utf-8", errors="replace").strip()
            return body or None

        logger.warning(
            "Connection error to %s (%s). Trying to retrieve from local cache...",
            url.display_url,
            reason,
        )
        return None

    def _discover(self) -> ServiceTopology:
        raw_body = self._fetch_live()

        if raw_body is not None:
            topology = _parse_topology(raw_body)
            if self._cache is not None:
                self._cache.store(raw_body)
            logger.debug("Discovered service topology: %s", topology)
            return topology

        entry = self._cache.load() if self._cache is not None else None
        if entry is None:
            raise InitializationError(
                "Could not receive Cosmetica API host",
                {"bootstrap_url": self._bootstrap_url(), "cache_path": str(self._config.cache_path)},
            )

        logger.info("Using cached service topology from %s", self._cache.path)
        return _parse_topology(entry.raw_body)

    def close(self) -> None:
        self.shutdown()

    def __enter__(self) -> "ServiceContext":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _parse_topology(raw_body: str) -> ServiceTopology:
    try:
        data = json.loads(raw_body)
        return ServiceTopology.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        raise InitializationError(f"Invalid service discovery payload: {e}") from e


_default_context: Optional[ServiceContext] = None
_default_lock = threading.Lock()


def default_context() -> ServiceContext:
    """A lazily created process-wide context for embedders that do not own one."""
    global _default_context
    with _default_lock:
        if _default_context is None:
            _default_context = ServiceContext(CosmeticaConfig.from_env())
        return _default_context


def set_default_context(context: Optional[ServiceContext]) -> None:
    """Replace (or reset, with None) the process-wide context."""
    global _default_context
    with _default_lock:
        _default_context = context
