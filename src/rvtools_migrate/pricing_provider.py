"""Pricing and profile catalog providers backed by the IBM Cloud proxy services.

Fetches the current pricing document and hardware/VSI profile catalog from
configurable proxy URLs, with in-memory + file-based caching.

Falls back gracefully to the static catalogs when a proxy is unavailable.
There are no background refreshes: callers decide when to call
``refresh()`` (for example from a CLI flag).
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .catalog import (
    BARE_METAL_PROFILES,
    VSI_PROFILES,
    HardwareProfile,
    VSIProfile,
    hardware_profile_from_dict,
    vsi_profile_from_dict,
)
from .cost_estimation import DEFAULT_PRICING, PricingTable, merge_with_defaults, with_source

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_TTL_SECONDS = 24 * 3600  # 24 hours
DEFAULT_TIMEOUT = 15.0

SOURCE_PROXY = "proxy"
SOURCE_CACHED = "cached"
SOURCE_STATIC = "static"


# Shared session with retry adapter for resilient proxy calls
_retry_strategy = Retry(
    total=3,
    backoff_factor=1.0,           # 0s, 1s, 2s between retries
    status_forcelist=[429, 500, 502, 503, 504],
    allowed_methods=["GET"],
)
_http_adapter = HTTPAdapter(max_retries=_retry_strategy)
_session = requests.Session()
_session.mount("https://", _http_adapter)
_session.mount("http://", _http_adapter)


class CatalogFetchError(Exception):
    """The proxy could not be reached or returned an unusable document."""


# ---------------------------------------------------------------------------
# Base provider – thread-safe caching wrapper
# ---------------------------------------------------------------------------

class CatalogProvider(Generic[T]):
    """Cached accessor for one remote catalog document.

    Subclasses supply ``cache_name``, ``_parse`` (raw JSON → value) and
    ``_static`` (the built-in fallback).
    """

    cache_name = "catalog"

    def __init__(
        self,
        url: str | None = None,
        *,
        cache_dir: Path | None = None,
        ttl: int = CACHE_TTL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._lock = threading.Lock()
        self._url = url or None
        self._cache_dir = cache_dir
        self._ttl = ttl
        self._timeout = timeout
        self._session = session or _session
        self._clock = clock

        self._raw: dict[str, Any] | None = None
        self._fetched_at: float = 0.0
        self._source: str = SOURCE_STATIC
        self._last_error: str | None = None
        self._total_api_calls = 0
        self._total_cache_hits = 0

        self._load_file_cache()

    # ---- Hooks ------------------------------------------------------------

    def _parse(self, raw: dict[str, Any]) -> T:
        raise NotImplementedError

    def _static(self) -> T:
        raise NotImplementedError

    # ---- File cache persistence -------------------------------------------

    def _cache_file(self) -> Path | None:
        if self._cache_dir:
            return self._cache_dir / f"{self.cache_name}_cache.json"
        return None

    def _load_file_cache(self) -> None:
        path = self._cache_file()
        if not path or not path.exists():
            return
        try:
            raw = path.read_text("utf-8")
            if not raw.strip():
                return
            data = json.loads(raw)
            if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
                logger.warning("Ignoring %s cache at %s: not a cached catalog document", self.cache_name, path)
                return
            self._raw = data["data"]
            self._fetched_at = float(data.get("timestamp", 0))
            self._source = SOURCE_CACHED
            logger.info("Loaded %s cache from %s", self.cache_name, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to load %s cache: %s", self.cache_name, exc)
            self._raw = None

    def _save_file_cache(self) -> None:
        """Persist cache to disk using atomic write (write to tmp then rename)."""
        path = self._cache_file()
        if not path:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            data = {"timestamp": self._fetched_at, "data": self._raw}
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(path)  # atomic on same filesystem
        except OSError as exc:
            logger.warning("Failed to save %s cache: %s", self.cache_name, exc)

    # ---- Fetch ------------------------------------------------------------

    def _fetch(self, force: bool) -> dict[str, Any]:
        self._total_api_calls += 1
        try:
            resp = self._session.get(
                self._url,
                params={"refresh": "true"} if force else None,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise CatalogFetchError(str(exc)) from exc
        if not isinstance(body, dict):
            raise CatalogFetchError(f"unexpected {self.cache_name} payload: {type(body).__name__}")
        return body

    def _load(self, force: bool) -> T:
        if self._url is None:
            self._source = SOURCE_STATIC
            return self._static()
        try:
            body = self._fetch(force)
        except CatalogFetchError as exc:
            self._last_error = str(exc)
            if self._raw is not None:
                logger.warning("%s proxy unavailable, using cached data: %s", self.cache_name, exc)
                self._source = SOURCE_CACHED
                return self._parse(self._raw)
            logger.warning("%s proxy unavailable, using static data: %s", self.cache_name, exc)
            self._source = SOURCE_STATIC
            return self._static()

        self._raw = body
        self._fetched_at = self._clock()
        self._source = SOURCE_PROXY
        self._last_error = None
        self._save_file_cache()
        return self._parse(body)

    # ---- Public API -------------------------------------------------------

    def is_expired(self) -> bool:
        if self._raw is None:
            return True
        return self._clock() - self._fetched_at > self._ttl

    def get(self) -> T:
        """Current value: cached while fresh, otherwise fetched (or static)."""
        with self._lock:
            if self._raw is not None and not self.is_expired():
                self._total_cache_hits += 1
                return self._parse(self._raw)
            return self._load(force=False)

    def refresh(self) -> T:
        """Bypass the cache and fetch from the proxy."""
        with self._lock:
            return self._load(force=True)

    @property
    def source(self) -> str:
        return self._source

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def status(self) -> dict:
        """Return current provider status."""
        return {
            "url": self._url,
            "source": self._source,
            "last_error": self._last_error,
            "fetched_at": self._fetched_at or None,
            "expired": self.is_expired(),
            "total_api_calls": self._total_api_calls,
            "total_cache_hits": self._total_cache_hits,
            "cache_ttl_hours": self._ttl / 3600,
        }


# ---------------------------------------------------------------------------
# Concrete providers
# ---------------------------------------------------------------------------

class PricingProvider(CatalogProvider[PricingTable]):
    cache_name = "pricing"

    def _parse(self, raw: dict[str, Any]) -> PricingTable:
        return with_source(merge_with_defaults(raw), self._source)

    def _static(self) -> PricingTable:
        return DEFAULT_PRICING


@dataclass
class ProfileCatalog:
    bare_metal: list[HardwareProfile] = field(default_factory=lambda: list(BARE_METAL_PROFILES))
    vsi: list[VSIProfile] = field(default_factory=lambda: list(VSI_PROFILES))


class ProfileProvider(CatalogProvider[ProfileCatalog]):
    cache_name = "profiles"

    def _parse(self, raw: dict[str, Any]) -> ProfileCatalog:
        bare_metal = [hardware_profile_from_dict(p) for p in raw.get("bareMetalProfiles") or [] if isinstance(p, dict)]
        vsi = [vsi_profile_from_dict(p) for p in raw.get("vsiProfiles") or [] if isinstance(p, dict)]
        # An empty section keeps the built-in catalog
        return ProfileCatalog(
            bare_metal=[p for p in bare_metal if p.name] or list(BARE_METAL_PROFILES),
            vsi=[p for p in vsi if p.name] or list(VSI_PROFILES),
        )

    def _static(self) -> ProfileCatalog:
        return ProfileCatalog()


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

@dataclass
class PricingResult:
    pricing: PricingTable
    source: str                   # proxy | cached | static
    error: str | None = None


def get_active_pricing(provider: PricingProvider | None, force_refresh: bool = False) -> PricingResult:
    """Resolve the pricing table to use for estimates; never raises."""
    if provider is None:
        return PricingResult(DEFAULT_PRICING, SOURCE_STATIC)
    pricing = provider.refresh() if force_refresh else provider.get()
    return PricingResult(pricing, provider.source, provider.last_error)
