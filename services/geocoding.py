"""Geocoding - address to city/state/postcode/coordinates.

Features:
1. Google Maps Geocoding API client (region-biased to Malaysia)
2. Explicit in-memory cache keyed by postcode
3. Cache-first resolver with a minimum delay between API calls
"""
import logging
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from core.config import GeocodingConfig
from core.errors import TransportError

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_COUNTRY = "Malaysia"


@dataclass
class GeocodeResult:
    """Resolved location for one address."""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = DEFAULT_COUNTRY
    lat: str = ""
    lng: str = ""
    formatted: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def parse_address_components(components: List[Dict[str, Any]]) -> Dict[str, str]:
    """Pick city, state, postcode and country out of Google address_components."""
    parsed = {"city": "", "state": "", "zip": "", "country": ""}

    for comp in components:
        types = comp.get("types", [])
        name = comp.get("long_name", "")

        if "locality" in types or "administrative_area_level_2" in types:
            if not parsed["city"]:
                parsed["city"] = name
        if "administrative_area_level_1" in types:
            parsed["state"] = name
        if "postal_code" in types:
            parsed["zip"] = name
        if "country" in types:
            parsed["country"] = name

    return parsed


def build_full_address(fields: Dict[str, Any]) -> str:
    """Join address parts with the country; empty if nothing but the country is known."""
    parts = [
        fields.get("address", ""),
        fields.get("city", ""),
        fields.get("state", ""),
        fields.get("zip", ""),
        DEFAULT_COUNTRY,
    ]
    parts = [p for p in parts if p]
    return ", ".join(parts) if len(parts) > 1 else ""


class GoogleGeocoder:
    """Google Maps Geocoding API client."""

    def __init__(
        self,
        api_key: str,
        region: str = "my",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.region = region
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: GeocodingConfig) -> "GoogleGeocoder":
        return cls(config.api_key, region=config.region, timeout=config.timeout)

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Resolve one address. None when the API has no result."""
        if not address or not address.strip():
            return None

        params = {"address": address, "key": self.api_key, "region": self.region}
        try:
            response = self.session.get(GEOCODE_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Geocoding request failed for {address[:50]}: {e}")
            raise TransportError(f"Geocoding API request failed: {e}") from e

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.warning(f"No geocode result for {address[:50]}: {status}")
            return None

        first = results[0]
        parsed = parse_address_components(first.get("address_components", []))
        location = first.get("geometry", {}).get("location", {})

        return GeocodeResult(
            city=parsed["city"],
            state=parsed["state"],
            zip=parsed["zip"],
            country=parsed["country"] or DEFAULT_COUNTRY,
            lat=str(location["lat"]) if location.get("lat") is not None else "",
            lng=str(location["lng"]) if location.get("lng") is not None else "",
            formatted=first.get("formatted_address", ""),
        )


class GeocodeCache:
    """In-memory postcode -> result cache. Lives as long as its owner."""

    def __init__(self):
        self._entries: Dict[str, GeocodeResult] = {}
        self.hits = 0
        self.misses = 0

    def get(self, postcode: str) -> Optional[GeocodeResult]:
        result = self._entries.get(postcode) if postcode else None
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        return result

    def put(self, postcode: str, result: GeocodeResult) -> None:
        if postcode:
            self._entries[postcode] = result

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "postcodes": list(self._entries),
            "hits": self.hits,
            "misses": self.misses,
        }


class CachedGeocoder:
    """
    Cache-first resolver.

    Checks the cache by postcode; on a miss waits until ``min_interval``
    seconds have passed since the previous API call, calls the resolver and
    caches the result under the postcode.
    """

    def __init__(
        self,
        resolver,
        cache: GeocodeCache,
        min_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.resolver = resolver
        self.cache = cache
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    def _throttle(self) -> None:
        if self._last_call is not None:
            remaining = self.min_interval - (self._clock() - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
        self._last_call = self._clock()

    def geocode(self, address: str, postcode: str = "") -> Tuple[Optional[GeocodeResult], bool]:
        """Returns (result, from_cache)."""
        if postcode:
            cached = self.cache.get(postcode)
            if cached is not None:
                logger.debug(f"Geocode cache hit for postcode {postcode}")
                return cached, True

        self._throttle()
        result = self.resolver.geocode(address)
        if result is not None:
            self.cache.put(postcode, result)
        return result, False
