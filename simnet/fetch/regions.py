"""
SIMNET Region Lookup

Builds the entity_id -> category map from a world-countries GeoJSON
document (one Feature per country, ISO3 code and region in properties).

Data Source:
    world-countries (mledoze/countries)
    https://cdn.jsdelivr.net/npm/world-countries@4/countries.geojson

A failed download is not fatal: the lookup comes back empty and every
entity falls into the default category.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import requests

from simnet.core.graph import DEFAULT_CATEGORY

logger = logging.getLogger(__name__)


ISO3_KEYS = ("cca3", "CCA3", "ISO_A3", "iso_a3", "ISO3", "iso3")
REGION_KEYS = ("region", "continent", "subregion")
ISO3_PATTERN = re.compile(r"^[A-Z]{3}$")


def _first(properties: Mapping[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = properties.get(key)
        if value:
            return value
    return None


def parse_region_features(
    geojson: Mapping[str, Any],
    default_category: str = DEFAULT_CATEGORY,
) -> Dict[str, str]:
    """
    Extract ISO3 -> region from a GeoJSON FeatureCollection.

    Features without a valid 3-letter code are skipped; features without a
    region get `default_category`.
    """
    regions: Dict[str, str] = {}
    for feature in geojson.get("features") or []:
        properties = feature.get("properties") or {}
        iso3 = str(_first(properties, ISO3_KEYS) or "").upper()
        if not ISO3_PATTERN.match(iso3):
            continue
        regions[iso3] = str(_first(properties, REGION_KEYS) or default_category)
    return regions


class RegionLookup:
    """
    Client for the world-countries GeoJSON.

    Usage:
        lookup = RegionLookup()
        regions = lookup.fetch()
        regions.get("FRA", "Other")   # 'Europe'
    """

    DATA_URL = "https://cdn.jsdelivr.net/npm/world-countries@4/countries.geojson"

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 30.0,
        cache_hours: int = 24,
        session: Optional[requests.Session] = None,
    ):
        self.url = url or self.DATA_URL
        self.timeout = timeout
        self.cache_hours = cache_hours
        self.session = session or requests.Session()
        self._regions: Optional[Dict[str, str]] = None
        self._last_fetch: Optional[datetime] = None

    def _cache_valid(self) -> bool:
        if self._regions is None or self._last_fetch is None:
            return False
        elapsed = datetime.now() - self._last_fetch
        return elapsed.total_seconds() < self.cache_hours * 3600

    def fetch(self, force_refresh: bool = False) -> Dict[str, str]:
        """
        Download and parse the lookup.

        Returns cached data if still valid; on failure returns the stale
        cache if there is one, else an empty mapping.
        """
        if not force_refresh and self._cache_valid():
            logger.debug("Using cached region lookup")
            return self._regions

        logger.info(f"Downloading region lookup from {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to load region lookup: {e}")
            if self._regions is not None:
                logger.warning("Using stale cached region lookup")
                return self._regions
            return {}

        regions = parse_region_features(payload)
        logger.info(f"Region lookup loaded: {len(regions)} entities")

        self._regions = regions
        self._last_fetch = datetime.now()
        return regions
