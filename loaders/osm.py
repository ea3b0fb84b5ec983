"""
OpenStreetMap Land Cover Loader via Overpass API.

Derives two restoration proxies from the land-use and natural-cover
polygons around a point:
- land-cover density: share of polygons with vegetated cover
- habitat heterogeneity: Shannon diversity of the cover classes

Includes rate limiting, a SQLite response cache and retry with backoff.
"""

import time
import sqlite3
import json
import hashlib
from typing import Optional, Dict, List
from dataclasses import dataclass, asdict
import logging

import numpy as np
import requests
from tenacity import retry, retry_if_exception_type, wait_exponential

from loaders.throttle import RateLimiter, SingleFlight, stop_within_budget

log = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 30 * 24 * 60 * 60  # 30 days

VEGETATED_CLASSES = frozenset({
    "forest", "wood", "scrub", "heath", "grassland", "grass", "meadow",
    "wetland", "orchard", "vineyard", "farmland", "allotments",
    "nature_reserve", "park", "village_green", "recreation_ground", "tree_row",
})

# Shannon diversity is normalized against this many equally common classes
MAX_HABITAT_CLASSES = 8


@dataclass
class LandCoverData:
    """Land cover summary for a location."""
    latitude: float
    longitude: float
    element_count: int
    class_counts: Dict[str, int]
    land_cover_density: float      # 0-1
    habitat_heterogeneity: float   # 0-1

    def to_dict(self) -> Dict:
        return asdict(self)


class OSMCache:
    """SQLite cache for Overpass API results."""

    def __init__(self, db_path: str = "osm_cache.db"):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS osm_cache (
                query_hash TEXT PRIMARY KEY,
                result_json TEXT,
                created_at REAL
            )
        """)
        conn.execute("DELETE FROM osm_cache WHERE created_at < ?",
                     (time.time() - CACHE_TTL_SECONDS,))
        conn.commit()
        conn.close()

    def _hash_query(self, lat: float, lon: float, radius: int) -> str:
        # Round to 4 decimal places (~10m) for cache key
        key = f"{lat:.4f},{lon:.4f},{radius}"
        return hashlib.md5(key.encode()).hexdigest()

    def get(self, lat: float, lon: float, radius: int) -> Optional[Dict]:
        conn = sqlite3.connect(self.db_path)
        row = conn.execute(
            "SELECT result_json FROM osm_cache WHERE query_hash = ?",
            (self._hash_query(lat, lon, radius),)
        ).fetchone()
        conn.close()
        if row:
            return json.loads(row[0])
        return None

    def set(self, lat: float, lon: float, radius: int, result: Dict):
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            """INSERT OR REPLACE INTO osm_cache
               (query_hash, result_json, created_at)
               VALUES (?, ?, ?)""",
            (self._hash_query(lat, lon, radius), json.dumps(result), time.time())
        )
        conn.commit()
        conn.close()


class OSMLoader:
    """
    Overpass API client for land-use and natural-cover polygons.
    """

    OVERPASS_URL = "https://overpass-api.de/api/interpreter"

    def __init__(self, cache_path: str = "osm_cache.db", timeout: int = 25,
                 session: Optional[requests.Session] = None, min_interval: float = 1.0,
                 retry_budget: Optional[float] = None):
        self.cache = OSMCache(cache_path)
        self.timeout = timeout
        self.retry_budget = retry_budget
        self._flight = SingleFlight()
        self.session = session or requests.Session()
        self._limiter = RateLimiter(min_interval)

    def _build_query(self, lat: float, lon: float, radius: int) -> str:
        return f"""
        [out:json][timeout:{self.timeout}];
        (
          way["landuse"](around:{radius},{lat},{lon});
          relation["landuse"](around:{radius},{lat},{lon});
          way["natural"](around:{radius},{lat},{lon});
          relation["natural"](around:{radius},{lat},{lon});
          way["leisure"~"park|nature_reserve"](around:{radius},{lat},{lon});
        );
        out tags;
        """

    @retry(
        retry=retry_if_exception_type(requests.RequestException),
        stop=stop_within_budget,
        wait=wait_exponential(multiplier=2, min=2, max=15),
        reraise=True,
    )
    def _make_request(self, query: str) -> Dict:
        """Make a rate-limited request with retry."""
        self._limiter.wait()
        response = self.session.post(
            self.OVERPASS_URL,
            data={"data": query},
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def fetch_raw(self, lat: float, lon: float, radius: int = 500) -> Dict:
        """
        Fetch raw OSM cover polygons around a location.

        Args:
            lat: Center latitude
            lon: Center longitude
            radius: Search radius in meters

        Returns:
            Raw Overpass API response
        """
        return self._flight.do((round(lat, 4), round(lon, 4), radius), self._fetch_raw, lat, lon, radius)

    def _fetch_raw(self, lat: float, lon: float, radius: int) -> Dict:
        cached = self.cache.get(lat, lon, radius)
        if cached:
            log.debug(f"Cache hit for OSM at ({lat}, {lon})")
            return cached

        result = self._make_request(self._build_query(lat, lon, radius))
        self.cache.set(lat, lon, radius, result)
        return result

    def fetch_land_cover(self, lat: float, lon: float, radius: int = 500) -> Optional[LandCoverData]:
        """
        Summarize land cover around a location.

        Returns:
            LandCoverData, or None when no cover polygons are mapped nearby.
        """
        raw = self.fetch_raw(lat, lon, radius)
        classes = _cover_classes(raw.get("elements") or [])
        if not classes:
            log.debug(f"No mapped land cover around ({lat}, {lon})")
            return None

        names, counts = np.unique(np.array(classes), return_counts=True)
        vegetated = sum(int(c) for name, c in zip(names, counts) if name in VEGETATED_CLASSES)

        return LandCoverData(
            latitude=lat,
            longitude=lon,
            element_count=len(classes),
            class_counts={str(name): int(c) for name, c in zip(names, counts)},
            land_cover_density=vegetated / len(classes),
            habitat_heterogeneity=shannon_heterogeneity(counts),
        )


def _cover_classes(elements: List[Dict]) -> List[str]:
    classes = []
    for el in elements:
        tags = el.get("tags") or {}
        cover = tags.get("landuse") or tags.get("natural") or tags.get("leisure")
        if cover:
            classes.append(cover.lower())
    return classes


def shannon_heterogeneity(counts) -> float:
    """
    Shannon diversity of class counts scaled to [0, 1].

    One class scores 0; MAX_HABITAT_CLASSES equally common classes (or
    more) score 1.
    """
    counts = np.asarray(counts, dtype=float)
    counts = counts[counts > 0]
    if counts.size < 2:
        return 0.0
    p = counts / counts.sum()
    entropy = float(-(p * np.log(p)).sum())
    return min(1.0, entropy / float(np.log(MAX_HABITAT_CLASSES)))
