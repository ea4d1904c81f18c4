"""
City lookup for the pickup/dropoff autocomplete.
The index is loaded once from a JSON list of
{"value", "city", "state", "zips", "population"} records.
Search results are memoized per (query, limit) in an LRU cache.
"""
import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_ZIPS = 5
POPULAR_COUNT = 200


class LRUCache:
    """Fixed-capacity cache; a hit refreshes the entry, the oldest entry is evicted first."""

    def __init__(self, max_size: int = 500):
        self.max_size = max_size
        self.cache: OrderedDict[Any, Any] = OrderedDict()

    def __len__(self) -> int:
        return len(self.cache)

    def get(self, key) -> Optional[Any]:
        if key in self.cache:
            self.cache.move_to_end(key)
            return self.cache[key]
        return None

    def put(self, key, value) -> None:
        if key in self.cache:
            self.cache.pop(key)
        if len(self.cache) >= self.max_size:
            self.cache.popitem(last=False)
        self.cache[key] = value

    def clear(self) -> None:
        self.cache.clear()


def _slim(option: dict, with_population: bool = False) -> dict:
    out = {
        "value": option.get("value", ""),
        "city": option.get("city", ""),
        "state": option.get("state", ""),
        "zips": list(option.get("zips") or [])[:MAX_ZIPS],
    }
    if with_population:
        out["population"] = option.get("population")
    return out


class LocationIndex:

    def __init__(self, options: Optional[list[dict]] = None, cache: Optional[LRUCache] = None):
        self.options = options or []
        self.cache = cache if cache is not None else LRUCache()
        ranked = sorted(self.options, key=lambda o: o.get("population") or 0, reverse=True)
        self.popular = [_slim(o, with_population=True) for o in ranked[:POPULAR_COUNT]]

    @classmethod
    def from_file(cls, path: str, cache: Optional[LRUCache] = None) -> "LocationIndex":
        try:
            with open(Path(path), encoding="utf-8") as f:
                options = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load location data from {path}: {e}")
            return cls([], cache)
        logger.info(f"Location index loaded with {len(options)} locations")
        return cls(options, cache)

    def search(self, query: str, limit: int = 200) -> list[dict]:
        if not query or len(query) < MIN_QUERY_LENGTH:
            return []

        key = (query.lower(), limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        q = query.lower()
        matches = []
        for option in self.options:
            if (
                q in str(option.get("city", "")).lower()
                or q in str(option.get("state", "")).lower()
                or q in str(option.get("value", "")).lower()
                or any(q in z for z in option.get("zips") or [])
            ):
                matches.append(_slim(option))
                if len(matches) >= limit:
                    break

        self.cache.put(key, matches)
        return matches

    def popular_locations(self, limit: int = 200) -> list[dict]:
        return self.popular[:limit]
