"""Driving distance between two "City, ST" locations via the MapQuest directions API.

Results are cached in Redis, when it is connected, keyed on the normalized
location pair. Callers that only need a price treat DistanceLookupError as
"no distance available", which the pricing engine turns into its sentinel
quote.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import Settings, settings
from app.core.metrics import cache_hits, cache_misses
from app.core.redis import get_redis
from app.services.pricing import round_half_up

logger = logging.getLogger(__name__)

_CITY_STATE_RE = re.compile(r"([^,]+,\s*[A-Z]{2})", re.IGNORECASE)


class DistanceLookupError(Exception):
    pass


@dataclass
class DistanceResult:
    distance_miles: float
    travel_time: Optional[str] = None


def simplify_location(location: str) -> str:
    """Trim "Miami, FL 33101" style input down to "Miami, FL"."""
    match = _CITY_STATE_RE.search(location)
    return match.group(1).strip() if match else location.strip()


def _cache_key(origin: str, destination: str) -> str:
    return f"dist:{origin.strip().lower()}::{destination.strip().lower()}"


async def get_distance(
    origin: str,
    destination: str,
    config: Settings = settings,
    client: Optional[httpx.AsyncClient] = None,
) -> DistanceResult:
    if not origin or not destination:
        raise DistanceLookupError("Origin and destination are required")
    if not config.MAPQUEST_API_KEY:
        raise DistanceLookupError("MAPQUEST_API_KEY is not configured")

    origin_q = simplify_location(origin)
    destination_q = simplify_location(destination)
    key = _cache_key(origin_q, destination_q)

    redis = get_redis()
    if redis is not None:
        try:
            cached = await redis.get(key)
            if cached:
                cache_hits.labels(cache_key="distance").inc()
                obj = json.loads(cached)
                return DistanceResult(distance_miles=obj["distance_miles"], travel_time=obj.get("travel_time"))
            cache_misses.labels(cache_key="distance").inc()
        except Exception as e:
            logger.warning(f"Distance cache retrieval failed: {e}")

    params = {
        "key": config.MAPQUEST_API_KEY,
        "from": origin_q,
        "to": destination_q,
        "unit": "m",
    }
    try:
        if client is not None:
            response = await client.get(config.MAPQUEST_URL, params=params, timeout=config.DISTANCE_TIMEOUT)
        else:
            async with httpx.AsyncClient(timeout=config.DISTANCE_TIMEOUT) as http:
                response = await http.get(config.MAPQUEST_URL, params=params)
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Distance lookup failed for {origin_q} -> {destination_q}: {e}")
        raise DistanceLookupError(f"Distance lookup failed: {e}") from e

    route = data.get("route") if isinstance(data, dict) else None
    distance = route.get("distance") if isinstance(route, dict) else None
    if not isinstance(distance, (int, float)) or isinstance(distance, bool):
        messages = (data.get("info") or {}).get("messages") if isinstance(data, dict) else None
        if messages:
            raise DistanceLookupError(f"MapQuest API error: {', '.join(messages)}")
        raise DistanceLookupError("Distance calculation failed - no distance in response")

    result = DistanceResult(distance_miles=float(round_half_up(distance)), travel_time=route.get("formattedTime"))

    if redis is not None:
        try:
            await redis.set(
                key,
                json.dumps({"distance_miles": result.distance_miles, "travel_time": result.travel_time}),
                ex=config.DISTANCE_CACHE_TTL,
            )
        except Exception as e:
            logger.warning(f"Distance cache write failed: {e}")

    return result
