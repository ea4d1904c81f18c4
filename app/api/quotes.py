"""Pricing quote endpoints with Redis caching"""
import json
import hashlib
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Query

from app.schemas.quote import (
    DistanceResponse,
    QuoteRequest,
    QuoteResult,
    RouteQuoteRequest,
    RouteQuoteResponse,
)
from app.services.pricing import calculate_price
from app.services.distance import DistanceLookupError, get_distance
from app.core.redis import get_redis
from app.core.config import settings
from app.core.enums import VehicleType
from app.core.metrics import cache_hits, cache_misses, quotes_calculated

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


def _generate_cache_key(req: QuoteRequest) -> str:
    params_str = json.dumps(req.model_dump(), sort_keys=True)
    return f"price:{hashlib.sha256(params_str.encode()).hexdigest()}"


def _price(req: QuoteRequest) -> QuoteResult:
    result = calculate_price(
        req.distance_miles,
        req.vehicle_type,
        req.shipment_date,
        req.pickup_location,
        req.dropoff_location,
    )
    outcome = "sentinel" if result.message else "priced"
    vehicle = VehicleType.parse(req.vehicle_type)
    quotes_calculated.labels(vehicle_type=str(vehicle) if vehicle else "unknown", outcome=outcome).inc()
    return result


@router.post("/calc", response_model=QuoteResult)
async def calc_quote(req: QuoteRequest):

    cache_key = _generate_cache_key(req)
    redis = get_redis()

    if redis is not None:
        try:
            cached = await redis.get(cache_key)
            if cached:
                cache_hits.labels(cache_key="price").inc()
                return QuoteResult.model_validate_json(cached)
            cache_misses.labels(cache_key="price").inc()
        except Exception as e:
            logger.warning(f"Cache retrieval failed: {e}")

    result = _price(req)

    if redis is not None:
        try:
            await redis.set(cache_key, result.model_dump_json(), ex=settings.PRICE_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Cache write failed: {e}")

    return result


@router.post("/route", response_model=RouteQuoteResponse)
async def route_quote(req: RouteQuoteRequest):
    """Look up the driving distance, then price it. A failed lookup yields the no-distance quote."""
    distance: Optional[float] = None
    travel_time: Optional[str] = None
    try:
        found = await get_distance(req.origin, req.destination)
        distance, travel_time = found.distance_miles, found.travel_time
    except DistanceLookupError as e:
        logger.warning(f"No distance for {req.origin} -> {req.destination}: {e}")

    result = _price(QuoteRequest(
        distance_miles=distance,
        vehicle_type=req.vehicle_type,
        shipment_date=req.shipment_date,
        pickup_location=req.origin,
        dropoff_location=req.destination,
    ))
    return RouteQuoteResponse(**result.model_dump(), distance_miles=distance, travel_time=travel_time)


@router.get("/distance", response_model=DistanceResponse)
async def distance_lookup(
    origin: Optional[str] = Query(None),
    destination: Optional[str] = Query(None),
):
    if not origin or not destination:
        raise HTTPException(status_code=400, detail="Origin and destination are required")
    try:
        found = await get_distance(origin, destination)
    except DistanceLookupError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return DistanceResponse(distance=found.distance_miles, time=found.travel_time)
