import logging
import math
from datetime import date as date_type
from typing import Optional, Union

from app.schemas.quote import QuoteResult
from app.core.enums import VehicleType, VehicleCategory
from app.utils.location_fields import route_state

logger = logging.getLogger(__name__)

BASE_RATE_PER_MILE = 0.614
MID_RANGE_MAX_MILES = 800
MID_RANGE_SURCHARGE = 1.10
SHORT_ROUTE_MAX_MILES = 1500
SHORT_ROUTE_MARKUP = 1.40
CUSTOM_QUOTE_MAX_MILES = 100
MILES_PER_TRANSIT_DAY = 400

ENCLOSED_MULTIPLIER = 1.40
ABSOLUTE_MINIMUM = 695

SNOWBIRD_MINIMUM = 1150
NC_GA_NY_MINIMUM = 1050
NORTHEAST_STATES = frozenset({"ME", "NH", "VT", "MA", "RI", "CT", "NY", "NJ", "PA"})

CAR_MINIMUM = 695
CAR_UPLIFT_LOW = 696
CAR_UPLIFT_HIGH = 1070
CAR_UPLIFT = 1.2
RV_MINIMUM = 750
RV_UPLIFT = 1.3
OTHER_MINIMUM = 695

VEHICLE_MULTIPLIERS = {
    VehicleType.CAR_TRUCK_SUV: 1.0,
    VehicleType.BOAT: 1.4,
    VehicleType.GOLF_CART: 0.8,
    VehicleType.MOTORCYCLE: 0.7,
    VehicleType.RV_5TH_WHEEL: 1.8,
    VehicleType.TRAVEL_TRAILER: 1.6,
    VehicleType.ATV_UTV: 0.75,
    VehicleType.HEAVY_EQUIPMENT: 2.0,
    VehicleType.OTHER: 1.3,
}
DEFAULT_MULTIPLIER = 1.0

NO_DISTANCE_MESSAGE = "Unable to calculate distance. Please try again."
SHORT_DISTANCE_MESSAGE = (
    "For short distances under 100 miles, please contact us directly for a custom quote."
)

ROUTE_SNOWBIRD = "snowbird"
ROUTE_NC_GA_NY = "nc_ga_ny"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify_vehicle(vehicle: Optional[VehicleType]) -> VehicleCategory:
    if vehicle is VehicleType.CAR_TRUCK_SUV:
        return VehicleCategory.CAR_TRUCK_SUV
    if vehicle is VehicleType.RV_5TH_WHEEL:
        return VehicleCategory.RV
    return VehicleCategory.OTHER


def detect_route(
    vehicle: Optional[VehicleType],
    pickup_location: Optional[str],
    dropoff_location: Optional[str],
) -> Optional[str]:
    """Named special route for car/truck/suv shipments, or None."""
    if vehicle is not VehicleType.CAR_TRUCK_SUV or not pickup_location or not dropoff_location:
        return None

    pickup_state = route_state(pickup_location)
    dropoff_state = route_state(dropoff_location)

    if pickup_state == "FL" and dropoff_state in NORTHEAST_STATES:
        logger.info(f"Snowbird route detected: FL to {dropoff_state}")
        return ROUTE_SNOWBIRD
    if pickup_state in ("NC", "GA") and dropoff_state == "NY":
        logger.info(f"NC/GA to NY route detected: {pickup_state} to NY")
        return ROUTE_NC_GA_NY
    return None


def _apply_category_rules(price: float, category: VehicleCategory, distance: float) -> float:
    if category is VehicleCategory.CAR_TRUCK_SUV:
        if price < CAR_MINIMUM:
            price = CAR_MINIMUM
        if CAR_UPLIFT_LOW <= price <= CAR_UPLIFT_HIGH:
            price = round_half_up(price * CAR_UPLIFT)
        return price

    if category is VehicleCategory.RV:
        if price < RV_MINIMUM:
            return RV_MINIMUM
        if distance < SHORT_ROUTE_MAX_MILES:
            return round_half_up(price * RV_UPLIFT)
        return price

    return max(price, OTHER_MINIMUM)


def calculate_price(
    distance: Optional[float],
    vehicle_type: Union[VehicleType, str, None],
    date: Optional[date_type] = None,
    pickup_location: Optional[str] = None,
    dropoff_location: Optional[str] = None,
) -> QuoteResult:
    """Open and enclosed transport prices for one shipment.

    Pure and deterministic. Missing or short-haul distances resolve to a
    zero-price result carrying a customer-facing ``message`` instead of
    raising. ``date`` is accepted for seasonal pricing but no rule reads it.
    """
    if not distance or not math.isfinite(distance):
        logger.warning("Distance is missing or not finite, returning no-distance quote")
        return QuoteResult(open_transport=0, enclosed_transport=0, transit_time=0,
                           message=NO_DISTANCE_MESSAGE)

    transit_time = math.ceil(distance / MILES_PER_TRANSIT_DAY) + 1

    if distance <= CUSTOM_QUOTE_MAX_MILES:
        return QuoteResult(open_transport=0, enclosed_transport=0, transit_time=transit_time,
                           message=SHORT_DISTANCE_MESSAGE)

    vehicle = VehicleType.parse(vehicle_type)
    category = classify_vehicle(vehicle)
    route = detect_route(vehicle, pickup_location, dropoff_location)

    mid_range = MID_RANGE_SURCHARGE if distance <= MID_RANGE_MAX_MILES else 1.0
    price = distance * BASE_RATE_PER_MILE * mid_range

    short_route = 1.0
    if vehicle is VehicleType.CAR_TRUCK_SUV and distance < SHORT_ROUTE_MAX_MILES:
        short_route = SHORT_ROUTE_MARKUP
        price *= SHORT_ROUTE_MARKUP
    base_price = price

    if route == ROUTE_SNOWBIRD:
        price = max(price, SNOWBIRD_MINIMUM)
    elif route == ROUTE_NC_GA_NY:
        price = max(price, NC_GA_NY_MINIMUM)
    price_after_route = price

    price = _apply_category_rules(price, category, distance)
    price_after_category = price

    if vehicle is not None:
        multiplier = VEHICLE_MULTIPLIERS[vehicle]
    else:
        logger.warning(f'Vehicle type "{vehicle_type}" not recognized, using multiplier {DEFAULT_MULTIPLIER}')
        multiplier = DEFAULT_MULTIPLIER

    open_price = price * multiplier
    enclosed_price = open_price * ENCLOSED_MULTIPLIER

    breakdown = {
        "distance": distance,
        "base_rate_per_mile": BASE_RATE_PER_MILE,
        "mid_range_surcharge": mid_range,
        "short_route_markup": short_route,
        "base_price": round(base_price, 2),
        "route_rule": route,
        "price_after_route_rule": round(price_after_route, 2),
        "vehicle_category": category.value,
        "price_after_category_rules": round(price_after_category, 2),
        "vehicle_multiplier": multiplier,
        "open_before_minimum": round(open_price, 2),
        "enclosed_before_minimum": round(enclosed_price, 2),
    }

    return QuoteResult(
        open_transport=round_half_up(max(open_price, ABSOLUTE_MINIMUM)),
        enclosed_transport=round_half_up(max(enclosed_price, ABSOLUTE_MINIMUM)),
        transit_time=transit_time,
        price_breakdown=breakdown,
    )
