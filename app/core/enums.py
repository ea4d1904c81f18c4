from enum import Enum
from typing import Optional


class VehicleType(str, Enum):
    CAR_TRUCK_SUV = "car/truck/suv"
    BOAT = "boat"
    GOLF_CART = "golf cart"
    MOTORCYCLE = "motorcycle"
    RV_5TH_WHEEL = "rv/5th wheel"
    TRAVEL_TRAILER = "travel trailer"
    ATV_UTV = "atv/utv"
    HEAVY_EQUIPMENT = "heavy equipment"
    OTHER = "other"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, raw) -> Optional["VehicleType"]:
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


class VehicleCategory(str, Enum):
    CAR_TRUCK_SUV = "car_truck_suv"
    RV = "rv"
    OTHER = "other"

    def __str__(self):
        return self.value


class EventType(str, Enum):
    QUOTE_SUBMISSION = "quote_submission"
    FINAL_SUBMISSION = "final_submission"

    def __str__(self):
        return self.value


class FormType(str, Enum):
    QUOTE = "quote"
    FINAL = "final"

    def __str__(self):
        return self.value


class DeliveryState(str, Enum):
    SUCCESS = "success"
    RETRY_SUCCESS = "retry_success"
    RETRY_FAILURE = "retry_failure"
    HARD_FAILURE = "hard_failure"

    def __str__(self):
        return self.value


class AttemptKind(str, Enum):
    INITIAL = "initial"
    RETRY = "retry"

    def __str__(self):
        return self.value
