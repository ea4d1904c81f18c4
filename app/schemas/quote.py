from pydantic import BaseModel, Field
from typing import Optional

class QuoteRequest(BaseModel):
    distance_miles: Optional[float] = Field(None, allow_inf_nan=False)
    vehicle_type: str
    shipment_date: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None

class RouteQuoteRequest(BaseModel):
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    vehicle_type: str
    shipment_date: Optional[str] = None

class QuoteResult(BaseModel):
    open_transport: int
    enclosed_transport: int
    transit_time: int
    message: Optional[str] = None
    price_breakdown: dict = Field(default_factory=dict)

class RouteQuoteResponse(QuoteResult):
    distance_miles: Optional[float] = Field(None, allow_inf_nan=False)
    travel_time: Optional[str] = None

class DistanceResponse(BaseModel):
    distance: float
    time: Optional[str] = None
