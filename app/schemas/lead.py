from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional, Union
from app.core.enums import DeliveryState


class LeadSubmission(BaseModel):
    """Inbound quote or order form. JSON keys are camelCase, UTM keys stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_info: Optional[dict] = None

    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    pickup_zip: Optional[str] = None
    dropoff_zip: Optional[str] = None

    vehicle_type: Optional[str] = None
    year: Optional[Union[int, str]] = None
    make: Optional[str] = None
    model: Optional[str] = None

    distance: Optional[Union[int, float]] = None
    transit_time: Optional[Union[int, float]] = None
    open_transport_price: Optional[Union[int, float, str]] = None
    enclosed_transport_price: Optional[Union[int, float, str]] = None

    shipment_date: Optional[str] = None
    submission_id: Optional[str] = None
    submission_date: Optional[str] = None
    event_type: Optional[str] = None

    # Final order details
    pickup_address: Optional[str] = None
    pickup_contact_name: Optional[str] = None
    pickup_contact_phone: Optional[str] = None
    dropoff_address: Optional[str] = None
    dropoff_contact_name: Optional[str] = None
    dropoff_contact_phone: Optional[str] = None
    transport_type: Optional[str] = None
    selected_transport: Optional[str] = None
    selected_price: Optional[Union[int, float, str]] = None
    final_price: Optional[Union[int, float, str]] = None

    utm_source: Optional[str] = Field(default=None, alias="utm_source")
    utm_medium: Optional[str] = Field(default=None, alias="utm_medium")
    utm_campaign: Optional[str] = Field(default=None, alias="utm_campaign")
    utm_term: Optional[str] = Field(default=None, alias="utm_term")
    utm_content: Optional[str] = Field(default=None, alias="utm_content")
    fbclid: Optional[str] = None
    referrer: Optional[str] = None

    # Health-check / diagnostic markers
    submission_type: Optional[str] = Field(default=None, alias="type")
    source: Optional[str] = None

    def contact_email(self) -> str:
        return self.email or (self.contact_info or {}).get("email") or ""

    def contact_phone(self) -> str:
        return self.phone or (self.contact_info or {}).get("phone") or ""


class FieldError(BaseModel):
    field: str
    message: str


class DispatchResult(BaseModel):
    success: bool
    message: str
    state: Optional[DeliveryState] = None
    diagnostics: Optional[dict[str, Any]] = None


class LeadRelayResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
