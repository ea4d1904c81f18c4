"""Canonical lead record and the two field-naming schemes sent to the CRM hook.

Downstream automations map fields either by machine names (snake_case and
camelCase) or by human labels. Both renderings are produced from one
``LeadRecord`` so every alias of a field always carries the same value.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from app.core.enums import EventType
from app.schemas.lead import LeadSubmission
from app.utils.dates import format_shipment_date
from app.utils.location_fields import (
    NOT_PROVIDED,
    extract_city,
    extract_state,
    extract_zip,
    parse_address,
)

DEFAULT_EVENT_TYPE = "form_submission"


@dataclass(frozen=True)
class OrderDetails:
    pickup_address: str
    pickup_contact_name: str
    pickup_contact_phone: str
    dropoff_address: str
    dropoff_contact_name: str
    dropoff_contact_phone: str
    pickup_parsed: dict
    dropoff_parsed: dict
    transport_type: str
    price: Any
    selected_price: Any


@dataclass(frozen=True)
class LeadRecord:
    name: str
    email: str
    phone: str
    pickup_location: str
    dropoff_location: str
    pickup_city: str
    pickup_state: str
    pickup_zip: str
    dropoff_city: str
    dropoff_state: str
    dropoff_zip: str
    distance: Union[int, float]
    transit_time: Union[int, float]
    open_price: Any
    enclosed_price: Any
    year: Any
    make: str
    model: str
    vehicle_type: str
    shipment_date: str
    submission_id: str
    submission_date: str
    event_type: str
    utm_source: Optional[str]
    utm_medium: Optional[str]
    utm_campaign: Optional[str]
    utm_term: Optional[str]
    utm_content: Optional[str]
    fbclid: Optional[str]
    referrer: str
    order: Optional[OrderDetails] = None

    @property
    def is_final(self) -> bool:
        return self.event_type == EventType.FINAL_SUBMISSION.value


def _or_missing(value) -> Any:
    return value if value else NOT_PROVIDED


def _order_details(sub: LeadSubmission) -> OrderDetails:
    return OrderDetails(
        pickup_address=_or_missing(sub.pickup_address),
        pickup_contact_name=_or_missing(sub.pickup_contact_name),
        pickup_contact_phone=_or_missing(sub.pickup_contact_phone),
        dropoff_address=_or_missing(sub.dropoff_address),
        dropoff_contact_name=_or_missing(sub.dropoff_contact_name),
        dropoff_contact_phone=_or_missing(sub.dropoff_contact_phone),
        pickup_parsed=parse_address(sub.pickup_address),
        dropoff_parsed=parse_address(sub.dropoff_address),
        transport_type=_or_missing(sub.transport_type or sub.selected_transport),
        price=_or_missing(sub.open_transport_price or sub.selected_price or sub.final_price),
        selected_price=_or_missing(sub.selected_price or sub.final_price),
    )


def build_lead_record(sub: LeadSubmission, now: Optional[datetime] = None) -> LeadRecord:
    now = now or datetime.now(timezone.utc)
    event_type = sub.event_type or DEFAULT_EVENT_TYPE

    record = LeadRecord(
        name=_or_missing(sub.name),
        email=_or_missing(sub.email),
        phone=_or_missing(sub.phone),
        pickup_location=_or_missing(sub.pickup_location),
        dropoff_location=_or_missing(sub.dropoff_location),
        pickup_city=extract_city(sub.pickup_location),
        pickup_state=extract_state(sub.pickup_location),
        pickup_zip=sub.pickup_zip or extract_zip(sub.pickup_location),
        dropoff_city=extract_city(sub.dropoff_location),
        dropoff_state=extract_state(sub.dropoff_location),
        dropoff_zip=sub.dropoff_zip or extract_zip(sub.dropoff_location),
        distance=sub.distance or 0,
        transit_time=sub.transit_time or 0,
        open_price=_or_missing(sub.open_transport_price),
        enclosed_price=_or_missing(sub.enclosed_transport_price),
        year=_or_missing(sub.year),
        make=_or_missing(sub.make),
        model=_or_missing(sub.model),
        vehicle_type=_or_missing(sub.vehicle_type),
        shipment_date=format_shipment_date(sub.shipment_date),
        submission_id=sub.submission_id or f"AUTO-{int(time.time() * 1000)}",
        submission_date=sub.submission_date or now.isoformat(),
        event_type=event_type,
        utm_source=sub.utm_source or None,
        utm_medium=sub.utm_medium or None,
        utm_campaign=sub.utm_campaign or None,
        utm_term=sub.utm_term or None,
        utm_content=sub.utm_content or None,
        fbclid=sub.fbclid or None,
        referrer=sub.referrer or "",
        order=_order_details(sub) if event_type == EventType.FINAL_SUBMISSION.value else None,
    )
    return record


def machine_fields(record: LeadRecord) -> dict:
    fields = {
        "contactInfo": {"name": record.name, "email": record.email, "phone": record.phone},
        "name": record.name,
        "email": record.email,
        "phone": record.phone,

        "pickupLocation": record.pickup_location,
        "dropoffLocation": record.dropoff_location,
        "pickup_city": record.pickup_city,
        "pickup_state": record.pickup_state,
        "pickup_zip": record.pickup_zip,
        "pickupZip": record.pickup_zip,
        "dropoff_city": record.dropoff_city,
        "dropoff_state": record.dropoff_state,
        "dropoff_zip": record.dropoff_zip,
        "dropoffZip": record.dropoff_zip,

        "distance": record.distance,
        "transit_time": record.transit_time,
        "transitTime": record.transit_time,

        "open_transport_price": record.open_price,
        "enclosed_transport_price": record.enclosed_price,
        "openTransportPrice": record.open_price,
        "enclosedTransportPrice": record.enclosed_price,

        "vehicle_year": record.year,
        "vehicle_make": record.make,
        "vehicle_model": record.model,
        "vehicle_type": record.vehicle_type,
        "year": record.year,
        "make": record.make,
        "model": record.model,
        "vehicleType": record.vehicle_type,

        "shipment_date": record.shipment_date,
        "submission_date": record.submission_date,
        "shipmentDate": record.shipment_date,
        "submissionDate": record.submission_date,

        "submission_id": record.submission_id,
        "event_type": record.event_type,
        "submissionId": record.submission_id,
        "eventType": record.event_type,

        "fbclid": record.fbclid,
        "utm_source": record.utm_source,
        "utm_medium": record.utm_medium,
        "utm_campaign": record.utm_campaign,
        "utm_term": record.utm_term,
        "utm_content": record.utm_content,
        "referrer": record.referrer,
    }

    order = record.order
    if order is not None:
        fields.update({
            "pickup_address": order.pickup_address,
            "pickupAddress": order.pickup_address,
            "pickup_contact_name": order.pickup_contact_name,
            "pickupContactName": order.pickup_contact_name,
            "pickup_contact_phone": order.pickup_contact_phone,
            "pickupContactPhone": order.pickup_contact_phone,
            "dropoff_address": order.dropoff_address,
            "dropoffAddress": order.dropoff_address,
            "dropoff_contact_name": order.dropoff_contact_name,
            "dropoffContactName": order.dropoff_contact_name,
            "dropoff_contact_phone": order.dropoff_contact_phone,
            "dropoffContactPhone": order.dropoff_contact_phone,
            "transport_type": order.transport_type,
            "transportType": order.transport_type,
            "selected_price": order.selected_price,
            "selectedPrice": order.selected_price,
        })
    return fields


def labeled_fields(record: LeadRecord) -> dict:
    fields = {
        "submissionId": record.submission_id,
        "submissionDate": record.submission_date,
        "eventType": record.event_type,

        "Contact Info Name": record.name,
        "Contact Info Email": record.email,
        "Contact Info Phone (required)": record.phone,

        "Route Details Pickup City": record.pickup_city,
        "Route Details Pickup State": record.pickup_state,
        "Route Details Pickup Zip": record.pickup_zip,
        "Route Details Dropoff City": record.dropoff_city,
        "Route Details Dropoff State": record.dropoff_state,
        "Route Details Dropoff Zip": record.dropoff_zip,
        "Route Details Distance (in miles)": record.distance,
        "Route Details Estimated Transit Time": record.transit_time,
        "Route Details Shipment Date": record.shipment_date,

        "Price Details Total Price (Open Transport Only)": record.open_price,

        "Vehicle Details Year": record.year,
        "Vehicle Details Make": record.make,
        "Vehicle Details Model": record.model,

        "pickupLocation": record.pickup_location,
        "dropoffLocation": record.dropoff_location,
        "vehicleType": record.vehicle_type,
        "shipmentDate": record.shipment_date,
        "enclosedTransportPrice": record.enclosed_price,
    }

    order = record.order
    if order is not None:
        pickup, dropoff = order.pickup_parsed, order.dropoff_parsed
        fields.update({
            "Pickup Address": order.pickup_address,
            "Pickup Contact Name": order.pickup_contact_name,
            "Pickup Contact Phone": order.pickup_contact_phone,
            "Dropoff Address": order.dropoff_address,
            "Dropoff Contact Name": order.dropoff_contact_name,
            "Dropoff Contact Phone": order.dropoff_contact_phone,
            "Pickup Street": pickup["street"],
            "Pickup City": pickup["city"],
            "Pickup State": pickup["state"],
            "Pickup Zip": pickup["zip"],
            "Dropoff Street": dropoff["street"],
            "Dropoff City": dropoff["city"],
            "Dropoff State": dropoff["state"],
            "Dropoff Zip": dropoff["zip"],
            "Vehicle Details": f"{record.year} {record.make} {record.model}",
            "Transport Type": order.transport_type,
            "Price": order.price,
        })
    return fields


def build_webhook_payload(record: LeadRecord) -> dict:
    """Machine fields overlaid with the labeled fields, as one JSON object."""
    return {**machine_fields(record), **labeled_fields(record)}
