from app.core.enums import FormType
from app.schemas.lead import FieldError, LeadSubmission

REQUIRED_FIELDS = (
    "name", "email", "phone",
    "pickup_location", "pickup_zip",
    "dropoff_location", "dropoff_zip",
    "vehicle_type", "year", "make", "model",
    "shipment_date",
)

REQUIRED_FINAL_FIELDS = REQUIRED_FIELDS + ("pickup_address", "dropoff_address")


def is_diagnostic_ping(sub: LeadSubmission) -> bool:
    """Health checks and empty pings that must never reach the CRM."""
    return (
        (not sub.phone and not sub.name)
        or sub.submission_type == "health_check"
        or sub.source == "auto_diagnostic_system"
    )


def normalize_final_submission(sub: LeadSubmission) -> LeadSubmission:
    """Accept the alternate order field names the booking form sends."""
    updates = {}
    if not sub.transport_type and sub.selected_transport:
        updates["transport_type"] = sub.selected_transport
    if not sub.selected_price and sub.final_price:
        updates["selected_price"] = sub.final_price
    return sub.model_copy(update=updates) if updates else sub


def validate_form_data(sub: LeadSubmission, form_type: FormType = FormType.QUOTE) -> list[FieldError]:
    required = REQUIRED_FINAL_FIELDS if form_type == FormType.FINAL else REQUIRED_FIELDS
    errors = []
    for field in required:
        if not getattr(sub, field):
            alias = LeadSubmission.model_fields[field].alias or field
            errors.append(FieldError(field=alias, message=f"{alias} is required"))
    return errors
