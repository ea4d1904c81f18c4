from datetime import date, datetime
from typing import Union, Optional

from app.utils.location_fields import NOT_PROVIDED

_INPUT_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y")


def _parse(raw: str) -> Optional[date]:
    text = raw.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_shipment_date(value: Union[str, date, None]) -> str:
    """MM/DD/YYYY, the raw input when it can't be parsed, NOT_PROVIDED when empty."""
    if not value:
        return NOT_PROVIDED
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%m/%d/%Y")
    parsed = _parse(str(value))
    if parsed is None:
        return str(value)
    return parsed.strftime("%m/%d/%Y")
