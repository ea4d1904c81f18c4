"""Parsing helpers for free-text "City, ST 12345" locations and street addresses."""
import re
from typing import Optional

NOT_PROVIDED = "Not provided"

_CITY_RE = re.compile(r"^([^,]+)")
_STATE_AFTER_COMMA_RE = re.compile(r",\s*([A-Z]{2})")
_ZIP_RE = re.compile(r"(\d{5})(?:\s*$|-\d{4}\s*$)")
_ROUTE_STATE_RE = re.compile(r"\b([A-Z]{2})\b")
_STATE_ZIP_RE = re.compile(r"([A-Z]{2})\s+(\d{5}(-\d{4})?)")
_ZIP_TOKEN_RE = re.compile(r"^\d{5}(-\d{4})?$")


def extract_city(location: Optional[str]) -> str:
    if not location:
        return NOT_PROVIDED
    match = _CITY_RE.search(location)
    city = match.group(1).strip() if match else ""
    return city or NOT_PROVIDED


def extract_state(location: Optional[str]) -> str:
    if not location:
        return NOT_PROVIDED
    match = _STATE_AFTER_COMMA_RE.search(location)
    return match.group(1) if match else NOT_PROVIDED


def extract_zip(location: Optional[str]) -> str:
    if not location:
        return NOT_PROVIDED
    match = _ZIP_RE.search(location)
    return match.group(1) if match else NOT_PROVIDED


def route_state(location: Optional[str]) -> Optional[str]:
    """First standalone two-letter uppercase token, used for route rule detection."""
    if not location:
        return None
    match = _ROUTE_STATE_RE.search(location)
    return match.group(1) if match else None


def parse_address(address: Optional[str]) -> dict:
    """Split "street, city, ST 12345" into its parts, NOT_PROVIDED where unknown."""
    parts = [p.strip() for p in address.split(",")] if address else []
    if not parts:
        return {"street": NOT_PROVIDED, "city": NOT_PROVIDED, "state": NOT_PROVIDED, "zip": NOT_PROVIDED}

    street = parts[0]
    last = parts[-1]
    state = NOT_PROVIDED
    zip_code = NOT_PROVIDED

    match = _STATE_ZIP_RE.search(last)
    if match:
        state, zip_code = match.group(1), match.group(2)
    else:
        state_match = re.search(r"([A-Z]{2})", last)
        zip_match = re.search(r"(\d{5}(-\d{4})?)", last)
        if state_match:
            state = state_match.group(1)
        if zip_match:
            zip_code = zip_match.group(1)

    city = NOT_PROVIDED
    if len(parts) == 2:
        words = parts[1].split(" ")
        if len(words) > 1:
            kept = [w for w in words if not _ZIP_TOKEN_RE.match(w) and not re.match(r"^[A-Z]{2}$", w)]
            city = " ".join(kept) or NOT_PROVIDED
    elif len(parts) > 2:
        city = parts[-2]

    return {"street": street, "city": city, "state": state, "zip": zip_code}
