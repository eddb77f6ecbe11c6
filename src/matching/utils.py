"""Helpers shared by matching and reconciliation logging."""

import hashlib
from datetime import date

from src.matching.models import PersonRecord

UNKNOWN = "Unknown"

# Upper bound (inclusive, in completed years) and label of each age band
_AGE_BANDS: tuple[tuple[int, str], ...] = (
    (0, "Less than 1 year"),
    (3, "1-3 years"),
    (7, "4-7 years"),
    (11, "8-11 years"),
    (15, "12-15 years"),
    (18, "16-18 years"),
)
_OLDEST_BAND = "Over 18 years"

# Gender codes used by some source systems
_GENDER_CODES = {
    "0": "not known",
    "1": "male",
    "2": "female",
    "9": "not specified",
}


def age_in_years(birth_date: date, today: date | None = None) -> int:
    """Completed years between ``birth_date`` and ``today``."""
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def age_group(birth_date: date | None, today: date | None = None) -> str:
    """Age band label used in completion logs."""
    if birth_date is None:
        return UNKNOWN

    age = age_in_years(birth_date, today)
    for upper, label in _AGE_BANDS:
        if age <= upper:
            return label
    return _OLDEST_BAND


def gender_from_code(value: str | None) -> str:
    """Map a numeric gender code to its name; other values are returned unchanged."""
    if value is None or not value.strip():
        return ""
    if value.strip().isdigit():
        return _GENDER_CODES.get(value.strip(), "unknown")
    return value


def search_id(record: PersonRecord) -> str:
    """
    Stable SHA-256 identifier for the demographics of a search.

    Names are lowercased, the birth date formatted as dd/MM/yyyy and the
    postcode lowercased with whitespace removed before hashing.
    """
    given = (record.given or "").lower()
    family = (record.family or "").lower()
    birth_date = record.birth_date.strftime("%d/%m/%Y") if record.birth_date else ""
    gender = gender_from_code(record.gender)
    postcode = "".join((record.address_postal_code or "").split()).lower()

    data = f"{given}{family}{birth_date}{gender}{postcode}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
