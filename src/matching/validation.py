"""
Field validation for person records.

``PersonSpecification`` carries the per-field rules as pydantic validators;
``PersonValidator`` runs it against a record and flattens the pydantic
errors into ``ValidationIssue`` values for the data quality gate.
"""

import re
from dataclasses import asdict
from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, TypeAdapter, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from src.matching.models import PersonRecord, ValidationIssue

MAX_NAME_LENGTH = 20

GIVEN_REQUIRED = "Given name is required"
GIVEN_TOO_LONG = "Given name cannot be greater than 20 characters"
FAMILY_REQUIRED = "Family name is required"
FAMILY_TOO_LONG = "Family name cannot be greater than 20 characters"
BIRTH_DATE_REQUIRED = "Date of birth is required"
BIRTH_DATE_INVALID = "Invalid date of birth"
GENDER_INVALID = "Gender has to match FHIR standards"
PHONE_INVALID = "Invalid phone number."
EMAIL_INVALID = "Invalid email address."
POSTCODE_INVALID = "Invalid postcode."

ALLOWED_GENDERS = frozenset({"male", "female", "unknown", "other"})

UK_POSTCODE = re.compile(
    r"^(([A-Z][0-9]{1,2})|(([A-Z][A-HJ-Y][0-9]{1,2})|(([A-Z][0-9][A-Z])"
    r"|([A-Z][A-HJ-Y][0-9]?[A-Z])))) [0-9][A-Z]{2}$"
)

# Digits with optional leading +, grouping separators and an extension
PHONE_NUMBER = re.compile(
    r"^(\+\s?)?(\(\d+\)|\d+)([\s\-.]?(\(\d+\)|\d+))*(\s?(x|ext\.?)\s?\d+)?$",
    re.IGNORECASE,
)

_email_adapter = TypeAdapter(EmailStr)


def _check_name(value: str | None, required: str, too_long: str) -> str | None:
    if value is None or not value.strip():
        raise PydanticCustomError("required", required)
    if len(value) > MAX_NAME_LENGTH:
        raise PydanticCustomError("too_long", too_long)
    return value


class PersonSpecification(BaseModel):
    """Validation rules for the demographics of one person."""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    given: str | None = None
    family: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: str | None = None
    address_postal_code: str | None = None

    @field_validator("given")
    @classmethod
    def check_given(cls, value: str | None) -> str | None:
        return _check_name(value, GIVEN_REQUIRED, GIVEN_TOO_LONG)

    @field_validator("family")
    @classmethod
    def check_family(cls, value: str | None) -> str | None:
        return _check_name(value, FAMILY_REQUIRED, FAMILY_TOO_LONG)

    @field_validator("birth_date", mode="before")
    @classmethod
    def check_birth_date(cls, value: object) -> object:
        if value is None or value == "":
            raise PydanticCustomError("required", BIRTH_DATE_REQUIRED)
        if not isinstance(value, date) or value > date.today():
            raise PydanticCustomError("invalid", BIRTH_DATE_INVALID)
        return value

    @field_validator("gender")
    @classmethod
    def check_gender(cls, value: str | None) -> str | None:
        if value and value.lower() not in ALLOWED_GENDERS:
            raise PydanticCustomError("invalid", GENDER_INVALID)
        return value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        if value and not PHONE_NUMBER.match(value.strip()):
            raise PydanticCustomError("invalid", PHONE_INVALID)
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        if not value:
            return value
        try:
            _email_adapter.validate_python(value)
        except ValidationError:
            raise PydanticCustomError("invalid", EMAIL_INVALID) from None
        return value

    @field_validator("address_postal_code")
    @classmethod
    def check_postcode(cls, value: str | None) -> str | None:
        if value and not UK_POSTCODE.match(value):
            raise PydanticCustomError("invalid", POSTCODE_INVALID)
        return value


class PersonValidator:
    """Validates person records against ``PersonSpecification``."""

    def validate(self, record: PersonRecord) -> list[ValidationIssue]:
        try:
            PersonSpecification.model_validate(asdict(record))
        except ValidationError as e:
            return [
                ValidationIssue(
                    field_names=tuple(str(part) for part in error["loc"]),
                    message=error["msg"],
                )
                for error in e.errors()
            ]
        return []
