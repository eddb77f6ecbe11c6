"""
Data quality gate run before any registry call.

Validation messages are mapped to a per-field quality using a fixed table of
"required" and "invalid" messages. Optional fields classified Invalid are
cleared on the record so they never reach a search query; a valid gender is
lowercased to its FHIR code.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from src.matching import validation as rules
from src.matching.models import DataQualityReport, PersonRecord, QualityType
from src.matching.ports import ValidationPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualityField:
    """How one tracked field is read, classified and scrubbed."""

    name: str
    value: Callable[[PersonRecord], object]
    required_message: str | None
    invalid_messages: tuple[str, ...]
    clear: Callable[[PersonRecord], None] | None = None
    normalise: Callable[[PersonRecord], None] | None = None


def _clear_gender(record: PersonRecord) -> None:
    record.gender = None


def _lowercase_gender(record: PersonRecord) -> None:
    if record.gender:
        record.gender = record.gender.lower()


def _clear_phone(record: PersonRecord) -> None:
    record.phone = None


def _clear_email(record: PersonRecord) -> None:
    record.email = None


def _clear_postcode(record: PersonRecord) -> None:
    record.address_postal_code = None


# Field names match both PersonRecord and DataQualityReport attributes
QUALITY_FIELDS: tuple[QualityField, ...] = (
    QualityField(
        "given",
        lambda r: r.given,
        rules.GIVEN_REQUIRED,
        (rules.GIVEN_TOO_LONG,),
    ),
    QualityField(
        "family",
        lambda r: r.family,
        rules.FAMILY_REQUIRED,
        (rules.FAMILY_TOO_LONG,),
    ),
    QualityField(
        "birth_date",
        lambda r: r.birth_date,
        rules.BIRTH_DATE_REQUIRED,
        (rules.BIRTH_DATE_INVALID,),
    ),
    QualityField(
        "gender",
        lambda r: r.gender,
        None,
        (rules.GENDER_INVALID,),
        _clear_gender,
        _lowercase_gender,
    ),
    QualityField(
        "phone",
        lambda r: r.phone,
        None,
        (rules.PHONE_INVALID,),
        _clear_phone,
    ),
    QualityField(
        "email",
        lambda r: r.email,
        None,
        (rules.EMAIL_INVALID,),
        _clear_email,
    ),
    QualityField(
        "address_postal_code",
        lambda r: r.address_postal_code,
        None,
        (rules.POSTCODE_INVALID,),
        _clear_postcode,
    ),
)


def _is_empty(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class DataQualityGate:
    """Classifies each tracked field of a person record."""

    def __init__(self, validator: ValidationPort | None = None):
        self.validator = validator or rules.PersonValidator()

    def evaluate(self, record: PersonRecord) -> DataQualityReport:
        """
        Validate the record and build its quality report.

        Invalid optional fields are cleared and a valid gender lowercased on
        ``record`` as a side effect.

        Args:
            record: Person record to screen; modified in place

        Returns:
            DataQualityReport for the record as submitted
        """
        issues = self.validator.validate(record)
        qualities: dict[str, QualityType] = {}

        for quality_field in QUALITY_FIELDS:
            messages = [
                issue.message for issue in issues if quality_field.name in issue.field_names
            ]
            quality = self._classify(quality_field, record, messages)
            qualities[quality_field.name] = quality

            if quality == QualityType.INVALID and quality_field.clear is not None:
                quality_field.clear(record)
            elif quality == QualityType.VALID and quality_field.normalise is not None:
                quality_field.normalise(record)

        return DataQualityReport(**qualities)

    @staticmethod
    def _classify(
        quality_field: QualityField,
        record: PersonRecord,
        messages: list[str],
    ) -> QualityType:
        if not messages:
            if _is_empty(quality_field.value(record)):
                return QualityType.NOT_PROVIDED
            return QualityType.VALID

        if quality_field.required_message in messages:
            return QualityType.NOT_PROVIDED

        unknown = [m for m in messages if m not in quality_field.invalid_messages]
        if unknown:
            logger.debug(
                "Unrecognised validation message for %s: %s", quality_field.name, unknown
            )
        return QualityType.INVALID
