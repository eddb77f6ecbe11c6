"""
Domain models for registry matching.

Person records and reconciliation requests are plain dataclasses owned by a
single match attempt. Payloads exchanged with the registry gateway are
pydantic models so they can be validated straight from JSON.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Date format used by registry search parameters
SEARCH_DATE_FORMAT = "%Y-%m-%d"


class MatchStatus(str, Enum):
    """Final status of a match attempt."""

    MATCH = "Match"
    POTENTIAL_MATCH = "PotentialMatch"
    LOW_CONFIDENCE_MATCH = "LowConfidenceMatch"
    MANY_MATCH = "ManyMatch"
    NO_MATCH = "NoMatch"
    ERROR = "Error"


# Statuses that carry a confidence score
SCORED_STATUSES = frozenset(
    {
        MatchStatus.MATCH,
        MatchStatus.POTENTIAL_MATCH,
        MatchStatus.LOW_CONFIDENCE_MATCH,
    }
)


class QualityType(str, Enum):
    """Quality of a single demographic field."""

    VALID = "Valid"
    NOT_PROVIDED = "NotProvided"
    INVALID = "Invalid"


class SearchResultType(str, Enum):
    """Kind of result returned by a registry search."""

    MATCHED = "Matched"
    MULTI_MATCHED = "MultiMatched"
    UNMATCHED = "Unmatched"
    ERROR = "Error"


class LookupStatus(str, Enum):
    """Status of a registry lookup by identifier."""

    SUCCESS = "Success"
    INVALID_NHS_NUMBER = "InvalidNhsNumber"
    PATIENT_NOT_FOUND = "PatientNotFound"
    ERROR = "Error"


class ReconciliationStatus(str, Enum):
    """Relationship between local and registry demographics."""

    LOCAL_DEMOGRAPHICS_DID_NOT_MATCH = "LocalDemographicsDidNotMatchToAnNhsNumber"
    LOCAL_NHS_NUMBER_IS_NOT_VALID = "LocalNhsNumberIsNotValid"
    LOCAL_NHS_NUMBER_IS_NOT_FOUND = "LocalNhsNumberIsNotFoundInNhs"
    LOCAL_NHS_NUMBER_IS_SUPERSEDED = "LocalNhsNumberIsSuperseded"
    NO_DIFFERENCES = "NoDifferences"
    ONE_DIFFERENCE = "OneDifference"
    MANY_DIFFERENCES = "ManyDifferences"
    ERROR = "Error"


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""

    MATCH = "Match"
    DEMOGRAPHIC = "Demographic"


@dataclass
class PersonRecord:
    """Demographics supplied by a caller for a single match attempt."""

    given: str | None = None
    family: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: str | None = None
    address_postal_code: str | None = None


@dataclass
class RawSearchRecord(PersonRecord):
    """Demographics plus caller-supplied birth date tokens for a raw search."""

    raw_birth_date: list[str] = field(default_factory=list)
    fuzzy_match: bool = False
    exact_match: bool = False


@dataclass
class ReconciliationRequest(PersonRecord):
    """Locally held demographics and, optionally, the locally held NHS number."""

    nhs_number: str | None = None


# Wire names of registry search parameters
_QUERY_PARAM_NAMES = {
    "fuzzy_match": "_fuzzy-match",
    "exact_match": "_exact-match",
    "history": "_history",
    "given": "given",
    "family": "family",
    "birthdate": "birthdate",
    "address_postalcode": "address-postalcode",
    "gender": "gender",
    "phone": "phone",
    "email": "email",
}


@dataclass(frozen=True)
class SearchQuery:
    """A single registry search; never modified once built."""

    exact_match: bool | None = None
    fuzzy_match: bool | None = None
    history: bool | None = None
    given: tuple[str, ...] | None = None
    family: str | None = None
    birthdate: tuple[str, ...] = ()
    address_postalcode: str | None = None
    gender: str | None = None
    phone: str | None = None
    email: str | None = None

    def to_params(self) -> dict[str, Any]:
        """Convert to registry search parameters, omitting unset values."""
        params: dict[str, Any] = {}
        for attr, name in _QUERY_PARAM_NAMES.items():
            value = getattr(self, attr)
            if value is None or value == ():
                continue
            params[name] = list(value) if isinstance(value, tuple) else value
        return params


@dataclass(frozen=True)
class NamedQuery:
    """A search query labelled with the cascade entry that produced it."""

    name: str
    query: SearchQuery


@dataclass(frozen=True)
class ValidationIssue:
    """A validation failure reported for one or more fields."""

    field_names: tuple[str, ...]
    message: str


class RegistryModel(BaseModel):
    """Base for payloads exchanged with the registry gateway (camelCase JSON)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegistrySearchResult(RegistryModel):
    """Result of one registry search."""

    type: SearchResultType = SearchResultType.UNMATCHED
    score: float | None = None
    nhs_number: str | None = None
    error_message: str | None = None

    @classmethod
    def matched(cls, nhs_number: str, score: float | None) -> "RegistrySearchResult":
        return cls(type=SearchResultType.MATCHED, nhs_number=nhs_number, score=score)

    @classmethod
    def multi_matched(cls) -> "RegistrySearchResult":
        return cls(type=SearchResultType.MULTI_MATCHED)

    @classmethod
    def unmatched(cls) -> "RegistrySearchResult":
        return cls(type=SearchResultType.UNMATCHED)

    @classmethod
    def error(cls, message: str) -> "RegistrySearchResult":
        return cls(type=SearchResultType.ERROR, error_message=message)


class RegistryPerson(RegistryModel):
    """Demographics held by the registry for one NHS number."""

    nhs_number: str
    given_names: list[str] = []
    family_names: list[str] = []
    birth_date: date | None = None
    gender: str | None = None
    phone_numbers: list[str] = []
    emails: list[str] = []
    address_postal_codes: list[str] = []
    address_history: list[str] = []
    general_practitioner_ods_id: str | None = None


class DemographicLookupResult(RegistryModel):
    """Result of a registry lookup by NHS number."""

    result: RegistryPerson | None = None
    error_message: str | None = None
    status: LookupStatus = LookupStatus.SUCCESS


@dataclass
class DataQualityReport:
    """Per-field quality of the demographics used for a match attempt."""

    given: QualityType = QualityType.VALID
    family: QualityType = QualityType.VALID
    birth_date: QualityType = QualityType.VALID
    gender: QualityType = QualityType.VALID
    phone: QualityType = QualityType.VALID
    email: QualityType = QualityType.VALID
    address_postal_code: QualityType = QualityType.VALID

    def has_minimum_data(self) -> bool:
        """Given name, family name and birth date are all usable."""
        return (
            self.given == QualityType.VALID
            and self.family == QualityType.VALID
            and self.birth_date == QualityType.VALID
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "given": self.given.value,
            "family": self.family.value,
            "birthdate": self.birth_date.value,
            "gender": self.gender.value,
            "phone": self.phone.value,
            "email": self.email.value,
            "addresspostalcode": self.address_postal_code.value,
        }


@dataclass
class MatchOutcome:
    """Result of a match attempt."""

    status: MatchStatus
    score: float | None = None
    nhs_number: str | None = None
    # Name of the cascade entry that produced the outcome
    process_stage: str | None = None
    data_quality: DataQualityReport | None = None
    error: str | None = None


@dataclass(frozen=True)
class FieldDifference:
    """A field whose local value is not reflected in the registry."""

    field_name: str
    local: str | None
    registry: str | None

    @property
    def summary_label(self) -> str:
        """Field name tagged with which side, if any, is absent."""
        if self.local is None and self.registry is None:
            return f"{self.field_name}:Both"
        if self.local is None:
            return f"{self.field_name}:LA"
        if self.registry is None:
            return f"{self.field_name}:NHS"
        return self.field_name


@dataclass
class ReconciliationOutcome:
    """Result of reconciling local demographics against the registry."""

    status: ReconciliationStatus
    match_outcome: MatchOutcome | None = None
    person: RegistryPerson | None = None
    differences: list[FieldDifference] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def difference_summary(self) -> str:
        return " - ".join(d.summary_label for d in self.differences)


@dataclass
class DemographicsOutcome:
    """Result of a demographics lookup by NHS number."""

    person: RegistryPerson | None = None
    errors: list[str] = field(default_factory=list)
