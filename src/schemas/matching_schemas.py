"""Schemas for matching, demographics and reconciliation endpoints."""

from datetime import date

from pydantic import BaseModel, Field

from src.matching.models import (
    FieldDifference,
    MatchOutcome,
    MatchStatus,
    PersonRecord,
    RawSearchRecord,
    ReconciliationOutcome,
    ReconciliationRequest,
    ReconciliationStatus,
    RegistryPerson,
)


class PersonDetails(BaseModel):
    """Demographics submitted for a match attempt."""

    given: str | None = Field(default=None, description="Given name")
    family: str | None = Field(default=None, description="Family name")
    birth_date: date | None = Field(default=None, description="Date of birth (YYYY-MM-DD)")
    gender: str | None = Field(
        default=None, description="FHIR administrative gender (male, female, unknown, other)"
    )
    phone: str | None = Field(default=None, description="Phone number")
    email: str | None = Field(default=None, description="Email address")
    address_postal_code: str | None = Field(default=None, description="UK postcode")

    def _person_fields(self) -> dict:
        return {
            "given": self.given,
            "family": self.family,
            "birth_date": self.birth_date,
            "gender": self.gender,
            "phone": self.phone,
            "email": self.email,
            "address_postal_code": self.address_postal_code,
        }


class PersonMatchRequest(PersonDetails):
    """Request model for matching a person to an NHS number."""

    search_strategy: str | None = Field(
        default=None,
        description="Search strategy name. Defaults to the configured strategy.",
    )
    strategy_version: int | None = Field(
        default=None,
        description="Strategy version. Defaults to the strategy's default version.",
    )

    def to_record(self) -> PersonRecord:
        return PersonRecord(**self._person_fields())


class RawMatchRequest(PersonDetails):
    """Request model for a single search with caller-supplied date tokens."""

    raw_birth_date: list[str] = Field(
        default_factory=list,
        description="Birth date search tokens, e.g. ['ge2010-01-01', 'le2011-01-01']",
    )
    fuzzy_match: bool = Field(default=False, description="Request a fuzzy search")
    exact_match: bool = Field(default=False, description="Request an exact search")

    def to_record(self) -> RawSearchRecord:
        return RawSearchRecord(
            **self._person_fields(),
            raw_birth_date=list(self.raw_birth_date),
            fuzzy_match=self.fuzzy_match,
            exact_match=self.exact_match,
        )


class ReconciliationRequestBody(PersonDetails):
    """Request model for reconciling local demographics with the registry."""

    nhs_number: str | None = Field(default=None, description="Locally held NHS number")

    def to_request(self) -> ReconciliationRequest:
        return ReconciliationRequest(**self._person_fields(), nhs_number=self.nhs_number)


class MatchResultSchema(BaseModel):
    """Outcome of a match attempt."""

    match_status: MatchStatus
    score: float | None = None
    nhs_number: str | None = None
    process_stage: str | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: MatchOutcome) -> "MatchResultSchema":
        return cls(
            match_status=outcome.status,
            score=outcome.score,
            nhs_number=outcome.nhs_number,
            process_stage=outcome.process_stage,
            error=outcome.error,
        )


class PersonMatchResponse(BaseModel):
    """Response model for match endpoints."""

    result: MatchResultSchema
    data_quality: dict[str, str] | None = None

    @classmethod
    def from_outcome(cls, outcome: MatchOutcome) -> "PersonMatchResponse":
        return cls(
            result=MatchResultSchema.from_outcome(outcome),
            data_quality=outcome.data_quality.to_dict() if outcome.data_quality else None,
        )


class RegistryPersonSchema(BaseModel):
    """Registry demographics for one NHS number."""

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

    @classmethod
    def from_person(cls, person: RegistryPerson | None) -> "RegistryPersonSchema | None":
        if person is None:
            return None
        return cls.model_validate(person.model_dump())


class DemographicResponse(BaseModel):
    """Response model for the demographics endpoint."""

    result: RegistryPersonSchema | None = None
    errors: list[str] = []


class DifferenceSchema(BaseModel):
    """A field that differs between local and registry demographics."""

    field_name: str
    local: str | None = None
    nhs: str | None = None

    @classmethod
    def from_difference(cls, difference: FieldDifference) -> "DifferenceSchema":
        return cls(
            field_name=difference.field_name,
            local=difference.local,
            nhs=difference.registry,
        )


class ReconciliationResponse(BaseModel):
    """Response model for the reconciliation endpoint."""

    status: ReconciliationStatus
    match_status: MatchStatus | None = None
    process_stage: str | None = None
    person: RegistryPersonSchema | None = None
    differences: list[DifferenceSchema] = []
    difference_summary: str = ""
    errors: list[str] = []

    @classmethod
    def from_outcome(cls, outcome: ReconciliationOutcome) -> "ReconciliationResponse":
        match_outcome = outcome.match_outcome
        return cls(
            status=outcome.status,
            match_status=match_outcome.status if match_outcome else None,
            process_stage=match_outcome.process_stage if match_outcome else None,
            person=RegistryPersonSchema.from_person(outcome.person),
            differences=[DifferenceSchema.from_difference(d) for d in outcome.differences],
            difference_summary=outcome.difference_summary,
            errors=list(outcome.errors),
        )
