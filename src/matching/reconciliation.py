"""
Reconciliation of locally held demographics against the registry.

The local record is matched to an NHS number, the registry demographics for
that number are compared field by field, and the locally held NHS number is
checked against the matched one (invalid, not found or superseded).
"""

import logging
from collections.abc import Iterable
from datetime import date

from src.matching.engine import MatchingEngine
from src.matching.models import (
    AuditAction,
    DemographicLookupResult,
    FieldDifference,
    LookupStatus,
    PersonRecord,
    ReconciliationOutcome,
    ReconciliationRequest,
    ReconciliationStatus,
    RegistryPerson,
)
from src.matching.nhs_number import is_valid_nhs_number
from src.matching.ports import RegistryLookupPort
from src.matching.utils import UNKNOWN, age_group

logger = logging.getLogger(__name__)

UNKNOWN_LOOKUP_ERROR = "Unknown error"


def _text(value: str | None) -> str | None:
    """Blank strings count as absent."""
    if value is None or not value.strip():
        return None
    return value


def _compare_text(name: str, local: str | None, registry: str | None) -> FieldDifference | None:
    local, registry = _text(local), _text(registry)
    if local is not None and registry is not None and local.lower() == registry.lower():
        return None
    return FieldDifference(name, local, registry)


def _compare_list(name: str, local: str | None, registry: Iterable[str]) -> FieldDifference | None:
    local = _text(local)
    values = [value for value in registry if _text(value) is not None]
    if local is not None and any(value.lower() == local.lower() for value in values):
        return None
    return FieldDifference(name, local, ", ".join(values) or None)


def _compare_date(name: str, local: date | None, registry: date | None) -> FieldDifference | None:
    if local is not None and registry is not None and local == registry:
        return None
    return FieldDifference(
        name,
        local.isoformat() if local else None,
        registry.isoformat() if registry else None,
    )


def compute_differences(
    request: ReconciliationRequest, person: RegistryPerson
) -> list[FieldDifference]:
    """
    Compare local demographics with the registry's, in a fixed field order.

    A field is equal only when both sides are present and agree; string
    comparisons ignore case and accept any of the registry's values.
    """
    comparisons = (
        _compare_text("NhsNumber", request.nhs_number, person.nhs_number),
        _compare_date("BirthDate", request.birth_date, person.birth_date),
        _compare_text("Gender", request.gender, person.gender),
        _compare_list("Given", request.given, person.given_names),
        _compare_list("Family", request.family, person.family_names),
        _compare_list("Email", request.email, person.emails),
        _compare_list("Phone", request.phone, person.phone_numbers),
        _compare_list("AddressPostalCode", request.address_postal_code, person.address_postal_codes),
    )
    return [difference for difference in comparisons if difference is not None]


def classify_differences(differences: list[FieldDifference]) -> ReconciliationStatus:
    if not differences:
        return ReconciliationStatus.NO_DIFFERENCES
    if len(differences) == 1:
        return ReconciliationStatus.ONE_DIFFERENCE
    return ReconciliationStatus.MANY_DIFFERENCES


class ReconciliationEngine:
    """Reconciles local demographics and NHS numbers with the registry."""

    def __init__(self, matcher: MatchingEngine, lookup: RegistryLookupPort):
        self.matcher = matcher
        self.lookup = lookup

    async def reconcile(self, request: ReconciliationRequest) -> ReconciliationOutcome:
        """
        Reconcile a local record with the registry.

        Args:
            request: Local demographics and, optionally, the local NHS number

        Returns:
            ReconciliationOutcome with the registry person, the differences
            and the relationship between local and registry NHS numbers
        """
        outcome = await self._reconcile(request)

        logger.info(
            "[RECONCILIATION_COMPLETED] AgeGroup: %s, Gender: %s, Postcode: %s, "
            "Differences: %s, Status: %s, ProcessStage: %s",
            age_group(request.birth_date),
            request.gender or UNKNOWN,
            request.address_postal_code or UNKNOWN,
            outcome.difference_summary,
            outcome.status.value,
            outcome.match_outcome.process_stage if outcome.match_outcome else None,
        )
        return outcome

    async def _reconcile(self, request: ReconciliationRequest) -> ReconciliationOutcome:
        # The quality gate scrubs its input, so match on a copy
        record = PersonRecord(
            given=request.given,
            family=request.family,
            birth_date=request.birth_date,
            gender=request.gender,
            phone=request.phone,
            email=request.email,
            address_postal_code=request.address_postal_code,
        )
        match_outcome = await self.matcher.match(record, log_match=False)

        matched_nhs_number = match_outcome.nhs_number
        if not matched_nhs_number:
            return ReconciliationOutcome(
                status=ReconciliationStatus.LOCAL_DEMOGRAPHICS_DID_NOT_MATCH,
                match_outcome=match_outcome,
            )

        lookup = await self._lookup(matched_nhs_number)
        if lookup.result is None or lookup.error_message:
            return ReconciliationOutcome(
                status=ReconciliationStatus.ERROR,
                match_outcome=match_outcome,
                errors=[lookup.error_message or UNKNOWN_LOOKUP_ERROR],
            )

        outcome = ReconciliationOutcome(
            status=ReconciliationStatus.NO_DIFFERENCES,
            match_outcome=match_outcome,
            person=lookup.result,
            differences=compute_differences(request, lookup.result),
        )
        outcome.status = classify_differences(outcome.differences)

        local_nhs_number = _text(request.nhs_number)
        if local_nhs_number is None or local_nhs_number == matched_nhs_number:
            return outcome

        if not is_valid_nhs_number(local_nhs_number):
            outcome.status = ReconciliationStatus.LOCAL_NHS_NUMBER_IS_NOT_VALID
            return outcome

        local_lookup = await self._lookup(local_nhs_number)
        if local_lookup.status == LookupStatus.PATIENT_NOT_FOUND:
            outcome.status = ReconciliationStatus.LOCAL_NHS_NUMBER_IS_NOT_FOUND
        elif local_lookup.result is None or local_lookup.error_message:
            outcome.status = ReconciliationStatus.ERROR
            outcome.errors.append(local_lookup.error_message or UNKNOWN_LOOKUP_ERROR)
        elif local_lookup.result.nhs_number != local_nhs_number:
            outcome.status = ReconciliationStatus.LOCAL_NHS_NUMBER_IS_SUPERSEDED

        return outcome

    async def _lookup(self, nhs_number: str) -> DemographicLookupResult:
        """Audited registry lookup; failures are returned as an Error result."""
        await self.matcher.record_audit(AuditAction.DEMOGRAPHIC)
        try:
            return await self.lookup.lookup_by_identifier(nhs_number)
        except Exception as e:
            logger.warning("Registry lookup failed: %s", e)
            return DemographicLookupResult(status=LookupStatus.ERROR, error_message=str(e))
