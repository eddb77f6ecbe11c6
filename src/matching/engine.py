"""
Person matching against the registry.

Matching strategy:
1. Screen the record with the data quality gate (no registry call on failure)
2. Build the cascade for the selected strategy and version
3. Issue cascade queries in order; a confirmed Match ends the search
4. Otherwise return the best scored result, a ManyMatch, or NoMatch
"""

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import anyio

from src.exceptions import ConfigurationError
from src.matching.data_quality import DataQualityGate
from src.matching.models import (
    SCORED_STATUSES,
    AuditAction,
    DataQualityReport,
    DemographicsOutcome,
    MatchOutcome,
    MatchStatus,
    NamedQuery,
    PersonRecord,
    RawSearchRecord,
    RegistrySearchResult,
    SearchQuery,
    SearchResultType,
)
from src.matching.nhs_number import NHS_NUMBER_LENGTH, is_valid_nhs_number
from src.matching.ports import (
    AuditPort,
    RegistryLookupPort,
    RegistrySearchPort,
    ValidationPort,
)
from src.matching.strategies import get_strategy
from src.matching.utils import UNKNOWN, age_group, search_id

if TYPE_CHECKING:
    from src.settings import Settings

logger = logging.getLogger(__name__)

RAW_QUERY_NAME = "RawQuery"

NHS_NUMBER_REQUIRED = "NHS number is required"
NHS_NUMBER_LENGTH_INVALID = "NHS number must be 10 digits"
NHS_NUMBER_INVALID = "NHS number is not valid"

_RAW_STATUSES = {
    SearchResultType.MATCHED: MatchStatus.MATCH,
    SearchResultType.MULTI_MATCHED: MatchStatus.MANY_MATCH,
    SearchResultType.UNMATCHED: MatchStatus.NO_MATCH,
    SearchResultType.ERROR: MatchStatus.ERROR,
}


@dataclass(frozen=True)
class MatchingConfig:
    """Matching behaviour fixed at engine construction."""

    strategy: str = "strategy1"
    strategy_version: int | None = None
    dob_range_months: int | None = None
    include_gender: bool = True
    match_threshold: float = 0.95
    potential_match_threshold: float = 0.85
    # Whole-cascade timeout in seconds; None disables it
    timeout: float | None = 30.0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "MatchingConfig":
        return cls(
            strategy=settings.search_strategy,
            strategy_version=settings.search_strategy_version,
            dob_range_months=settings.dob_range_months,
            include_gender=settings.include_gender,
            match_threshold=settings.match_threshold,
            potential_match_threshold=settings.potential_match_threshold,
            timeout=settings.match_timeout,
        )

    def classify(self, score: float | None) -> MatchStatus:
        """Map a confidence score onto its band."""
        value = score or 0.0
        if value >= self.match_threshold:
            return MatchStatus.MATCH
        if value >= self.potential_match_threshold:
            return MatchStatus.POTENTIAL_MATCH
        return MatchStatus.LOW_CONFIDENCE_MATCH


@dataclass(frozen=True)
class _RunningBest:
    """Best candidate seen so far in one cascade."""

    status: MatchStatus
    stage: str
    score: float | None = None
    nhs_number: str | None = None

    def to_outcome(self) -> MatchOutcome:
        return MatchOutcome(
            status=self.status,
            score=self.score if self.status in SCORED_STATUSES else None,
            nhs_number=self.nhs_number,
            process_stage=self.stage,
        )


def _fold(
    best: _RunningBest | None,
    stage: str,
    result: RegistrySearchResult,
    config: MatchingConfig,
) -> _RunningBest | None:
    """Combine one cascade result with the running best."""
    if result.type == SearchResultType.MATCHED:
        candidate = _RunningBest(
            status=config.classify(result.score),
            stage=stage,
            score=result.score,
            nhs_number=result.nhs_number,
        )
        if (
            best is None
            or best.status == MatchStatus.MANY_MATCH
            or (candidate.score or 0.0) > (best.score or 0.0)
        ):
            return candidate
        return best

    if result.type == SearchResultType.MULTI_MATCHED and best is None:
        return _RunningBest(status=MatchStatus.MANY_MATCH, stage=stage)

    return best


class MatchingEngine:
    """
    Matches person records against the registry.

    The engine holds no per-request state; every call owns its cascade,
    running best and quality report.
    """

    def __init__(
        self,
        registry: RegistrySearchPort,
        lookup: RegistryLookupPort | None = None,
        validator: ValidationPort | None = None,
        audit: AuditPort | None = None,
        config: MatchingConfig | None = None,
    ):
        self.registry = registry
        self.lookup = lookup
        self.gate = DataQualityGate(validator)
        self.audit = audit
        self.config = config or MatchingConfig()

    async def match(
        self,
        record: PersonRecord,
        strategy: str | None = None,
        version: int | None = None,
        log_match: bool = True,
    ) -> MatchOutcome:
        """
        Match a person record to a registry identifier.

        Args:
            record: Demographics to match; invalid optional fields are cleared
            strategy: Strategy name overriding the configured one
            version: Strategy version overriding the configured one
            log_match: Emit the [MATCH_COMPLETED] record

        Returns:
            MatchOutcome carrying the data quality report

        Raises:
            InvalidStrategyError: If the strategy or version is not supported
        """
        search_hash = search_id(record)
        report = self.gate.evaluate(record)

        if not report.has_minimum_data():
            logger.info(
                "Person data validation resulted in: %s", json.dumps(report.to_dict())
            )
            logger.error(
                "The minimum data requirements for a search weren't met, "
                "returning match status 'Error'"
            )
            return MatchOutcome(status=MatchStatus.ERROR, data_quality=report)

        if strategy is None:
            strategy = self.config.strategy
            if version is None:
                version = self.config.strategy_version
        search_strategy = get_strategy(strategy)
        resolved_version = search_strategy.resolve_version(version)
        logger.info(
            "Search strategy %s, algorithm version %s",
            search_strategy.name,
            resolved_version,
        )

        await self.record_audit(AuditAction.MATCH, {"SearchId": search_hash})

        queries = search_strategy.build(
            record,
            version=resolved_version,
            dob_range_months=self.config.dob_range_months,
            include_gender=self.config.include_gender,
        )
        outcome = await self._run_cascade(queries)
        outcome.data_quality = report

        if log_match:
            _log_match_completion(record, outcome, report)

        logger.info(
            "The person match request resulted in match status '%s' and "
            "confidence score '%s' at process stage (%s)",
            outcome.status.value,
            outcome.score,
            outcome.process_stage,
        )
        return outcome

    async def _run_cascade(self, queries: list[NamedQuery]) -> MatchOutcome:
        best: _RunningBest | None = None
        responses = 0

        with anyio.move_on_after(self.config.timeout) as scope:
            for named in queries:
                result = await self._search(named)
                if result is None:
                    continue
                responses += 1

                logger.info(
                    "Search query (%s) resulted in '%s' with confidence score '%s'",
                    named.name,
                    result.type.value,
                    result.score,
                )
                best = _fold(best, named.name, result, self.config)
                if best is not None and best.status == MatchStatus.MATCH:
                    return best.to_outcome()

        if scope.cancelled_caught:
            logger.warning(
                "Search cascade timed out after %s seconds", self.config.timeout
            )
            if responses == 0:
                return MatchOutcome(
                    status=MatchStatus.ERROR,
                    error="Search cascade timed out before any result was obtained",
                )

        if best is None:
            logger.info("Search algorithm resulted in status 'NoMatch'")
            return MatchOutcome(status=MatchStatus.NO_MATCH)

        return best.to_outcome()

    async def _search(self, named: NamedQuery) -> RegistrySearchResult | None:
        """Issue one cascade query; failures count as no result."""
        logger.info("Performing search query (%s) against the registry", named.name)
        try:
            return await self.registry.search(named.query)
        except Exception as e:
            logger.warning("Search query (%s) failed: %s", named.name, e)
            return None

    async def match_raw(self, record: RawSearchRecord) -> MatchOutcome:
        """
        Issue a single query built from caller-supplied fields and date tokens.

        No cascade or confidence banding is applied; the registry result kind
        is mapped directly onto a match status.

        Raises:
            ConfigurationError: If no raw birth date tokens were supplied
        """
        if not record.raw_birth_date:
            raise ConfigurationError("Raw birth date is required for search queries")

        query = SearchQuery(
            fuzzy_match=record.fuzzy_match,
            exact_match=record.exact_match,
            given=(record.given,) if record.given is not None else None,
            family=record.family,
            birthdate=tuple(record.raw_birth_date),
            gender=record.gender.lower() if record.gender else None,
            phone=record.phone,
            email=record.email,
            address_postalcode=record.address_postal_code,
        )

        result = await self._search(NamedQuery(RAW_QUERY_NAME, query))
        if result is None:
            return MatchOutcome(status=MatchStatus.ERROR, process_stage=RAW_QUERY_NAME)

        logger.info(
            "Search query (%s) resulted in status '%s' and confidence score '%s'",
            RAW_QUERY_NAME,
            result.type.value,
            result.score,
        )
        status = _RAW_STATUSES[result.type]
        return MatchOutcome(
            status=status,
            score=result.score if status in SCORED_STATUSES else None,
            nhs_number=result.nhs_number,
            process_stage=RAW_QUERY_NAME,
            error=result.error_message,
        )

    async def get_demographics(self, nhs_number: str | None) -> DemographicsOutcome:
        """
        Fetch registry demographics for an NHS number.

        Returns:
            DemographicsOutcome with the person, or the validation or
            registry errors
        """
        logger.info("Searching for person by NHS number")

        errors = validate_nhs_number(nhs_number)
        if errors or nhs_number is None:
            return DemographicsOutcome(errors=errors)

        if self.lookup is None:
            raise ConfigurationError("No registry lookup is configured")

        await self.record_audit(AuditAction.DEMOGRAPHIC)
        result = await self.lookup.lookup_by_identifier(nhs_number)
        return DemographicsOutcome(
            person=result.result,
            errors=[result.error_message] if result.error_message else [],
        )

    async def record_audit(
        self, action: AuditAction, metadata: dict[str, str] | None = None
    ) -> None:
        """Write an audit record; failures are logged and never raised."""
        if self.audit is None:
            return
        try:
            await self.audit.log(action, metadata)
        except Exception as e:
            logger.warning("Failed to write audit record for %s: %s", action.value, e)


def validate_nhs_number(nhs_number: str | None) -> list[str]:
    """Validation errors for a requested NHS number; empty when usable."""
    if not nhs_number or not nhs_number.strip():
        return [NHS_NUMBER_REQUIRED]
    if len(nhs_number) != NHS_NUMBER_LENGTH or not nhs_number.isdigit():
        return [NHS_NUMBER_LENGTH_INVALID]
    if not is_valid_nhs_number(nhs_number):
        return [NHS_NUMBER_INVALID]
    return []


def _log_match_completion(
    record: PersonRecord,
    outcome: MatchOutcome,
    report: DataQualityReport,
) -> None:
    logger.info(
        "[MATCH_COMPLETED] [ConfidenceScore=%s] [ProcessStage=%s] MatchStatus: %s, "
        "AgeGroup: %s, Gender: %s, Postcode: %s, DataQuality: %s",
        outcome.score or 0,
        outcome.process_stage,
        outcome.status.value,
        age_group(record.birth_date),
        record.gender or UNKNOWN,
        record.address_postal_code or UNKNOWN,
        json.dumps(report.to_dict()),
    )
