"""Person matching, demographics and reconciliation endpoints."""

from fastapi import APIRouter, Response, status

from src.matching.models import MatchStatus
from src.routers.deps import MatchingEngineDep, ReconciliationEngineDep
from src.schemas.matching_schemas import (
    DemographicResponse,
    PersonMatchRequest,
    PersonMatchResponse,
    RawMatchRequest,
    ReconciliationRequestBody,
    ReconciliationResponse,
    RegistryPersonSchema,
)

router = APIRouter(tags=["Matching"])


@router.post("/matchperson", response_model=PersonMatchResponse)
async def match_person(
    request: PersonMatchRequest,
    response: Response,
    engine: MatchingEngineDep,
) -> PersonMatchResponse:
    """
    Match a person's demographics to an NHS number.

    Returns 400 with the data quality report when the demographics do not
    meet the minimum requirements for a search.
    """
    outcome = await engine.match(
        request.to_record(),
        strategy=request.search_strategy,
        version=request.strategy_version,
    )
    if outcome.status == MatchStatus.ERROR:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return PersonMatchResponse.from_outcome(outcome)


@router.post("/matchperson/raw", response_model=PersonMatchResponse)
async def match_person_raw(
    request: RawMatchRequest,
    engine: MatchingEngineDep,
) -> PersonMatchResponse:
    """Run one registry search built directly from the request, without a cascade."""
    outcome = await engine.match_raw(request.to_record())
    return PersonMatchResponse.from_outcome(outcome)


@router.get("/demographics", response_model=DemographicResponse)
async def get_demographics(
    response: Response,
    engine: MatchingEngineDep,
    nhs_number: str | None = None,
) -> DemographicResponse:
    """Fetch registry demographics for an NHS number."""
    outcome = await engine.get_demographics(nhs_number)
    if outcome.person is None and outcome.errors:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return DemographicResponse(
        result=RegistryPersonSchema.from_person(outcome.person),
        errors=outcome.errors,
    )


@router.post("/reconciliation", response_model=ReconciliationResponse)
async def reconcile(
    request: ReconciliationRequestBody,
    engine: ReconciliationEngineDep,
) -> ReconciliationResponse:
    """Compare local demographics and NHS number with the registry's."""
    outcome = await engine.reconcile(request.to_request())
    return ReconciliationResponse.from_outcome(outcome)
