from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_session
from ..domain.catalog import max_capacity, normalize_service_name
from ..infrastructure.repositories import SqlAlchemyServiceBookingRepository
from ..schemas import (
    AvailabilityRead,
    DistributionCheck,
    DistributionCheckRead,
    DistributionEntry,
    DistributionIssueRead,
    SlotAvailabilityRead,
    SuggestionRead,
    SuggestionRequest,
)
from ..usecases import availability as availability_usecase

router = APIRouter(prefix="/availability", tags=["availability"])


def _service_or_400(value: str) -> str:
    try:
        return normalize_service_name(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("", response_model=AvailabilityRead)
async def get_availability(
    service: str = Query(..., description="Service name or alias (weighing, inspection, registration)"),
    start_date: date = Query(...),
    end_date: date = Query(...),
    session: AsyncSession = Depends(get_session),
) -> AvailabilityRead:
    service_name = _service_or_400(service)
    repo = SqlAlchemyServiceBookingRepository(session)
    try:
        slots = await availability_usecase.list_availability(
            repo,
            service_name=service_name,
            start=start_date,
            end=end_date,
            max_days=get_settings().availability_max_days,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return AvailabilityRead(
        service_name=service_name,
        max_capacity=max_capacity(service_name),
        slots=[SlotAvailabilityRead.from_domain(slot) for slot in slots],
    )


@router.post("/suggestions", response_model=SuggestionRead)
async def suggest_distribution(
    payload: SuggestionRequest,
    session: AsyncSession = Depends(get_session),
) -> SuggestionRead:
    service_name = _service_or_400(payload.service)
    repo = SqlAlchemyServiceBookingRepository(session)
    try:
        suggestion = await availability_usecase.suggest(
            repo,
            service_name=service_name,
            vehicle_count=payload.vehicle_count,
            start=payload.start_date,
            end=payload.end_date,
            constraints=[group.to_domain() for group in payload.groups],
            max_days=get_settings().availability_max_days,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return SuggestionRead(
        service_name=suggestion.service_name,
        requested=suggestion.requested,
        allocated=suggestion.allocated,
        complete=suggestion.complete,
        distribution=[DistributionEntry.from_domain(entry) for entry in suggestion.distribution],
    )


@router.post("/distributions/validate", response_model=DistributionCheckRead)
async def validate_distribution(
    payload: DistributionCheck,
    session: AsyncSession = Depends(get_session),
) -> DistributionCheckRead:
    service_name = _service_or_400(payload.service)
    repo = SqlAlchemyServiceBookingRepository(session)
    try:
        issue = await availability_usecase.check_distribution(
            repo,
            service_name=service_name,
            vehicle_count=payload.vehicle_count,
            distribution=[entry.to_domain() for entry in payload.distribution],
            max_days=get_settings().availability_max_days,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if issue is None:
        return DistributionCheckRead(valid=True)
    return DistributionCheckRead(valid=False, issue=DistributionIssueRead.from_domain(issue))
