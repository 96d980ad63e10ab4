import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Sequence

from ..domain import allocation
from ..domain.allocation import DistributionIssue, SlotAvailability, SuggestedDistribution, VehicleSlotAssignment
from ..domain.catalog import max_capacity
from ..domain.repositories import ServiceBookingRepository
from ..utils.time import iter_dates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Suggestion:
    service_name: str
    requested: int
    distribution: List[SuggestedDistribution]

    @property
    def allocated(self) -> int:
        return allocation.allocated_total(self.distribution)

    @property
    def complete(self) -> bool:
        return bool(self.distribution) and self.allocated == self.requested


def _check_range(start: date, end: date, *, max_days: int) -> None:
    if start > end:
        raise ValueError("start_date must not be after end_date")
    if (end - start).days + 1 > max_days:
        raise ValueError(f"date range must not exceed {max_days} days")


async def list_availability(
    booking_repo: ServiceBookingRepository,
    *,
    service_name: str,
    start: date,
    end: date,
    max_days: int,
) -> List[SlotAvailability]:
    _check_range(start, end, max_days=max_days)
    booked = await booking_repo.booked_counts(service_name, start, end)
    return allocation.compute_availability(booked, max_capacity(service_name), list(iter_dates(start, end)))


async def suggest(
    booking_repo: ServiceBookingRepository,
    *,
    service_name: str,
    vehicle_count: int,
    start: date,
    end: date,
    constraints: Sequence[VehicleSlotAssignment],
    max_days: int,
) -> Suggestion:
    if vehicle_count < 1:
        raise ValueError("vehicle_count must be >= 1")
    if constraints and sum(c.vehicle_count for c in constraints) != vehicle_count:
        raise ValueError("vehicle groups must add up to vehicle_count")

    slots = await list_availability(booking_repo, service_name=service_name, start=start, end=end, max_days=max_days)
    distribution = allocation.suggest_distribution(vehicle_count, slots, constraints, max_capacity(service_name))
    suggestion = Suggestion(service_name=service_name, requested=vehicle_count, distribution=distribution)
    if not suggestion.complete:
        logger.info(
            "no complete suggestion service=%s requested=%d allocated=%d groups=%d",
            service_name,
            vehicle_count,
            suggestion.allocated,
            len(constraints),
        )
    return suggestion


async def check_distribution(
    booking_repo: ServiceBookingRepository,
    *,
    service_name: str,
    vehicle_count: int,
    distribution: Sequence[SuggestedDistribution],
    max_days: int,
) -> DistributionIssue | None:
    if not distribution:
        return DistributionIssue(reason="total-mismatch", detail=f"0 of {vehicle_count} vehicles allocated")
    start = min(entry.date for entry in distribution)
    end = max(entry.date for entry in distribution)
    slots = await list_availability(booking_repo, service_name=service_name, start=start, end=end, max_days=max_days)
    return allocation.validate_custom_distribution(vehicle_count, distribution, slots)
