from datetime import date

import pytest
from app.domain.allocation import SuggestedDistribution, VehicleSlotAssignment
from app.domain.catalog import INSPECTION, REGISTRATION, WEIGHING
from app.usecases import availability as uc

DAY = date(2026, 1, 10)


class FakeBookingRepo:
    def __init__(self, booked: dict[tuple[date, str], int]) -> None:
        self.booked = booked
        self.calls: list[tuple[str, date, date]] = []

    async def booked_counts(self, service_name: str, start: date, end: date) -> dict[tuple[date, str], int]:
        self.calls.append((service_name, start, end))
        return {key: count for key, count in self.booked.items() if start <= key[0] <= end}


def _full_except(open_slots: dict[str, int], capacity: int) -> dict[tuple[date, str], int]:
    labels = ["08:30 AM", "09:30 AM", "10:30 AM", "11:30 AM", "12:30 PM", "01:30 PM", "02:30 PM"]
    return {(DAY, label): capacity - open_slots.get(label, 0) for label in labels}


@pytest.mark.asyncio
async def test_list_availability_uses_service_capacity() -> None:
    repo = FakeBookingRepo({(DAY, "08:30 AM"): 3})
    slots = await uc.list_availability(repo, service_name=WEIGHING, start=DAY, end=DAY, max_days=31)
    assert slots[0].available_capacity == 9
    assert slots[0].total_capacity == 12
    assert repo.calls == [(WEIGHING, DAY, DAY)]


@pytest.mark.asyncio
async def test_list_availability_rejects_inverted_and_oversized_ranges() -> None:
    repo = FakeBookingRepo({})
    with pytest.raises(ValueError):
        await uc.list_availability(repo, service_name=WEIGHING, start=date(2026, 1, 11), end=DAY, max_days=31)
    with pytest.raises(ValueError):
        await uc.list_availability(repo, service_name=WEIGHING, start=DAY, end=date(2026, 3, 1), max_days=31)
    assert repo.calls == []


@pytest.mark.asyncio
async def test_suggest_greedy_example() -> None:
    repo = FakeBookingRepo(_full_except({"08:30 AM": 2, "09:30 AM": 5}, capacity=5))
    suggestion = await uc.suggest(
        repo,
        service_name=REGISTRATION,
        vehicle_count=4,
        start=DAY,
        end=DAY,
        constraints=[],
        max_days=31,
    )
    assert suggestion.complete
    assert [(e.time, e.vehicle_count) for e in suggestion.distribution] == [("08:30 AM", 2), ("09:30 AM", 2)]


@pytest.mark.asyncio
async def test_suggest_reports_incomplete_when_capacity_short() -> None:
    repo = FakeBookingRepo(_full_except({"08:30 AM": 1}, capacity=5))
    suggestion = await uc.suggest(
        repo,
        service_name=REGISTRATION,
        vehicle_count=3,
        start=DAY,
        end=DAY,
        constraints=[],
        max_days=31,
    )
    assert suggestion.allocated == 1
    assert suggestion.complete is False


@pytest.mark.asyncio
async def test_suggest_with_infeasible_groups_returns_empty_distribution() -> None:
    repo = FakeBookingRepo(_full_except({"10:30 AM": 12}, capacity=12))
    groups = [
        VehicleSlotAssignment(vehicle_group=1, vehicle_count=2),
        VehicleSlotAssignment(vehicle_group=2, vehicle_count=3, constraint_date=DAY, constraint_time="10:30 AM"),
    ]
    suggestion = await uc.suggest(
        repo,
        service_name=INSPECTION,
        vehicle_count=5,
        start=DAY,
        end=DAY,
        constraints=groups,
        max_days=31,
    )
    assert suggestion.distribution == []
    assert suggestion.complete is False


@pytest.mark.asyncio
async def test_suggest_rejects_groups_not_matching_vehicle_count() -> None:
    with pytest.raises(ValueError):
        await uc.suggest(
            FakeBookingRepo({}),
            service_name=INSPECTION,
            vehicle_count=5,
            start=DAY,
            end=DAY,
            constraints=[VehicleSlotAssignment(vehicle_group=1, vehicle_count=2)],
            max_days=31,
        )


@pytest.mark.asyncio
async def test_check_distribution_loads_range_spanned_by_entries() -> None:
    repo = FakeBookingRepo({(DAY, "08:30 AM"): 4})
    issue = await uc.check_distribution(
        repo,
        service_name=REGISTRATION,
        vehicle_count=2,
        distribution=[SuggestedDistribution(date=DAY, time="08:30 AM", vehicle_count=2)],
        max_days=31,
    )
    assert issue is not None
    assert issue.reason == "over-capacity"
    assert repo.calls == [(REGISTRATION, DAY, DAY)]


@pytest.mark.asyncio
async def test_check_distribution_empty_is_total_mismatch() -> None:
    issue = await uc.check_distribution(
        FakeBookingRepo({}),
        service_name=REGISTRATION,
        vehicle_count=2,
        distribution=[],
        max_days=31,
    )
    assert issue is not None
    assert issue.reason == "total-mismatch"
