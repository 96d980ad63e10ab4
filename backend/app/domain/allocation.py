"""
Slot capacity accounting and vehicle distribution across time slots.

Everything here is pure: callers pass in a snapshot of booked vehicle counts and get
back plain values. Infeasibility is reported through the return value (a partial or
empty distribution), never by raising.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .catalog import TIME_SLOTS, time_index

SlotKey = Tuple[date, str]


@dataclass(frozen=True)
class SlotAvailability:
    date: date
    time: str
    available_capacity: int
    total_capacity: int

    @property
    def key(self) -> SlotKey:
        return (self.date, self.time)


@dataclass(frozen=True)
class VehicleSlotAssignment:
    """A vehicle group and the slot at which it finished its previous service."""

    vehicle_group: int
    vehicle_count: int
    constraint_date: Optional[date] = None
    constraint_time: Optional[str] = None


@dataclass(frozen=True)
class SuggestedDistribution:
    date: date
    time: str
    vehicle_count: int
    vehicle_group: Optional[int] = None

    @property
    def key(self) -> SlotKey:
        return (self.date, self.time)


@dataclass(frozen=True)
class DistributionIssue:
    reason: str
    date: Optional[date] = None
    time: Optional[str] = None
    detail: str = ""


def chronological_key(item: SlotAvailability | SuggestedDistribution) -> Tuple[date, int]:
    return (item.date, time_index(item.time))


def compute_availability(
    booked_counts: Mapping[SlotKey, int],
    max_capacity: int,
    dates: Iterable[date],
    time_labels: Sequence[str] = TIME_SLOTS,
) -> List[SlotAvailability]:
    """
    Remaining capacity for every (date, time label) pair.

    A slot booked past its capacity (e.g. a staff override) reports 0, never a negative value.
    """
    slots: List[SlotAvailability] = []
    for day in dates:
        for label in time_labels:
            booked = int(booked_counts.get((day, label), 0))
            slots.append(
                SlotAvailability(
                    date=day,
                    time=label,
                    available_capacity=max(max_capacity - booked, 0),
                    total_capacity=max_capacity,
                )
            )
    return slots


def greedy_allocate(vehicle_count: int, slots: Sequence[SlotAvailability]) -> List[SuggestedDistribution]:
    """
    Fill the earliest slots first. If capacity runs out the accumulated partial
    distribution is returned; compare `allocated_total` with `vehicle_count` to detect it.
    """
    suggestion: List[SuggestedDistribution] = []
    remaining = vehicle_count
    for slot in sorted(slots, key=chronological_key):
        if remaining <= 0:
            break
        if slot.available_capacity <= 0:
            continue
        to_book = min(remaining, slot.available_capacity)
        suggestion.append(SuggestedDistribution(date=slot.date, time=slot.time, vehicle_count=to_book))
        remaining -= to_book
    return suggestion


def is_after_constraint(slot: SlotAvailability, group: VehicleSlotAssignment) -> bool:
    if group.constraint_date is None or not group.constraint_time:
        return True
    if slot.date == group.constraint_date:
        return time_index(slot.time) > time_index(group.constraint_time)
    return slot.date > group.constraint_date


def constrained_allocate(
    groups: Sequence[VehicleSlotAssignment],
    slots: Sequence[SlotAvailability],
    max_capacity: int,
) -> List[SuggestedDistribution]:
    """
    Place each vehicle group, in input order, into slots strictly after its constraint slot.

    Capacity taken by an earlier group is not offered to later ones. All-or-nothing: if
    any group cannot be fully placed the result is an empty list.
    """
    suggestion: List[SuggestedDistribution] = []
    allocated: Dict[SlotKey, int] = defaultdict(int)

    for group in groups:
        remaining = group.vehicle_count
        valid_slots = sorted((s for s in slots if is_after_constraint(s, group)), key=chronological_key)
        for slot in valid_slots:
            if remaining <= 0:
                break
            actually_available = min(slot.available_capacity - allocated[slot.key], max_capacity - allocated[slot.key])
            if actually_available <= 0:
                continue
            to_book = min(remaining, actually_available)
            suggestion.append(
                SuggestedDistribution(
                    date=slot.date,
                    time=slot.time,
                    vehicle_count=to_book,
                    vehicle_group=group.vehicle_group,
                )
            )
            allocated[slot.key] += to_book
            remaining -= to_book

        if remaining > 0:
            return []

    return suggestion


def suggest_distribution(
    vehicle_count: int,
    slots: Sequence[SlotAvailability],
    constraints: Sequence[VehicleSlotAssignment],
    max_capacity: int,
) -> List[SuggestedDistribution]:
    if not constraints:
        return greedy_allocate(vehicle_count, slots)
    return constrained_allocate(constraints, slots, max_capacity)


def allocated_total(distribution: Iterable[SuggestedDistribution]) -> int:
    return sum(entry.vehicle_count for entry in distribution)


def validate_custom_distribution(
    vehicle_count: int,
    distribution: Sequence[SuggestedDistribution],
    slots: Sequence[SlotAvailability],
) -> DistributionIssue | None:
    """Check a caller-edited distribution. Returns None when it can be forwarded for booking."""
    by_key = {slot.key: slot for slot in slots}
    per_slot: Dict[SlotKey, int] = defaultdict(int)

    for entry in distribution:
        if entry.vehicle_count <= 0:
            return DistributionIssue(
                reason="non-positive",
                date=entry.date,
                time=entry.time,
                detail="vehicle count must be at least 1",
            )
        if entry.key not in by_key:
            return DistributionIssue(
                reason="unknown-slot",
                date=entry.date,
                time=entry.time,
                detail="slot is not offered",
            )
        per_slot[entry.key] += entry.vehicle_count

    for key, count in sorted(per_slot.items(), key=lambda kv: (kv[0][0], time_index(kv[0][1]))):
        slot = by_key[key]
        if count > slot.available_capacity:
            return DistributionIssue(
                reason="over-capacity",
                date=slot.date,
                time=slot.time,
                detail=f"{count} vehicles requested but only {slot.available_capacity} available",
            )

    total = sum(per_slot.values())
    if total != vehicle_count:
        return DistributionIssue(
            reason="total-mismatch",
            detail=f"{total} of {vehicle_count} vehicles allocated",
        )
    return None
