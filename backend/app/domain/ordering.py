from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from .catalog import SERVICE_ORDER, time_index

SAME_DAY_NOT_AFTER = "same-day not after"
EARLIER_DATE = "earlier date"
GROUP_COUNT_MISMATCH = "group-count-mismatch"


@dataclass(frozen=True)
class BookedSlot:
    date: date
    time: str
    vehicle_count: int = 1


@dataclass(frozen=True)
class OrderingViolation:
    service: str
    slot_index: int
    reason: str
    previous_service: Optional[str] = None
    slot: Optional[BookedSlot] = None
    previous_slot: Optional[BookedSlot] = None

    def message(self) -> str:
        position = self.slot_index + 1
        if self.reason == GROUP_COUNT_MISMATCH:
            return (
                f"Service {self.service} has a different number of slots than {self.previous_service}; "
                "each vehicle group must be booked for every service."
            )
        head = (
            f"Service {self.service} slot {position} must be scheduled after "
            f"{self.previous_service} slot {position}."
        )
        if self.slot is None or self.previous_slot is None:
            return head
        if self.reason == SAME_DAY_NOT_AFTER:
            return (
                f"{head} Found {self.service} at {self.slot.time} which is not after "
                f"{self.previous_service} at {self.previous_slot.time} for the same vehicle group."
            )
        return (
            f"{head} Found {self.service} on {self.slot.date.isoformat()} which is before "
            f"{self.previous_service} on {self.previous_slot.date.isoformat()}."
        )


def _chronological(slots: Sequence[BookedSlot]) -> list[BookedSlot]:
    return sorted(slots, key=lambda s: (s.date, time_index(s.time)))


def validate_ordering(
    bookings_by_service: Mapping[str, Sequence[BookedSlot]],
    service_order: Sequence[str] = SERVICE_ORDER,
    *,
    require_matching_groups: bool = False,
) -> OrderingViolation | None:
    """
    Positional check that vehicle groups move through services in order.

    The j-th earliest slot of each service is paired with the j-th earliest slot of the
    previous service present; the later service must be strictly after. Returns None
    when the bookings are acceptable.
    """
    ordered = {service: _chronological(slots) for service, slots in bookings_by_service.items() if slots}
    present = [service for service in service_order if service in ordered]

    for i in range(1, len(present)):
        prev_service, curr_service = present[i - 1], present[i]
        prev_slots, curr_slots = ordered[prev_service], ordered[curr_service]

        if require_matching_groups and len(prev_slots) != len(curr_slots):
            return OrderingViolation(
                service=curr_service,
                slot_index=min(len(prev_slots), len(curr_slots)),
                reason=GROUP_COUNT_MISMATCH,
                previous_service=prev_service,
            )

        for j in range(min(len(prev_slots), len(curr_slots))):
            prev_slot, curr_slot = prev_slots[j], curr_slots[j]
            if prev_slot.date == curr_slot.date:
                if time_index(curr_slot.time) <= time_index(prev_slot.time):
                    return OrderingViolation(
                        service=curr_service,
                        slot_index=j,
                        reason=SAME_DAY_NOT_AFTER,
                        previous_service=prev_service,
                        slot=curr_slot,
                        previous_slot=prev_slot,
                    )
            elif curr_slot.date < prev_slot.date:
                return OrderingViolation(
                    service=curr_service,
                    slot_index=j,
                    reason=EARLIER_DATE,
                    previous_service=prev_service,
                    slot=curr_slot,
                    previous_slot=prev_slot,
                )
    return None
