from dataclasses import dataclass
from datetime import date

from .errors import CapacityError


@dataclass(frozen=True)
class SlotSnapshot:
    service_name: str
    date: date
    time: str
    capacity: int
    booked: int


def validate_capacity(snapshot: SlotSnapshot, *, vehicle_count: int) -> int:
    """
    Pure write-time check for one service booking against the locked slot total.
    Returns remaining capacity after booking if OK. Raises CapacityError otherwise.
    """
    if vehicle_count <= 0:
        raise CapacityError("vehicle_count must be positive")

    available = snapshot.capacity - snapshot.booked
    if vehicle_count > available:
        raise CapacityError(
            f"Insufficient capacity for {snapshot.service_name} at {snapshot.time} on "
            f"{snapshot.date.isoformat()}. Need {vehicle_count} slots but only {max(available, 0)} available."
        )
    return available - vehicle_count
